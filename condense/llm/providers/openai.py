"""OpenAI provider implementation using the Chat Completions API."""

import logging
import os
from typing import Any

from .base import (
    LLMProvider,
    LLMResponse,
    register_provider,
    usage_from_response,
    with_system_prompt,
)

logger = logging.getLogger(__name__)


@register_provider("openai")
class OpenAIProvider(LLMProvider):
    """OpenAI provider for chat completions, including OpenAI-compatible endpoints."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        client: Any | None = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. If not provided, uses OPENAI_API_KEY env var.
            base_url: Optional base URL for the API. If not provided, defaults to OpenAI's URL.
                     Useful for OpenRouter or other OpenAI-compatible endpoints.
            client: Optional pre-built ``AsyncOpenAI`` client; skips key lookup when given.
        """
        # Import OpenAI SDK only when this provider is used (lazy loading)
        try:
            from openai import AsyncOpenAI
        except ImportError:
            raise ImportError(
                "OpenAI SDK not installed. Install it with: pip install condense[openai]"
            ) from None

        self.base_url = base_url or os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

        if client is not None:
            self.api_key = api_key
            self.client = client
            return

        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ValueError(
                "OpenAI API key not provided. Set OPENAI_API_KEY environment variable "
                "or pass api_key parameter."
            )

        self.client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)

    async def generate(
        self,
        messages: list[dict[str, Any]],
        model: str,
        temperature: float | None = None,
        max_tokens: int | None = None,
        json_mode: bool = False,
        system_prompt: str | None = None,
        **kwargs,
    ) -> LLMResponse:
        """Make a Chat Completions request and normalize the reply."""
        request_params: dict[str, Any] = {
            "model": model,
            "messages": with_system_prompt(messages, system_prompt),
        }

        if temperature is not None:
            request_params["temperature"] = temperature
        if max_tokens is not None:
            request_params["max_tokens"] = max_tokens
        if json_mode:
            request_params["response_format"] = {"type": "json_object"}

        request_params.update(kwargs)

        try:
            response = await self.client.chat.completions.create(**request_params)
        except Exception as e:
            raise RuntimeError(f"OpenAI Chat Completions API call failed: {str(e)}") from e

        if not response:
            raise RuntimeError("OpenAI API returned no response")

        content = None
        stop_reason = None
        if response.choices:
            choice = response.choices[0]
            if not choice.message:
                raise RuntimeError("OpenAI API returned no message")
            content = choice.message.content or ""
            stop_reason = choice.finish_reason

        usage = usage_from_response(response)
        if usage is None:
            logger.debug("OpenAI response for %s carried no usage", model)

        return LLMResponse(
            content=content,
            usage=usage,
            model=response.model or model,
            stop_reason=stop_reason,
        )
