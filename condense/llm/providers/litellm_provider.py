"""LiteLLM-backed provider for models outside the OpenAI API (Ollama, Groq, Gemini, OpenRouter)."""

import logging
from typing import Any

from .base import (
    LLMProvider,
    LLMResponse,
    register_provider,
    usage_from_response,
    with_system_prompt,
)

logger = logging.getLogger(__name__)


@register_provider("litellm")
class LiteLLMProvider(LLMProvider):
    """Routes chat and summarization calls through ``litellm.acompletion``.

    Model names use LiteLLM routing prefixes, e.g. ``ollama/llama3`` or
    ``openrouter/openai/gpt-4o-mini``. A ``provider_prefix`` is added to bare names.
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        provider_prefix: str | None = None,
        **kwargs,
    ):
        try:
            import litellm
        except ImportError:
            raise ImportError(
                "LiteLLM not installed. Install it with: pip install condense[litellm]"
            ) from None

        self.api_key = api_key
        self.api_base = api_base
        self.provider_prefix = provider_prefix
        self.extra_kwargs = kwargs

        litellm.telemetry = False

    def _resolve_model(self, model: str) -> str:
        """Return ``model`` with ``provider_prefix`` added unless it is already routed."""
        if self.provider_prefix and "/" not in model:
            return f"{self.provider_prefix}/{model}"
        return model

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
        import litellm

        call_kwargs: dict[str, Any] = {
            "model": self._resolve_model(model),
            "messages": with_system_prompt(messages, system_prompt),
        }

        if temperature is not None:
            call_kwargs["temperature"] = temperature
        if max_tokens is not None:
            call_kwargs["max_tokens"] = max_tokens
        if json_mode:
            call_kwargs["response_format"] = {"type": "json_object"}
        if self.api_key:
            call_kwargs["api_key"] = self.api_key
        if self.api_base:
            call_kwargs["api_base"] = self.api_base

        call_kwargs.update(self.extra_kwargs)
        call_kwargs.update(kwargs)

        logger.debug("LiteLLM completion via %s (json_mode=%s)", call_kwargs["model"], json_mode)

        response = await litellm.acompletion(**call_kwargs)

        return self._parse_response(response, model)

    def _parse_response(self, response, fallback_model: str) -> LLMResponse:
        """Normalize a LiteLLM ModelResponse."""
        choice = response.choices[0] if response.choices else None
        message = choice.message if choice else None

        return LLMResponse(
            content=message.content if message else None,
            usage=usage_from_response(response),
            model=response.model or fallback_model,
            stop_reason=choice.finish_reason if choice else None,
        )
