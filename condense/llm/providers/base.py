"""Base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from ...types.types import Usage

# Provider classes by lower-case name, filled by @register_provider
_PROVIDER_REGISTRY: dict[str, type["LLMProvider"]] = {}

# Built-in providers, imported on first use
_PROVIDER_MODULES = {
    "openai": ".openai",
    "litellm": ".litellm_provider",
}


def register_provider(name: str):
    """
    Register an LLM provider class under ``name`` (case-insensitive).

    Usage:
        @register_provider("openai")
        class OpenAIProvider(LLMProvider):
            ...

    Args:
        name: Provider name (e.g., "openai", "litellm")

    Returns:
        Decorator function
    """

    def decorator(cls: type["LLMProvider"]) -> type["LLMProvider"]:
        _PROVIDER_REGISTRY[name.lower()] = cls
        return cls

    return decorator


class LLMResponse(BaseModel):
    """Response from an LLM call.

    ``usage`` is ``None`` when the provider did not report token counts.
    """

    content: str | None = None
    usage: Usage | None = None
    model: str | None = None
    stop_reason: str | None = None


class LLMProvider(ABC):
    """Base class for LLM providers."""

    @abstractmethod
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
        """
        Send one chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content' keys
            model: Model identifier (e.g., "gpt-4o-mini")
            temperature: Optional temperature parameter
            max_tokens: Optional max tokens parameter
            json_mode: Ask the model to answer with a single JSON object
            system_prompt: Optional system prompt, added when ``messages`` has none
            **kwargs: Provider-specific additional parameters

        Returns:
            LLMResponse with content, usage, model, and stop_reason
        """
        pass


def with_system_prompt(
    messages: list[dict[str, Any]], system_prompt: str | None
) -> list[dict[str, Any]]:
    """Return a copy of ``messages`` led by ``system_prompt`` unless one is present."""
    processed = [dict(m) for m in messages]
    if system_prompt and not any(m.get("role") == "system" for m in processed):
        processed.insert(0, {"role": "system", "content": system_prompt})
    return processed


def usage_from_response(response: Any) -> Usage | None:
    """Read OpenAI-style ``usage`` (prompt/completion/total tokens) off a response."""
    usage = getattr(response, "usage", None)
    if not usage:
        return None
    return Usage(
        prompt_tokens=getattr(usage, "prompt_tokens", None),
        completion_tokens=getattr(usage, "completion_tokens", None),
        total_tokens=getattr(usage, "total_tokens", None),
    )


def get_provider(provider_name: str, **kwargs) -> LLMProvider:
    """
    Create a provider by name.

    Built-in providers are imported on first use, so their SDKs stay optional.

    Args:
        provider_name: Name of the provider ("openai", "litellm", or any registered name)
        **kwargs: Provider-specific initialization parameters

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If the provider is not found or not supported
        ImportError: If the provider's SDK is not installed
    """
    provider_name_lower = provider_name.lower()

    provider_class = _PROVIDER_REGISTRY.get(provider_name_lower)
    if provider_class:
        return provider_class(**kwargs)

    module_path = _PROVIDER_MODULES.get(provider_name_lower)
    if not module_path:
        available = ", ".join(sorted(set(_PROVIDER_MODULES) | set(_PROVIDER_REGISTRY)))
        raise ValueError(
            f"Unknown LLM provider: {provider_name}. Supported providers: {available}."
        )

    # Importing the module runs its @register_provider decorator
    try:
        if provider_name_lower == "openai":
            from . import openai  # noqa: F401
        elif provider_name_lower == "litellm":
            from . import litellm_provider  # noqa: F401
    except ImportError as e:
        raise ImportError(
            f"Failed to import {provider_name} provider. "
            f"Install the required SDK with: pip install condense[{provider_name_lower}]"
        ) from e

    provider_class = _PROVIDER_REGISTRY.get(provider_name_lower)
    if not provider_class:
        raise ValueError(
            f"Provider {provider_name} was imported but not registered. "
            f"This is likely a bug in the provider implementation."
        )

    return provider_class(**kwargs)
