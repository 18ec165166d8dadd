"""Model completion capability used for replies and summaries."""

from .providers import LLMProvider, LLMResponse, get_provider, register_provider

__all__ = [
    "LLMProvider",
    "LLMResponse",
    "get_provider",
    "register_provider",
]
