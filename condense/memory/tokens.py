"""Token estimation and token-savings accounting.

The default estimator uses a simple heuristic: ~4 characters per token.
``TiktokenEstimator`` gives model-aware counts when ``tiktoken`` is installed.
"""

from __future__ import annotations

import json
import math
from typing import Any, Protocol

DEFAULT_ENCODING = "cl100k_base"


def estimate_tokens(text: str) -> int:
    """Estimate token count for a string using the ~4 chars/token heuristic."""
    return math.ceil(len(text) / 4)


def estimate_message_tokens(message: dict) -> int:
    """Estimate token count for a single conversation message."""
    content = message.get("content")
    if isinstance(content, str):
        return estimate_tokens(content)
    try:
        return estimate_tokens(json.dumps(content))
    except (TypeError, ValueError):
        return 0


def estimate_messages_tokens(messages: list[dict]) -> int:
    """Estimate total token count for an array of conversation messages."""
    total = 0
    for msg in messages:
        total += estimate_message_tokens(msg)
    return total


class TokenEstimator(Protocol):
    """Anything that can size a list of chat messages in tokens."""

    def estimate(self, messages: list[dict[str, Any]], model: str | None = None) -> int: ...


class HeuristicTokenEstimator:
    """Character-count estimator; the model hint is ignored."""

    def estimate(self, messages: list[dict[str, Any]], model: str | None = None) -> int:
        return estimate_messages_tokens(messages)


class TiktokenEstimator:
    """BPE token counts via ``tiktoken``.

    Uses the encoding registered for ``model`` when tiktoken knows it, and
    ``encoding_name`` otherwise.
    """

    def __init__(self, encoding_name: str = DEFAULT_ENCODING):
        try:
            import tiktoken
        except ImportError:
            raise ImportError(
                "tiktoken not installed. Install it with: pip install condense[tiktoken]"
            ) from None

        self._tiktoken = tiktoken
        self.encoding_name = encoding_name
        self._default_encoding = tiktoken.get_encoding(encoding_name)
        self._model_encodings: dict[str, Any] = {}

    def _encoding_for(self, model: str | None):
        if not model:
            return self._default_encoding
        if model not in self._model_encodings:
            try:
                self._model_encodings[model] = self._tiktoken.encoding_for_model(model)
            except KeyError:
                self._model_encodings[model] = self._default_encoding
        return self._model_encodings[model]

    def estimate(self, messages: list[dict[str, Any]], model: str | None = None) -> int:
        encoding = self._encoding_for(model)
        total = 0
        for msg in messages:
            content = msg.get("content") or ""
            if not isinstance(content, str):
                content = json.dumps(content)
            total += len(encoding.encode(content))
        return total


class TokenAccountant:
    """Estimates prompt sizes and derives savings from compaction."""

    def __init__(self, estimator: TokenEstimator | None = None, model: str | None = None):
        self.estimator = estimator or HeuristicTokenEstimator()
        self.model = model

    def estimate(self, messages: list[dict[str, Any]]) -> int | None:
        """Estimate tokens for ``messages``; ``None`` for an empty set."""
        if not messages:
            return None
        return self.estimator.estimate(messages, self.model)

    @staticmethod
    def tokens_saved(prompt_tokens: int | None, hypothetical_tokens: int | None) -> int | None:
        """Tokens avoided by sending the compacted window instead of the full history.

        Negative differences clamp to zero. Returns ``None`` when either side
        is unknown.
        """
        if prompt_tokens is None or hypothetical_tokens is None:
            return None
        return max(0, hypothetical_tokens - prompt_tokens)
