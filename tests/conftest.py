"""Shared pytest configuration and fixtures."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from condense.llm.providers.base import LLMResponse
from condense.types import Usage

SUMMARY_PAYLOAD = {
    "summary": "User shared details.",
    "facts": ["fact"],
    "openQuestions": [],
}


def fake_generate(messages, model, json_mode=False, **kwargs):
    """Summaries for json_mode calls, a short fixed reply otherwise."""
    if json_mode:
        return LLMResponse(
            content=json.dumps(SUMMARY_PAYLOAD),
            usage=Usage(prompt_tokens=50, completion_tokens=5, total_tokens=55),
            model=model,
            stop_reason="stop",
        )
    return LLMResponse(content="ok", usage=None, model=model, stop_reason="stop")


@pytest.fixture
def fake_provider():
    """Mock LLMProvider that summarizes in json_mode and answers "ok" otherwise."""
    provider = MagicMock()
    provider.generate = AsyncMock(side_effect=fake_generate)
    return provider


@pytest.fixture
def mock_tracer():
    """Mock OpenTelemetry tracer."""
    tracer = MagicMock()
    span = MagicMock()
    span.__enter__ = MagicMock(return_value=span)
    span.__exit__ = MagicMock(return_value=False)
    tracer.start_as_current_span = MagicMock(return_value=span)
    return tracer


@pytest.fixture
def mock_openai_client():
    """Mock OpenAI AsyncOpenAI client."""
    client = AsyncMock()
    client.chat.completions.create = AsyncMock()
    return client
