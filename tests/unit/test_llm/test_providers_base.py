"""Unit tests for condense.llm.providers.base module."""

from types import SimpleNamespace

import pytest

from condense.llm.providers.base import (
    _PROVIDER_REGISTRY,
    LLMProvider,
    LLMResponse,
    get_provider,
    register_provider,
    usage_from_response,
    with_system_prompt,
)
from condense.types import Usage


@pytest.fixture
def restore_registry():
    original = _PROVIDER_REGISTRY.copy()
    yield
    _PROVIDER_REGISTRY.clear()
    _PROVIDER_REGISTRY.update(original)


class TestLLMResponse:
    """Tests for LLMResponse model."""

    def test_defaults(self):
        response = LLMResponse()
        assert response.content is None
        assert response.usage is None
        assert response.model is None
        assert response.stop_reason is None

    def test_with_usage(self):
        response = LLMResponse(content="hi", usage=Usage(prompt_tokens=3))
        assert response.usage.prompt_tokens == 3
        assert response.usage.completion_tokens is None


class TestRegisterProvider:
    """Tests for register_provider decorator."""

    def test_register_provider_lowercase(self, restore_registry):
        @register_provider("Scripted")
        class ScriptedProvider(LLMProvider):
            async def generate(self, messages, model, **kwargs):
                return LLMResponse(content="test")

        assert _PROVIDER_REGISTRY["scripted"] is ScriptedProvider

    def test_get_registered_provider(self, restore_registry):
        @register_provider("scripted")
        class ScriptedProvider(LLMProvider):
            def __init__(self, reply="x"):
                self.reply = reply

            async def generate(self, messages, model, **kwargs):
                return LLMResponse(content=self.reply)

        provider = get_provider("SCRIPTED", reply="hello")
        assert isinstance(provider, ScriptedProvider)
        assert provider.reply == "hello"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM provider: nope"):
            get_provider("nope")


class TestHelpers:
    """Tests for message and usage helpers."""

    def test_with_system_prompt_prepends(self):
        messages = [{"role": "user", "content": "hi"}]
        result = with_system_prompt(messages, "Be brief.")
        assert result[0] == {"role": "system", "content": "Be brief."}
        assert messages == [{"role": "user", "content": "hi"}]

    def test_with_system_prompt_keeps_existing_system_message(self):
        messages = [{"role": "system", "content": "Summary"}, {"role": "user", "content": "hi"}]
        assert with_system_prompt(messages, "Be brief.") == messages

    def test_with_system_prompt_none(self):
        messages = [{"role": "user", "content": "hi"}]
        assert with_system_prompt(messages, None) == messages

    def test_usage_from_response(self):
        response = SimpleNamespace(
            usage=SimpleNamespace(prompt_tokens=10, completion_tokens=2, total_tokens=12)
        )
        assert usage_from_response(response) == Usage(
            prompt_tokens=10, completion_tokens=2, total_tokens=12
        )

    def test_usage_missing(self):
        assert usage_from_response(SimpleNamespace(usage=None)) is None
