"""Unit tests for condense.memory.tokens module."""

import json
import math
from unittest.mock import MagicMock, patch

import pytest

from condense.memory.tokens import (
    HeuristicTokenEstimator,
    TiktokenEstimator,
    TokenAccountant,
    estimate_message_tokens,
    estimate_messages_tokens,
    estimate_tokens,
)


class TestEstimateTokens:
    """Tests for estimate_tokens function."""

    def test_empty_string(self):
        assert estimate_tokens("") == 0

    def test_ceil_division(self):
        # 'hello world' = 11 chars -> ceil(11/4) = 3
        assert estimate_tokens("hello world") == 3

    def test_exact_divisible_by_4(self):
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcdefgh") == 2


class TestEstimateMessageTokens:
    """Tests for estimate_message_tokens function."""

    def test_string_content(self):
        assert estimate_message_tokens({"role": "user", "content": "hello world"}) == 3

    def test_object_content_via_json(self):
        msg = {"role": "assistant", "content": {"key": "value"}}
        expected = math.ceil(len(json.dumps({"key": "value"})) / 4)
        assert estimate_message_tokens(msg) == expected

    def test_sums_messages(self):
        messages = [
            {"role": "user", "content": "hello world"},  # 3 tokens
            {"role": "assistant", "content": "hi"},  # 1 token
        ]
        assert estimate_messages_tokens(messages) == 4


class TestHeuristicTokenEstimator:
    """Tests for HeuristicTokenEstimator."""

    def test_ignores_model(self):
        estimator = HeuristicTokenEstimator()
        messages = [{"role": "user", "content": "abcdefgh"}]
        assert estimator.estimate(messages) == 2
        assert estimator.estimate(messages, model="gpt-4o-mini") == 2


class TestTiktokenEstimator:
    """Tests for TiktokenEstimator with a mocked tiktoken module."""

    def make_tiktoken(self):
        encoding = MagicMock()
        encoding.encode = MagicMock(side_effect=lambda text: text.split())
        module = MagicMock()
        module.get_encoding = MagicMock(return_value=encoding)
        module.encoding_for_model = MagicMock(return_value=encoding)
        return module, encoding

    def test_counts_encoded_tokens(self):
        module, _ = self.make_tiktoken()
        with patch.dict("sys.modules", {"tiktoken": module}):
            estimator = TiktokenEstimator()
        messages = [
            {"role": "user", "content": "one two three"},
            {"role": "assistant", "content": "four"},
        ]
        assert estimator.estimate(messages) == 4
        module.get_encoding.assert_called_once_with("cl100k_base")

    def test_uses_model_encoding_and_caches_it(self):
        module, _ = self.make_tiktoken()
        with patch.dict("sys.modules", {"tiktoken": module}):
            estimator = TiktokenEstimator()
        messages = [{"role": "user", "content": "a b"}]
        estimator.estimate(messages, model="gpt-4o-mini")
        estimator.estimate(messages, model="gpt-4o-mini")
        module.encoding_for_model.assert_called_once_with("gpt-4o-mini")

    def test_unknown_model_falls_back_to_default_encoding(self):
        module, encoding = self.make_tiktoken()
        module.encoding_for_model.side_effect = KeyError("unknown")
        with patch.dict("sys.modules", {"tiktoken": module}):
            estimator = TiktokenEstimator()
        assert estimator.estimate([{"role": "user", "content": "x y"}], model="custom") == 2

    def test_missing_tiktoken_raises(self):
        with patch.dict("sys.modules", {"tiktoken": None}):
            with pytest.raises(ImportError, match="tiktoken not installed"):
                TiktokenEstimator()


class TestTokenAccountant:
    """Tests for TokenAccountant."""

    def test_estimate_empty_is_none(self):
        assert TokenAccountant().estimate([]) is None

    def test_estimate_uses_estimator_and_model(self):
        estimator = MagicMock()
        estimator.estimate = MagicMock(return_value=42)
        accountant = TokenAccountant(estimator, model="gpt-4o-mini")
        messages = [{"role": "user", "content": "hi"}]
        assert accountant.estimate(messages) == 42
        estimator.estimate.assert_called_once_with(messages, "gpt-4o-mini")

    def test_tokens_saved(self):
        assert TokenAccountant.tokens_saved(100, 250) == 150

    def test_tokens_saved_clamps_to_zero(self):
        assert TokenAccountant.tokens_saved(300, 250) == 0

    @pytest.mark.parametrize("prompt,hypothetical", [(None, 10), (10, None), (None, None)])
    def test_tokens_saved_unknown(self, prompt, hypothetical):
        assert TokenAccountant.tokens_saved(prompt, hypothetical) is None
