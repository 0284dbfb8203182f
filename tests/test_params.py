"""Tests for request parameter normalization."""

import pytest

from agent_pipeline.params import DEFAULT_MAX_TOKENS, merge_params, normalize_params


class TestParamsNormalization:
    def test_standard_keys_kept(self):
        params = normalize_params({"temperature": 0.7, "max_tokens": 100, "top_p": 0.9})

        assert params["temperature"] == 0.7
        assert params["max_tokens"] == 100
        assert params["top_p"] == 0.9
        assert params["extra"] == {}

    def test_unknown_keys_moved_to_extra(self):
        params = normalize_params({"temperature": 0.7, "top_k": 40, "metadata": {"user_id": "u"}})

        assert params["extra"] == {"top_k": 40, "metadata": {"user_id": "u"}}
        assert "top_k" not in params

    def test_explicit_extra_wins(self):
        params = normalize_params({"top_k": 40, "extra": {"top_k": 5, "custom": "value"}})

        assert params["extra"] == {"top_k": 5, "custom": "value"}

    def test_max_tokens_default(self):
        assert normalize_params(None)["max_tokens"] == DEFAULT_MAX_TOKENS
        assert normalize_params({})["max_tokens"] == DEFAULT_MAX_TOKENS
        assert normalize_params({"max_tokens": None})["max_tokens"] == DEFAULT_MAX_TOKENS

    @pytest.mark.parametrize("key", ["tools", "system", "messages", "stream"])
    def test_loop_owned_keys_rejected(self, key):
        with pytest.raises(TypeError, match=key):
            normalize_params({key: []})

    def test_non_dict_rejected(self):
        with pytest.raises(TypeError):
            normalize_params(["temperature"])


def test_merge_params_overrides_and_merges_extra():
    merged = merge_params(
        {"temperature": 0.1, "max_tokens": 1000, "extra": {"a": 1}},
        {"temperature": 0.9, "extra": {"b": 2}},
    )

    assert merged["temperature"] == 0.9
    assert merged["max_tokens"] == 1000
    assert merged["extra"] == {"a": 1, "b": 2}
