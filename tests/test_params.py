# Copyright (c) Microsoft. All rights reserved.
from enum import Enum

from bedrock_converse import deep_merge, normalize_params


class ParamKey(Enum):
    TOP_K = "top_k"
    INFERENCE_CONFIG = "inferenceConfig"


class TestNormalizeParams:
    """Tests for request param normalization."""

    def test_none_and_empty_params(self):
        assert normalize_params(None, supports_top_k=True) == {}
        assert normalize_params({}, supports_top_k=False) == {}

    def test_top_k_dropped_for_models_without_reasoning(self):
        normalized = normalize_params({"top_k": 5}, supports_top_k=False)

        assert "top_k" not in normalized
        assert "additionalModelRequestFields" not in normalized

    def test_top_k_promoted_for_reasoning_models(self):
        normalized = normalize_params({"top_k": 5}, supports_top_k=True)

        assert "top_k" not in normalized
        assert normalized["additionalModelRequestFields"] == {"top_k": 5}

    def test_top_k_merged_with_existing_additional_fields(self):
        params = {
            "top_k": 40,
            "additionalModelRequestFields": {"thinking": {"type": "enabled", "budget_tokens": 2048}},
        }

        normalized = normalize_params(params, supports_top_k=True)

        assert normalized["additionalModelRequestFields"] == {
            "thinking": {"type": "enabled", "budget_tokens": 2048},
            "top_k": 40,
        }

    def test_existing_additional_fields_kept_when_top_k_dropped(self):
        params = {"top_k": 40, "additionalModelRequestFields": {"reasoning_effort": "low"}}

        normalized = normalize_params(params, supports_top_k=False)

        assert normalized == {"additionalModelRequestFields": {"reasoning_effort": "low"}}

    def test_empty_additional_fields_omitted(self):
        normalized = normalize_params({"additionalModelRequestFields": {}}, supports_top_k=True)

        assert "additionalModelRequestFields" not in normalized

    def test_keys_canonicalized_recursively(self):
        params = {
            ParamKey.TOP_K: 3,
            ParamKey.INFERENCE_CONFIG: {ParamKey.TOP_K: 1, "maxTokens": 512},
            "promptVariables": [{ParamKey.TOP_K: "x"}],
        }

        normalized = normalize_params(params, supports_top_k=True)

        assert normalized == {
            "inferenceConfig": {"top_k": 1, "maxTokens": 512},
            "promptVariables": [{"top_k": "x"}],
            "additionalModelRequestFields": {"top_k": 3},
        }
        assert all(isinstance(key, str) for key in normalized)

    def test_input_not_mutated(self):
        params = {"top_k": 5, "additionalModelRequestFields": {"nested": {"a": 1}}}

        normalized = normalize_params(params, supports_top_k=True)
        normalized["additionalModelRequestFields"]["nested"]["a"] = 2

        assert params == {"top_k": 5, "additionalModelRequestFields": {"nested": {"a": 1}}}

    def test_normalization_is_idempotent(self):
        once = normalize_params(
            {"top_k": 5, "inferenceConfig": {"maxTokens": 100}, "promptVariables": {"topic": {"text": "x"}}},
            supports_top_k=True,
        )

        assert normalize_params(once, supports_top_k=True) == once
        assert normalize_params(once, supports_top_k=False) == once

    def test_promoted_top_k_wins_on_collision(self):
        params = {"top_k": 5, "additionalModelRequestFields": {"top_k": 10}}

        normalized = normalize_params(params, supports_top_k=True)

        assert normalized["additionalModelRequestFields"] == {"top_k": 5}

    def test_non_mapping_additional_fields_carried_forward(self):
        normalized = normalize_params({"additionalModelRequestFields": ["a"], "top_k": 3}, supports_top_k=True)

        assert normalized == {"additionalModelRequestFields": ["a"]}


class TestDeepMerge:
    """Tests for the deep merge helper."""

    def test_nested_mappings_merged(self):
        merged = deep_merge({"a": {"b": 1, "c": 2}}, {"a": {"c": 3, "d": 4}})

        assert merged == {"a": {"b": 1, "c": 3, "d": 4}}

    def test_overlay_scalar_replaces_mapping(self):
        assert deep_merge({"a": {"b": 1}}, {"a": 5}) == {"a": 5}

    def test_inputs_left_untouched(self):
        base = {"a": {"b": 1}}
        overlay = {"a": {"c": 2}}

        deep_merge(base, overlay)

        assert base == {"a": {"b": 1}}
        assert overlay == {"a": {"c": 2}}
