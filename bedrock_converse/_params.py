# Copyright (c) Microsoft. All rights reserved.

"""Normalization of caller-supplied Converse request parameters."""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Final

from ._logging import get_logger

__all__ = ["ADDITIONAL_FIELDS_KEY", "TOP_K_KEY", "canonical_key", "deep_merge", "normalize_params"]

logger = get_logger("bedrock_converse.params")

ADDITIONAL_FIELDS_KEY: Final[str] = "additionalModelRequestFields"
TOP_K_KEY: Final[str] = "top_k"


def canonical_key(key: Any) -> str:
    """Map a parameter key onto the canonical string key space."""
    if isinstance(key, Enum):
        key = key.value
    if isinstance(key, bytes):
        return key.decode("utf-8")
    return str(key)


def _canonicalize(value: Any) -> Any:
    """Return a deep copy of ``value`` with every mapping key canonicalized."""
    if isinstance(value, Mapping):
        return {canonical_key(k): _canonicalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonicalize(item) for item in value]
    return value


def deep_merge(base: Mapping[str, Any], overlay: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``overlay`` into a copy of ``base``.

    Nested mappings are merged key by key; for any other value the overlay wins.
    Neither input is modified.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        existing = merged.get(key)
        if isinstance(existing, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = value
    return merged


def normalize_params(params: Mapping[Any, Any] | None, *, supports_top_k: bool) -> dict[str, Any]:
    """Canonicalize request params and promote ``top_k`` into the additional fields.

    ``top_k`` is not an inferenceConfig field on Bedrock. It is always removed from the
    top level and forwarded under ``additionalModelRequestFields`` only when the target
    model embeds reasoning; for every other model it is dropped.

    Args:
        params: The raw caller params. Keys may be strings, enum members or other hashables.

    Keyword Args:
        supports_top_k: Whether the target model accepts ``top_k`` as an additional field.

    Returns:
        A new dict. The caller's mapping is never mutated.
    """
    normalized: dict[str, Any] = _canonicalize(params or {})
    additional_fields = normalized.get(ADDITIONAL_FIELDS_KEY) or {}

    top_k = normalized.pop(TOP_K_KEY, None)
    if top_k is not None:
        if not isinstance(additional_fields, Mapping):
            # Left as is for the renderer to reject
            logger.debug("Dropping top_k: additionalModelRequestFields is not a mapping")
        elif supports_top_k:
            additional_fields = deep_merge(additional_fields, {TOP_K_KEY: top_k})
        else:
            logger.debug("Dropping top_k: target model does not accept it")

    if additional_fields:
        normalized[ADDITIONAL_FIELDS_KEY] = additional_fields
    else:
        normalized.pop(ADDITIONAL_FIELDS_KEY, None)
    return normalized
