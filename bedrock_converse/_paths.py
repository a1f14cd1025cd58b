# Copyright (c) Microsoft. All rights reserved.

from typing import Final
from urllib.parse import quote

__all__ = ["api_base", "completion_path", "encode_model_id", "stream_path"]

CONVERSE_PATH_TEMPLATE: Final[str] = "/model/{model_id}/converse"
CONVERSE_STREAM_PATH_TEMPLATE: Final[str] = "/model/{model_id}/converse-stream"


def encode_model_id(model_id: str) -> str:
    """Percent-encode a raw model ID or ARN as a single URL path segment.

    ``:`` and ``/`` are encoded along with every other reserved character, and spaces
    always come out as ``%20``.
    """
    return quote(str(model_id), safe="")


def completion_path(model_id: str) -> str:
    return CONVERSE_PATH_TEMPLATE.format(model_id=encode_model_id(model_id))


def stream_path(model_id: str) -> str:
    return CONVERSE_STREAM_PATH_TEMPLATE.format(model_id=encode_model_id(model_id))


def api_base(region: str) -> str:
    """The bedrock-runtime endpoint for ``region``."""
    return f"https://bedrock-runtime.{region}.amazonaws.com"
