# Copyright (c) Microsoft. All rights reserved.
import json
import struct
import zlib
from collections.abc import AsyncIterator, Mapping
from typing import Any

from pytest import fixture

from bedrock_converse import BedrockConverseClient, StaticModelCapabilities

PROMPT_ARN = "arn:aws:bedrock:region:account:prompt/resource"
MODEL_ID = "anthropic.claude-3-5-sonnet-20241022-v2:0"
REASONING_MODEL_ID = "us.anthropic.claude-sonnet-4-5-20250929-v1:0"


class RecordingTransport:
    """Transport double that records calls and replays canned responses."""

    def __init__(self, response: dict[str, Any] | None = None, stream_chunks: list[bytes] | None = None) -> None:
        self.response = response or {}
        self.stream_chunks = stream_chunks or []
        self.calls: list[tuple[str, dict[str, Any], dict[str, str]]] = []

    async def post(self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> dict[str, Any]:
        self.calls.append((path, dict(payload), dict(headers)))
        return self.response

    async def stream(
        self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> AsyncIterator[bytes]:
        self.calls.append((path, dict(payload), dict(headers)))
        for chunk in self.stream_chunks:
            yield chunk


def encode_event_message(headers: dict[str, str], payload: bytes) -> bytes:
    """Encode one AWS event-stream message with string headers."""
    encoded_headers = b""
    for name, value in headers.items():
        name_bytes = name.encode("utf-8")
        value_bytes = value.encode("utf-8")
        encoded_headers += struct.pack("!B", len(name_bytes)) + name_bytes
        encoded_headers += struct.pack("!BH", 7, len(value_bytes)) + value_bytes

    total_length = 12 + len(encoded_headers) + len(payload) + 4
    prelude = struct.pack("!II", total_length, len(encoded_headers))
    prelude += struct.pack("!I", zlib.crc32(prelude) & 0xFFFFFFFF)
    message = prelude + encoded_headers + payload
    return message + struct.pack("!I", zlib.crc32(message) & 0xFFFFFFFF)


def encode_stream_event(event: dict[str, Any]) -> bytes:
    event_type = next(iter(event))
    return encode_event_message(
        {":message-type": "event", ":event-type": event_type, ":content-type": "application/json"},
        json.dumps(event[event_type]).encode("utf-8"),
    )


@fixture
def exclude_list(request: Any) -> list[str]:
    """Fixture that returns a list of environment variables to exclude."""
    return request.param if hasattr(request, "param") else []


@fixture
def override_env_param_dict(request: Any) -> dict[str, str]:
    """Fixture that returns a dict of environment variables to override."""
    return request.param if hasattr(request, "param") else {}


@fixture
def bedrock_unit_test_env(monkeypatch, exclude_list, override_env_param_dict):  # type: ignore
    """Fixture to set environment variables for BedrockSettings."""
    if exclude_list is None:
        exclude_list = []

    if override_env_param_dict is None:
        override_env_param_dict = {}

    env_vars = {
        "BEDROCK_REGION": "us-west-2",
        "BEDROCK_MODEL_ID": MODEL_ID,
        "BEDROCK_ACCESS_KEY_ID": "AKIDEXAMPLE",
        "BEDROCK_SECRET_ACCESS_KEY": "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
    }

    env_vars.update(override_env_param_dict)  # type: ignore

    for key, value in env_vars.items():
        if key in exclude_list:
            monkeypatch.delenv(key, raising=False)  # type: ignore
            continue
        monkeypatch.setenv(key, value)  # type: ignore

    return env_vars


@fixture
def clean_bedrock_env(monkeypatch):  # type: ignore
    """Fixture that removes every BEDROCK_ variable so defaults apply."""
    for key in (
        "BEDROCK_REGION",
        "BEDROCK_MODEL_ID",
        "BEDROCK_ACCESS_KEY_ID",
        "BEDROCK_SECRET_ACCESS_KEY",
        "BEDROCK_SESSION_TOKEN",
        "BEDROCK_BEARER_TOKEN",
        "BEDROCK_REQUEST_TIMEOUT",
    ):
        monkeypatch.delenv(key, raising=False)  # type: ignore


@fixture
def mock_converse_response() -> dict[str, Any]:
    """Fixture that provides a mock Converse API response."""
    return {
        "ResponseMetadata": {"RequestId": "test-request-id-123", "HTTPStatusCode": 200},
        "output": {
            "message": {
                "role": "assistant",
                "content": [{"text": "Hello! I'm here to help. How can I assist you today?"}],
            }
        },
        "stopReason": "end_turn",
        "usage": {"inputTokens": 10, "outputTokens": 15, "totalTokens": 25},
    }


@fixture
def mock_converse_response_with_tools() -> dict[str, Any]:
    """Fixture that provides a mock Converse API response with tool use."""
    return {
        "ResponseMetadata": {"RequestId": "test-request-id-456", "HTTPStatusCode": 200},
        "output": {
            "message": {
                "role": "assistant",
                "content": [
                    {"text": "Let me check the weather for you."},
                    {
                        "toolUse": {
                            "toolUseId": "tool-123",
                            "name": "get_weather",
                            "input": {"location": "San Francisco"},
                        }
                    },
                ],
            }
        },
        "stopReason": "tool_use",
        "usage": {"inputTokens": 50, "outputTokens": 20, "totalTokens": 70},
    }


@fixture
def mock_stream_events() -> list[dict[str, Any]]:
    """Fixture that provides mock ConverseStream events."""
    return [
        {"messageStart": {"role": "assistant"}},
        {"contentBlockStart": {"start": {"text": ""}, "contentBlockIndex": 0}},
        {"contentBlockDelta": {"delta": {"text": "Hello"}, "contentBlockIndex": 0}},
        {"contentBlockDelta": {"delta": {"text": " world"}, "contentBlockIndex": 0}},
        {"contentBlockDelta": {"delta": {"text": "!"}, "contentBlockIndex": 0}},
        {"contentBlockStop": {"contentBlockIndex": 0}},
        {"metadata": {"usage": {"inputTokens": 10, "outputTokens": 5, "totalTokens": 15}}},
        {"messageStop": {"stopReason": "end_turn"}},
    ]


@fixture
def recording_transport(mock_converse_response) -> RecordingTransport:  # type: ignore
    return RecordingTransport(response=mock_converse_response)


@fixture
def client(recording_transport, clean_bedrock_env) -> BedrockConverseClient:  # type: ignore
    """A client wired to the recording transport."""
    return BedrockConverseClient(
        model_id=MODEL_ID,
        transport=recording_transport,
        capabilities=StaticModelCapabilities(),
        env_file_path="nonexistent.env",
    )
