# Copyright (c) Microsoft. All rights reserved.
import json
from collections.abc import AsyncIterator

import pytest
from conftest import encode_event_message, encode_stream_event

from bedrock_converse import (
    FinishReason,
    FunctionCallContent,
    Role,
    ServiceResponseException,
    TextReasoningContent,
    UsageContent,
)
from bedrock_converse._streaming import ConverseStreamProcessor, decode_event_stream


async def _chunks(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def _decode(*chunks: bytes) -> list[dict]:  # type: ignore
    return [event async for event in decode_event_stream(_chunks(*chunks))]


class TestDecodeEventStream:
    """Tests for AWS event-stream decoding."""

    @pytest.mark.asyncio
    async def test_decodes_events(self, mock_stream_events):  # type: ignore
        data = b"".join(encode_stream_event(event) for event in mock_stream_events)

        events = await _decode(data)

        assert events == mock_stream_events

    @pytest.mark.asyncio
    async def test_messages_split_across_chunks(self, mock_stream_events):  # type: ignore
        data = b"".join(encode_stream_event(event) for event in mock_stream_events)
        chunks = [data[i : i + 7] for i in range(0, len(data), 7)]

        events = await _decode(*chunks)

        assert events == mock_stream_events

    @pytest.mark.asyncio
    async def test_exception_message_raises(self):
        exception_frame = encode_event_message(
            {":message-type": "exception", ":exception-type": "throttlingException"},
            json.dumps({"message": "Too many tokens, please wait before trying again."}).encode("utf-8"),
        )
        data = encode_stream_event({"messageStart": {"role": "assistant"}}) + exception_frame

        events = []
        with pytest.raises(ServiceResponseException, match="Too many tokens"):
            async for event in decode_event_stream(_chunks(data)):
                events.append(event)

        assert events == [{"messageStart": {"role": "assistant"}}]

    @pytest.mark.asyncio
    async def test_exception_without_message_uses_type(self):
        exception_frame = encode_event_message(
            {":message-type": "exception", ":exception-type": "internalServerException"}, b""
        )

        with pytest.raises(ServiceResponseException, match="internalServerException"):
            await _decode(exception_frame)


class TestConverseStreamProcessor:
    """Tests for ConverseStream event processing."""

    def test_message_start(self):
        update = ConverseStreamProcessor().process_event({"messageStart": {"role": "assistant"}})

        assert update is not None
        assert update.role == Role.ASSISTANT

    def test_text_delta(self):
        update = ConverseStreamProcessor().process_event(
            {"contentBlockDelta": {"delta": {"text": "Hello"}, "contentBlockIndex": 0}}
        )

        assert update is not None
        assert update.text == "Hello"

    def test_reasoning_deltas(self):
        processor = ConverseStreamProcessor()

        text_update = processor.process_event(
            {"contentBlockDelta": {"delta": {"reasoningContent": {"text": "Thinking"}}, "contentBlockIndex": 0}}
        )
        signature_update = processor.process_event(
            {"contentBlockDelta": {"delta": {"reasoningContent": {"signature": "sig-1"}}, "contentBlockIndex": 0}}
        )

        assert text_update is not None
        assert text_update.contents == [TextReasoningContent(text="Thinking")]
        assert text_update.text == ""
        assert signature_update is not None
        assert signature_update.contents == [TextReasoningContent(signature="sig-1")]

    def test_text_block_start_and_stop_yield_nothing(self):
        processor = ConverseStreamProcessor()

        assert processor.process_event({"contentBlockStart": {"start": {}, "contentBlockIndex": 0}}) is None
        assert processor.process_event({"contentBlockStop": {"contentBlockIndex": 0}}) is None

    def test_tool_use_accumulated_until_block_stop(self):
        processor = ConverseStreamProcessor()

        assert (
            processor.process_event(
                {"contentBlockStart": {"start": {"toolUse": {"toolUseId": "tool-1", "name": "get_weather"}}}}
            )
            is None
        )
        assert processor.process_event({"contentBlockDelta": {"delta": {"toolUse": {"input": '{"loc'}}}}) is None
        assert (
            processor.process_event({"contentBlockDelta": {"delta": {"toolUse": {"input": 'ation": "Oslo"}'}}}})
            is None
        )
        update = processor.process_event({"contentBlockStop": {"contentBlockIndex": 1}})

        assert update is not None
        assert update.contents == [
            FunctionCallContent(call_id="tool-1", name="get_weather", arguments={"location": "Oslo"})
        ]
        # state is reset for the next block
        assert processor.process_event({"contentBlockStop": {"contentBlockIndex": 2}}) is None

    def test_tool_use_without_input(self):
        processor = ConverseStreamProcessor()
        processor.process_event({"contentBlockStart": {"start": {"toolUse": {"toolUseId": "t", "name": "now"}}}})

        update = processor.process_event({"contentBlockStop": {"contentBlockIndex": 0}})

        assert update is not None
        assert update.contents[0].arguments == {}

    def test_processors_do_not_share_state(self):
        first = ConverseStreamProcessor()
        second = ConverseStreamProcessor()
        first.process_event({"contentBlockStart": {"start": {"toolUse": {"toolUseId": "t", "name": "now"}}}})

        assert second.process_event({"contentBlockStop": {"contentBlockIndex": 0}}) is None

    def test_metadata_usage(self):
        update = ConverseStreamProcessor().process_event(
            {"metadata": {"usage": {"inputTokens": 10, "outputTokens": 5, "totalTokens": 15}}}
        )

        assert update is not None
        usage = update.contents[0]
        assert isinstance(usage, UsageContent)
        assert usage.details.input_token_count == 10
        assert usage.details.output_token_count == 5

    @pytest.mark.parametrize(
        ("stop_reason", "expected"),
        [
            ("end_turn", FinishReason.STOP),
            ("tool_use", FinishReason.TOOL_CALLS),
            ("max_tokens", FinishReason.LENGTH),
            ("guardrail_intervened", FinishReason.CONTENT_FILTER),
        ],
    )
    def test_message_stop(self, stop_reason, expected):  # type: ignore
        update = ConverseStreamProcessor().process_event({"messageStop": {"stopReason": stop_reason}})

        assert update is not None
        assert update.finish_reason == expected

    def test_unknown_and_empty_events_ignored(self):
        processor = ConverseStreamProcessor()

        assert processor.process_event({}) is None
        assert processor.process_event({"somethingNew": {"value": 1}}) is None
