# Copyright (c) Microsoft. All rights reserved.

import json
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from ._logging import get_logger
from ._responses import map_stop_reason, parse_usage
from ._transport import parse_error
from ._types import ChatResponseUpdate, FunctionCallContent, Role, TextContent, TextReasoningContent, UsageContent
from .exceptions import ServiceResponseException

try:
    from botocore.eventstream import EventStreamBuffer
except ImportError as e:
    raise ImportError(
        "boto3 and botocore are required for AWS Bedrock integration. "
        "Install them with: pip install boto3 botocore"
    ) from e

__all__ = ["ConverseStreamProcessor", "decode_event_stream"]

logger = get_logger("bedrock_converse.streaming")


async def decode_event_stream(chunks: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """Decode an AWS event-stream body into ConverseStream events.

    Each event is yielded in the boto3 shape: a single key naming the event type, mapped
    to the decoded JSON payload.

    Raises:
        ServiceResponseException: If the stream carries an exception message.
    """
    buffer = EventStreamBuffer()
    async for chunk in chunks:
        buffer.add_data(chunk)
        for message in buffer:
            headers = message.headers
            payload = message.payload.decode("utf-8") if message.payload else ""
            message_type = headers.get(":message-type")

            if message_type == "event":
                event_type = headers.get(":event-type")
                yield {event_type: json.loads(payload) if payload else {}}
            elif message_type in ("exception", "error"):
                error_type = headers.get(":exception-type") or headers.get(":error-code") or "UnknownError"
                error_message = parse_error(payload) or headers.get(":error-message") or error_type
                logger.error(f"Bedrock ConverseStream error [{error_type}]: {error_message}")
                raise ServiceResponseException(error_message, body=payload)
            else:
                logger.debug(f"Ignoring event-stream message of type {message_type}")


class ConverseStreamProcessor:
    """Turns ConverseStream events into response updates.

    A processor holds the tool call being assembled, so use one instance per stream.
    """

    def __init__(self) -> None:
        self._current_tool_use: dict[str, Any] = {}
        self._tool_input_parts: list[str] = []

    def process_event(self, event: dict[str, Any]) -> ChatResponseUpdate | None:
        """Process one ConverseStream event.

        Event types:
        - messageStart: Initial metadata
        - contentBlockStart: Start of content block
        - contentBlockDelta: Incremental content
        - contentBlockStop: End of content block
        - messageStop: End of message
        - metadata: Token usage and metrics

        Returns:
            ChatResponseUpdate or None if the event carries nothing to report.
        """
        if not event:
            return None

        event_type = next(iter(event))
        event_data = event[event_type] or {}

        if event_type == "messageStart":
            return ChatResponseUpdate(role=Role.ASSISTANT, raw_response=event)

        if event_type == "contentBlockStart":
            block_data = event_data.get("start", {})
            if "toolUse" in block_data:
                self._current_tool_use = block_data["toolUse"]
                self._tool_input_parts = []
            return None

        if event_type == "contentBlockDelta":
            delta = event_data.get("delta", {})
            if "text" in delta:
                return ChatResponseUpdate(contents=[TextContent(text=delta["text"])], raw_response=event)
            if "reasoningContent" in delta:
                reasoning = delta["reasoningContent"]
                content = TextReasoningContent(
                    text=reasoning.get("text", ""),
                    signature=reasoning.get("signature"),
                    redacted_data=reasoning.get("redactedContent"),
                )
                return ChatResponseUpdate(contents=[content], raw_response=event)
            if "toolUse" in delta and self._current_tool_use:
                # Tool input arrives as fragments of a JSON document
                self._tool_input_parts.append(delta["toolUse"].get("input", ""))
            return None

        if event_type == "contentBlockStop":
            if not self._current_tool_use:
                return None
            tool_use, self._current_tool_use = self._current_tool_use, {}
            raw_input = "".join(self._tool_input_parts)
            self._tool_input_parts = []
            return ChatResponseUpdate(
                contents=[
                    FunctionCallContent(
                        call_id=tool_use["toolUseId"],
                        name=tool_use["name"],
                        arguments=json.loads(raw_input) if raw_input else {},
                    )
                ],
                raw_response=event,
            )

        if event_type == "metadata":
            usage_details = parse_usage(event_data.get("usage"))
            return ChatResponseUpdate(contents=[UsageContent(details=usage_details)], raw_response=event)

        if event_type == "messageStop":
            return ChatResponseUpdate(finish_reason=map_stop_reason(event_data.get("stopReason")), raw_response=event)

        logger.debug(f"Ignoring ConverseStream event {event_type}")
        return None
