# Copyright (c) Microsoft. All rights reserved.

from typing import Any

from ._logging import get_logger
from ._types import (
    ChatMessage,
    ChatResponse,
    Contents,
    FinishReason,
    FunctionCallContent,
    FunctionResultContent,
    Role,
    TextContent,
    TextReasoningContent,
    UsageDetails,
)

__all__ = ["map_stop_reason", "parse_contents", "parse_converse_response", "parse_reasoning", "parse_usage"]

logger = get_logger("bedrock_converse.responses")

FINISH_REASON_MAP: dict[str, FinishReason] = {
    "end_turn": FinishReason.STOP,
    "tool_use": FinishReason.TOOL_CALLS,
    "max_tokens": FinishReason.LENGTH,
    "stop_sequence": FinishReason.STOP,
    "guardrail_intervened": FinishReason.CONTENT_FILTER,
    "content_filtered": FinishReason.CONTENT_FILTER,
}


def parse_converse_response(response: dict[str, Any], model_id: str) -> ChatResponse:
    """Parse a Converse API response.

    Args:
        response: Decoded response body, with ``ResponseMetadata`` added by the transport.
        model_id: The model ID or prompt ARN the request was sent to.
    """
    message_data = response.get("output", {}).get("message", {})
    return ChatResponse(
        response_id=response.get("ResponseMetadata", {}).get("RequestId"),
        messages=[ChatMessage(role=Role.ASSISTANT, contents=parse_contents(message_data.get("content", [])))],
        usage_details=parse_usage(response.get("usage")),
        model_id=model_id,
        finish_reason=map_stop_reason(response.get("stopReason")),
        raw_response=response,
    )


def parse_contents(content_list: list[dict[str, Any]]) -> list[Contents]:
    """Parse Converse content blocks into content parts."""
    contents: list[Contents] = []

    for block in content_list:
        if "text" in block:
            contents.append(TextContent(text=block["text"]))

        elif "toolUse" in block:
            tool_use = block["toolUse"]
            contents.append(
                FunctionCallContent(
                    call_id=tool_use["toolUseId"],
                    name=tool_use["name"],
                    arguments=tool_use.get("input") or {},
                )
            )

        elif "toolResult" in block:
            tool_result = block["toolResult"]
            result_text = "".join(part["text"] for part in tool_result.get("content", []) if "text" in part)
            contents.append(
                FunctionResultContent(
                    call_id=tool_result["toolUseId"],
                    result=result_text or tool_result.get("content"),
                    is_error=tool_result.get("status") == "error",
                )
            )

        elif "reasoningContent" in block:
            contents.append(parse_reasoning(block["reasoningContent"]))

        else:
            logger.debug(f"Ignoring unsupported content block: {sorted(block)}")

    return contents


def parse_reasoning(reasoning_content: dict[str, Any]) -> TextReasoningContent:
    """Parse a reasoningContent block, plain or redacted."""
    if redacted := reasoning_content.get("redactedContent"):
        return TextReasoningContent(redacted_data=redacted)
    reasoning_text = reasoning_content.get("reasoningText") or {}
    return TextReasoningContent(text=reasoning_text.get("text", ""), signature=reasoning_text.get("signature"))


def parse_usage(usage: dict[str, Any] | None) -> UsageDetails:
    if not usage:
        return UsageDetails()

    input_tokens = usage.get("inputTokens", 0)
    output_tokens = usage.get("outputTokens", 0)
    return UsageDetails(
        input_token_count=input_tokens,
        output_token_count=output_tokens,
        total_token_count=usage.get("totalTokens", input_tokens + output_tokens),
    )


def map_stop_reason(stop_reason: str | None) -> FinishReason:
    if not stop_reason:
        return FinishReason.STOP
    return FINISH_REASON_MAP.get(stop_reason, FinishReason.STOP)
