# Copyright (c) Microsoft. All rights reserved.

"""Rendering of chat requests into Converse API payloads.

Rendering runs after validation and never rejects a request on policy grounds. It only
fails when part of the request cannot be expressed as JSON.
"""

import base64
import json
from collections.abc import Mapping, Sequence
from typing import Any, Final

from ._logging import get_logger
from ._params import ADDITIONAL_FIELDS_KEY, deep_merge
from ._prompt_arn import INFERENCE_CONFIG_KEY, has_explicit_inference_config
from ._types import (
    ChatMessage,
    Contents,
    DataContent,
    FunctionCallContent,
    FunctionResultContent,
    Role,
    TextContent,
    TextReasoningContent,
    ThinkingConfig,
    ToolDefinition,
)
from .exceptions import PayloadRenderingError

__all__ = ["render_payload"]

logger = get_logger("bedrock_converse.payload")

DEFAULT_THINKING_BUDGET_TOKENS: Final[int] = 1024
DEFAULT_SCHEMA_NAME: Final[str] = "response"

ROLE_MAP: dict[Role, str] = {
    Role.USER: "user",
    Role.ASSISTANT: "assistant",
    Role.TOOL: "user",  # Tool results are sent as user messages
}

IMAGE_FORMATS: dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/jpg": "jpeg",
    "image/gif": "gif",
    "image/webp": "webp",
}

# Params consumed by dedicated payload blocks; everything else is merged as-is.
_CONSUMED_PARAMS: frozenset[str] = frozenset({INFERENCE_CONFIG_KEY, ADDITIONAL_FIELDS_KEY})


def render_payload(
    messages: Sequence[ChatMessage],
    *,
    tools: Sequence[ToolDefinition] | Mapping[str, ToolDefinition],
    temperature: float | None,
    params: Mapping[str, Any],
    response_format: Mapping[str, Any] | None = None,
    thinking: ThinkingConfig | None = None,
    tool_choice: str | None = None,
    stream: bool = False,
) -> dict[str, Any]:
    """Render a Converse (or ConverseStream) request body.

    Both APIs take the same body; ``stream`` only selects the endpoint upstream and is
    accepted here so callers can pass the full request shape.

    Args:
        messages: The conversation, in order. System messages become the ``system`` block.

    Keyword Args:
        tools: Tool definitions; rendered as ``toolConfig`` when not empty.
        temperature: Sampling temperature; rendered into ``inferenceConfig`` when set.
        params: Normalized request params.
        response_format: JSON schema the response text must follow.
        thinking: Extended thinking settings.
        tool_choice: One of 'auto', 'required', 'none' or a tool name.
        stream: Whether the payload is for the streaming endpoint.

    Returns:
        The payload. Optional blocks are omitted rather than sent empty.

    Raises:
        PayloadRenderingError: If the request contains values that cannot be serialized.
    """
    conversation_messages, system_messages = _convert_messages(messages)
    payload: dict[str, Any] = {"messages": conversation_messages}

    if system_messages:
        payload["system"] = system_messages

    if tool_config := _convert_tools(tools):
        if tool_choice_block := _convert_tool_choice(tool_choice):
            tool_config["toolChoice"] = tool_choice_block
        payload["toolConfig"] = tool_config

    if inference_config := _inference_config(temperature, params):
        payload["inferenceConfig"] = inference_config

    if additional_fields := _additional_fields(params, thinking):
        payload[ADDITIONAL_FIELDS_KEY] = additional_fields

    if response_format is not None:
        payload["outputConfig"] = _output_config(response_format)

    for key, value in params.items():
        if key in _CONSUMED_PARAMS:
            continue
        payload = deep_merge(payload, {key: value})

    payload.pop("tools", None)
    logger.debug(f"Rendered {'converse-stream' if stream else 'converse'} payload with keys {sorted(payload)}")
    return payload


def _convert_messages(messages: Sequence[ChatMessage]) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Split messages into the conversation list and the system block.

    Returns:
        Tuple of (conversation_messages, system_messages).
    """
    system_messages: list[dict[str, Any]] = []
    conversation_messages: list[dict[str, Any]] = []

    for message in messages:
        if message.role == Role.SYSTEM:
            system_messages.append({"text": message.text})
        else:
            conversation_messages.append(
                {"role": ROLE_MAP[message.role], "content": _convert_contents(message.contents)}
            )

    return conversation_messages, system_messages


def _convert_contents(contents: Sequence[Contents]) -> list[dict[str, Any]]:
    """Convert content parts to Converse content blocks.

    Converse content blocks:
    - text: {'text': '...'}
    - reasoningContent: {'reasoningContent': {'reasoningText': {'text': '...', 'signature': '...'}}}
    - image: {'image': {'format': 'png', 'source': {'bytes': '<base64>'}}}
    - toolUse: {'toolUse': {'toolUseId': '...', 'name': '...', 'input': {...}}}
    - toolResult: {'toolResult': {'toolUseId': '...', 'content': [...]}}
    """
    blocks: list[dict[str, Any]] = []

    for content in contents:
        if isinstance(content, TextContent):
            blocks.append({"text": content.text})

        elif isinstance(content, TextReasoningContent):
            if content.redacted_data:
                blocks.append({"reasoningContent": {"redactedContent": content.redacted_data}})
            elif content.signature:
                blocks.append(
                    {"reasoningContent": {"reasoningText": {"text": content.text, "signature": content.signature}}}
                )
            else:
                # The service rejects reasoning it did not sign
                logger.debug("Ignoring unsigned reasoning content")

        elif isinstance(content, DataContent):
            if not content.has_top_level_media_type("image"):
                logger.debug(f"Ignoring unsupported data content media type: {content.media_type}")
                continue
            image_format = IMAGE_FORMATS.get(content.media_type.lower(), "png")
            blocks.append(
                {
                    "image": {
                        "format": image_format,
                        "source": {"bytes": base64.b64encode(content.data).decode("ascii")},
                    }
                }
            )

        elif isinstance(content, FunctionCallContent):
            blocks.append(
                {
                    "toolUse": {
                        "toolUseId": content.call_id,
                        "name": content.name,
                        "input": _ensure_json(content.arguments, f"arguments of tool call '{content.name}'"),
                    }
                }
            )

        elif isinstance(content, FunctionResultContent):
            if isinstance(content.result, str):
                result_contents = [{"text": content.result}]
            elif isinstance(content.result, Mapping):
                result_contents = [{"json": _ensure_json(dict(content.result), "tool result")}]
            else:
                result_contents = [{"text": str(content.result)}]

            tool_result: dict[str, Any] = {"toolUseId": content.call_id, "content": result_contents}
            if content.is_error:
                tool_result["status"] = "error"
            blocks.append({"toolResult": tool_result})

    return blocks


def _convert_tools(tools: Sequence[ToolDefinition] | Mapping[str, ToolDefinition]) -> dict[str, Any] | None:
    """Convert tool definitions to a Converse toolConfig.

    Returns:
        Dictionary with a 'tools' list, or None if there are no tools.
    """
    if not tools:
        return None

    definitions = tools.values() if isinstance(tools, Mapping) else tools
    tool_specs: list[dict[str, Any]] = []
    for tool in definitions:
        schema = tool.parameters if tool.parameters is not None else {"type": "object", "properties": {}}
        tool_spec: dict[str, Any] = {
            "name": tool.name,
            "description": tool.description,
            "inputSchema": {"json": _ensure_json(schema, f"parameter schema of tool '{tool.name}'")},
        }
        if tool.provider_params:
            tool_spec = deep_merge(tool_spec, tool.provider_params)
        tool_specs.append({"toolSpec": tool_spec})

    return {"tools": tool_specs}


def _convert_tool_choice(tool_choice: str | None) -> dict[str, Any] | None:
    """Convert a tool choice to the Converse form.

    'auto' -> {'auto': {}}, 'required' -> {'any': {}}, 'none' -> omitted,
    any other value names the tool to force.
    """
    if tool_choice is None or tool_choice == "auto":
        return {"auto": {}}
    if tool_choice == "required":
        return {"any": {}}
    if tool_choice == "none":
        return None
    return {"tool": {"name": tool_choice}}


def _inference_config(temperature: float | None, params: Mapping[str, Any]) -> dict[str, Any] | None:
    if temperature is None and not has_explicit_inference_config(params):
        return None

    explicit = params.get(INFERENCE_CONFIG_KEY)
    if explicit is not None and not isinstance(explicit, Mapping):
        raise PayloadRenderingError(f"inferenceConfig must be a mapping, got {type(explicit).__name__}.")

    inference_config: dict[str, Any] = dict(explicit or {})
    if temperature is not None:
        inference_config["temperature"] = temperature
    return inference_config


def _additional_fields(params: Mapping[str, Any], thinking: ThinkingConfig | None) -> dict[str, Any]:
    """Merge thinking settings under the caller's additional model request fields."""
    explicit = params.get(ADDITIONAL_FIELDS_KEY)
    if explicit is not None and not isinstance(explicit, Mapping):
        raise PayloadRenderingError(
            f"additionalModelRequestFields must be a mapping, got {type(explicit).__name__}."
        )

    additional_fields: dict[str, Any] = dict(explicit or {})
    if thinking is not None and thinking.enabled:
        thinking_fields = {
            "thinking": {
                "type": "enabled",
                "budget_tokens": thinking.budget_tokens or DEFAULT_THINKING_BUDGET_TOKENS,
            }
        }
        additional_fields = deep_merge(thinking_fields, additional_fields)
    return additional_fields


def _output_config(response_format: Mapping[str, Any]) -> dict[str, Any]:
    schema = dict(response_format)
    try:
        schema_json = json.dumps(schema)
    except (TypeError, ValueError) as ex:
        raise PayloadRenderingError(f"Response format schema is not JSON serializable: {ex}") from ex

    return {
        "textFormat": {
            "type": "json_schema",
            "structure": {
                "jsonSchema": {
                    "schema": schema_json,
                    "name": schema.get("title") or DEFAULT_SCHEMA_NAME,
                }
            },
        }
    }


def _ensure_json(value: Any, what: str) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError) as ex:
        raise PayloadRenderingError(f"The {what} is not JSON serializable: {ex}") from ex
    return value
