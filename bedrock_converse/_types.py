# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatResponseUpdate",
    "Contents",
    "DataContent",
    "FinishReason",
    "FunctionCallContent",
    "FunctionResultContent",
    "Role",
    "TextContent",
    "TextReasoningContent",
    "ThinkingConfig",
    "ToolDefinition",
    "UsageContent",
    "UsageDetails",
]


class Role(str, Enum):
    """The role of a message author."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class FinishReason(str, Enum):
    """Why the model stopped generating."""

    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CONTENT_FILTER = "content_filter"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextContent(_FrozenModel):
    """Plain text content."""

    type: Literal["text"] = "text"
    text: str


class TextReasoningContent(_FrozenModel):
    """Reasoning produced by the model before its answer.

    ``signature`` must be sent back unchanged for the reasoning to be accepted in a later
    turn. ``redacted_data`` holds the encrypted form of reasoning the service redacted.
    """

    type: Literal["text_reasoning"] = "text_reasoning"
    text: str = ""
    signature: str | None = None
    redacted_data: str | None = None


class DataContent(_FrozenModel):
    """Binary content such as an image, with its media type."""

    type: Literal["data"] = "data"
    data: bytes
    media_type: str

    def has_top_level_media_type(self, top_level: str) -> bool:
        return self.media_type.split("/", 1)[0].lower() == top_level.lower()


class FunctionCallContent(_FrozenModel):
    """A tool invocation requested by the model."""

    type: Literal["function_call"] = "function_call"
    call_id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class FunctionResultContent(_FrozenModel):
    """The result of a tool invocation, sent back to the model."""

    type: Literal["function_result"] = "function_result"
    call_id: str
    result: Any = None
    is_error: bool = False


class UsageDetails(_FrozenModel):
    """Token usage reported by the service."""

    input_token_count: int = 0
    output_token_count: int = 0
    total_token_count: int = 0


class UsageContent(_FrozenModel):
    """Usage details delivered as part of a streamed update."""

    type: Literal["usage"] = "usage"
    details: UsageDetails


Contents = Annotated[
    TextContent | TextReasoningContent | DataContent | FunctionCallContent | FunctionResultContent | UsageContent,
    Field(discriminator="type"),
]


class ChatMessage(_FrozenModel):
    """A single message in a conversation.

    Messages are immutable. ``text`` may be given instead of ``contents`` as a shortcut
    for a single text part.

    Examples:
        .. code-block:: python

            ChatMessage(role=Role.USER, text="Hello")
            ChatMessage(role="assistant", contents=[TextContent(text="Hi there!")])
    """

    role: Role
    contents: tuple[Contents, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _text_shortcut(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "text" in data:
            data = dict(data)
            text = data.pop("text")
            if not data.get("contents") and text is not None:
                data["contents"] = [TextContent(text=text)]
        return data

    @property
    def text(self) -> str:
        """Concatenated text of all text parts."""
        return "".join(content.text for content in self.contents if isinstance(content, TextContent))


class ToolDefinition(_FrozenModel):
    """A tool the model may call.

    Attributes:
        name: The tool name.
        description: What the tool does.
        parameters: JSON schema of the tool input, if any.
        provider_params: Extra Bedrock toolSpec fields merged into the rendered spec.
    """

    name: str
    description: str = ""
    parameters: dict[str, Any] | None = None
    provider_params: dict[str, Any] = Field(default_factory=dict)


class ThinkingConfig(_FrozenModel):
    """Extended thinking settings for reasoning-capable models."""

    enabled: bool = True
    budget_tokens: int | None = None


class ChatRequest(_FrozenModel):
    """A provider-agnostic chat completion request.

    ``tools`` accepts either a sequence of tools or a mapping of name to tool.
    ``params`` is passed through normalization and merged into the wire payload.
    """

    model_id: str | None = None
    messages: tuple[ChatMessage, ...]
    tools: tuple[ToolDefinition, ...] = ()
    temperature: float | None = None
    params: dict[Any, Any] = Field(default_factory=dict)
    response_format: dict[str, Any] | None = None
    thinking: ThinkingConfig | None = None
    tool_choice: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _tools_from_mapping(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and isinstance(data.get("tools"), Mapping):
            data = dict(data)
            data["tools"] = list(data["tools"].values())
        return data


class ChatResponse(BaseModel):
    """A complete response from the Converse API."""

    response_id: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    usage_details: UsageDetails = Field(default_factory=UsageDetails)
    model_id: str | None = None
    finish_reason: FinishReason | None = None
    raw_response: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        return "".join(message.text for message in self.messages)


class ChatResponseUpdate(BaseModel):
    """An incremental update from the ConverseStream API."""

    role: Role | None = None
    contents: list[Contents] = Field(default_factory=list)
    finish_reason: FinishReason | None = None
    raw_response: dict[str, Any] | None = None

    @property
    def text(self) -> str:
        return "".join(content.text for content in self.contents if isinstance(content, TextContent))
