# Copyright (c) Microsoft. All rights reserved.

"""Prompt resource detection and the runtime override policy that goes with it.

A prompt ARN (``arn:aws:bedrock:<region>:<account>:prompt/<id>``) points at a prompt
stored in Bedrock Prompt Management. The stored prompt owns its system instructions,
tools and inference settings, so a Converse request against it must not carry them.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Final

from ._types import ChatMessage, Role, ToolDefinition
from .exceptions import UnsupportedPromptArnParameterError

__all__ = ["has_explicit_inference_config", "is_prompt_resource", "validate_prompt_arn_runtime_overrides"]

PROMPT_ARN_PREFIX: Final[str] = "arn:aws:bedrock:"
PROMPT_ARN_SEGMENT: Final[str] = ":prompt/"
INFERENCE_CONFIG_KEY: Final[str] = "inferenceConfig"
SYSTEM_KEY: Final[str] = "system"
TOOL_CONFIG_KEY: Final[str] = "toolConfig"


def is_prompt_resource(model_id: str | None) -> bool:
    """Whether ``model_id`` is a Bedrock prompt ARN rather than a directly invocable model."""
    if not model_id:
        return False
    return model_id.startswith(PROMPT_ARN_PREFIX) and PROMPT_ARN_SEGMENT in model_id


def has_explicit_inference_config(params: Mapping[str, Any]) -> bool:
    """Whether normalized params carry an inferenceConfig override.

    An empty mapping does not count; any other non-None value does.
    """
    inference_config = params.get(INFERENCE_CONFIG_KEY)
    if isinstance(inference_config, Mapping):
        return len(inference_config) > 0
    return inference_config is not None


def validate_prompt_arn_runtime_overrides(
    model_id: str | None,
    messages: Sequence[ChatMessage],
    tools: Sequence[ToolDefinition] | Mapping[str, ToolDefinition],
    temperature: float | None,
    params: Mapping[str, Any],
) -> None:
    """Reject runtime overrides that a prompt resource does not allow.

    Does nothing for direct model IDs. For prompt ARNs the checks run in order and the
    first violation is raised.

    Raises:
        UnsupportedPromptArnParameterError: If the request carries system messages or tools
            (as request fields or as raw ``system`` / ``toolConfig`` params),
            a temperature or an explicit inferenceConfig.
    """
    if not is_prompt_resource(model_id):
        return

    if any(message.role == Role.SYSTEM for message in messages) or params.get(SYSTEM_KEY):
        raise UnsupportedPromptArnParameterError(
            "Bedrock prompt ARN does not allow runtime system instructions. "
            "Move instructions into the AWS prompt definition."
        )

    if tools or params.get(TOOL_CONFIG_KEY):
        raise UnsupportedPromptArnParameterError(
            "Bedrock prompt ARN does not allow runtime toolConfig. Define tools in the AWS prompt resource."
        )

    if temperature is not None or has_explicit_inference_config(params):
        raise UnsupportedPromptArnParameterError(
            "Bedrock prompt ARN does not allow runtime inferenceConfig overrides. "
            "Configure inference behavior in the AWS prompt resource."
        )
