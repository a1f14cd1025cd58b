# Copyright (c) Microsoft. All rights reserved.

import importlib.metadata
from typing import Final

from ._auth import BearerTokenSigner, RequestSigner, SigV4Signer, create_signer
from ._chat_client import BedrockConverseClient
from ._logging import get_logger, setup_logging
from ._models import (
    BedrockModelLister,
    ModelCapabilities,
    ModelInfo,
    ModelLister,
    ModelProvider,
    StaticModelCapabilities,
    detect_model_provider,
)
from ._params import deep_merge, normalize_params
from ._paths import api_base, completion_path, stream_path
from ._payload import render_payload
from ._prompt_arn import has_explicit_inference_config, is_prompt_resource, validate_prompt_arn_runtime_overrides
from ._settings import BedrockSettings, SecretString
from ._transport import HttpxTransport, Transport, parse_error
from ._types import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ChatResponseUpdate,
    DataContent,
    FinishReason,
    FunctionCallContent,
    FunctionResultContent,
    Role,
    TextContent,
    TextReasoningContent,
    ThinkingConfig,
    ToolDefinition,
    UsageContent,
    UsageDetails,
)
from ._version import VERSION
from .exceptions import (
    BedrockConverseException,
    PayloadRenderingError,
    ServiceException,
    ServiceInitializationError,
    ServiceInvalidRequestError,
    ServiceResponseException,
    UnsupportedPromptArnParameterError,
)

try:
    _version = importlib.metadata.version("bedrock-converse")
except importlib.metadata.PackageNotFoundError:
    _version = VERSION  # Fallback for development mode
__version__: Final[str] = _version

__all__ = [
    "BearerTokenSigner",
    "BedrockConverseClient",
    "BedrockConverseException",
    "BedrockModelLister",
    "BedrockSettings",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ChatResponseUpdate",
    "DataContent",
    "FinishReason",
    "FunctionCallContent",
    "FunctionResultContent",
    "HttpxTransport",
    "ModelCapabilities",
    "ModelInfo",
    "ModelLister",
    "ModelProvider",
    "PayloadRenderingError",
    "RequestSigner",
    "Role",
    "SecretString",
    "ServiceException",
    "ServiceInitializationError",
    "ServiceInvalidRequestError",
    "ServiceResponseException",
    "SigV4Signer",
    "StaticModelCapabilities",
    "TextContent",
    "TextReasoningContent",
    "ThinkingConfig",
    "ToolDefinition",
    "Transport",
    "UnsupportedPromptArnParameterError",
    "UsageContent",
    "UsageDetails",
    "__version__",
    "api_base",
    "completion_path",
    "create_signer",
    "deep_merge",
    "detect_model_provider",
    "get_logger",
    "has_explicit_inference_config",
    "is_prompt_resource",
    "normalize_params",
    "parse_error",
    "render_payload",
    "setup_logging",
    "stream_path",
    "validate_prompt_arn_runtime_overrides",
]
