# Copyright (c) Microsoft. All rights reserved.

import asyncio
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from ._logging import get_logger
from ._prompt_arn import is_prompt_resource
from .exceptions import ServiceInitializationError, ServiceResponseException

try:
    import boto3
    from botocore.exceptions import BotoCoreError, ClientError
except ImportError as e:
    raise ImportError(
        "boto3 and botocore are required for AWS Bedrock integration. "
        "Install them with: pip install boto3 botocore"
    ) from e

__all__ = [
    "BedrockModelLister",
    "ModelCapabilities",
    "ModelInfo",
    "ModelLister",
    "ModelProvider",
    "StaticModelCapabilities",
    "detect_model_provider",
]

logger = get_logger("bedrock_converse.models")


class ModelProvider(Enum):
    """Model vendors reachable through AWS Bedrock."""

    ANTHROPIC = "anthropic"
    AMAZON = "amazon"
    AI21 = "ai21"
    COHERE = "cohere"
    DEEPSEEK = "deepseek"
    META = "meta"
    MISTRAL = "mistral"
    UNKNOWN = "unknown"


# Model ID fragments of variants that reason step by step before answering.
REASONING_EMBEDDED_MARKERS: tuple[str, ...] = (
    "anthropic.claude-3-7-sonnet",
    "anthropic.claude-sonnet-4",
    "anthropic.claude-opus-4",
    "anthropic.claude-haiku-4",
    "deepseek.r1",
)


def detect_model_provider(model_id: str) -> ModelProvider:
    """Detect the model vendor from a model ID.

    Examples:
        - anthropic.claude-3-5-sonnet-20241022-v2:0 -> ANTHROPIC
        - us.anthropic.claude-sonnet-4-5-20250929-v1:0 -> ANTHROPIC (inference profile)
        - amazon.nova-pro-v1:0 -> AMAZON
    """
    model_id_lower = model_id.lower()
    for provider in ModelProvider:
        if f"{provider.value}." in model_id_lower:
            return provider
    return ModelProvider.UNKNOWN


@runtime_checkable
class ModelCapabilities(Protocol):
    """Capability lookup consulted while preparing a request."""

    def supports_reasoning_embedded(self, model_id: str | None) -> bool: ...


class StaticModelCapabilities:
    """Capability lookup backed by a table of model ID markers.

    Prompt ARNs never match; their model is chosen by the stored prompt.
    """

    def __init__(self, reasoning_embedded_markers: tuple[str, ...] = REASONING_EMBEDDED_MARKERS) -> None:
        self.reasoning_embedded_markers = tuple(marker.lower() for marker in reasoning_embedded_markers)

    def supports_reasoning_embedded(self, model_id: str | None) -> bool:
        if not model_id or is_prompt_resource(model_id):
            return False
        model_id_lower = model_id.lower()
        return any(marker in model_id_lower for marker in self.reasoning_embedded_markers)


class ModelInfo(BaseModel):
    """A foundation model available in the configured region."""

    id: str
    name: str | None = None
    provider: str | None = None
    input_modalities: list[str] = Field(default_factory=list)
    output_modalities: list[str] = Field(default_factory=list)
    supports_streaming: bool = False
    reasoning_embedded: bool = False


@runtime_checkable
class ModelLister(Protocol):
    async def list_models(self) -> list[ModelInfo]: ...


class BedrockModelLister:
    """Lists foundation models through the Bedrock control-plane API."""

    def __init__(
        self,
        *,
        region_name: str,
        bedrock_client: Any | None = None,
        capabilities: ModelCapabilities | None = None,
    ) -> None:
        """Initialize the lister.

        Keyword Args:
            region_name: AWS region to list models for.
            bedrock_client: An existing boto3 ``bedrock`` client. Created lazily if not provided.
            capabilities: Capability lookup used to flag reasoning-embedded models.
        """
        self.region_name = region_name
        self._bedrock_client = bedrock_client
        self.capabilities = capabilities or StaticModelCapabilities()

    @property
    def bedrock_client(self) -> Any:
        if self._bedrock_client is None:
            try:
                self._bedrock_client = boto3.client(service_name="bedrock", region_name=self.region_name)
            except BotoCoreError as ex:
                raise ServiceInitializationError(f"Failed to create Bedrock client: {ex}") from ex
        return self._bedrock_client

    async def list_models(self) -> list[ModelInfo]:
        try:
            # boto3 is synchronous
            response = await asyncio.to_thread(self.bedrock_client.list_foundation_models)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            logger.error(f"Bedrock ListFoundationModels error [{error_code}]: {error_message}")
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            raise ServiceResponseException(error_message, status_code=status_code) from e

        return [self._parse_model_summary(summary) for summary in response.get("modelSummaries", [])]

    def _parse_model_summary(self, summary: dict[str, Any]) -> ModelInfo:
        model_id = summary["modelId"]
        return ModelInfo(
            id=model_id,
            name=summary.get("modelName"),
            provider=summary.get("providerName") or detect_model_provider(model_id).value,
            input_modalities=list(summary.get("inputModalities", [])),
            output_modalities=list(summary.get("outputModalities", [])),
            supports_streaming=bool(summary.get("responseStreamingSupported", False)),
            reasoning_embedded=self.capabilities.supports_reasoning_embedded(model_id),
        )
