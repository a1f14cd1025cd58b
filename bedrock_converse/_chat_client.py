# Copyright (c) Microsoft. All rights reserved.

from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx

from ._auth import RequestSigner, create_signer
from ._logging import get_logger
from ._models import BedrockModelLister, ModelCapabilities, ModelInfo, ModelLister, StaticModelCapabilities
from ._params import normalize_params
from ._paths import api_base, completion_path, stream_path
from ._payload import render_payload
from ._prompt_arn import validate_prompt_arn_runtime_overrides
from ._responses import parse_converse_response
from ._settings import BEDROCK_DEFAULT_REGION, BedrockSettings
from ._streaming import ConverseStreamProcessor, decode_event_stream
from ._transport import HttpxTransport, Transport, parse_error
from ._types import ChatRequest, ChatResponse, ChatResponseUpdate
from .exceptions import ServiceInvalidRequestError

__all__ = ["BedrockConverseClient"]

logger = get_logger("bedrock_converse.client")


class BedrockConverseClient:
    """AWS Bedrock Converse API client.

    Every request goes through the same pipeline: params are normalized, prompt ARN
    restrictions are checked, the payload is rendered, and only then is it handed to the
    transport. A request that breaks the prompt ARN policy never reaches the network.
    """

    def __init__(
        self,
        *,
        model_id: str | None = None,
        region_name: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        session_token: str | None = None,
        bearer_token: str | None = None,
        request_timeout: float | None = None,
        signer: RequestSigner | None = None,
        transport: Transport | None = None,
        capabilities: ModelCapabilities | None = None,
        model_lister: ModelLister | None = None,
        http_client: httpx.AsyncClient | None = None,
        env_file_path: str | None = None,
        env_file_encoding: str | None = None,
    ) -> None:
        """Initialize a Bedrock Converse client.

        Keyword Args:
            model_id: Default model ID or prompt ARN, used when a request does not name one.
            region_name: AWS region name (default: us-east-1).
            access_key_id: AWS access key ID for SigV4 signing.
            secret_access_key: AWS secret access key for SigV4 signing.
            session_token: AWS session token for temporary credentials.
            bearer_token: Bedrock API key, used instead of SigV4 when given.
            request_timeout: HTTP timeout in seconds.
            signer: Request signer to use instead of one built from the credentials.
            transport: Transport to use instead of the default httpx transport.
            capabilities: Model capability lookup. Defaults to the static marker table.
            model_lister: Model lister. Defaults to the Bedrock control-plane lister.
            http_client: An existing httpx client for the default transport. It is not closed by ``close``.
            env_file_path: Path to environment file for loading settings.
            env_file_encoding: Encoding of the environment file.

        Examples:
            .. code-block:: python

                from bedrock_converse import BedrockConverseClient, ChatMessage, ChatRequest

                # Using standard AWS credentials
                client = BedrockConverseClient(
                    access_key_id="your-access-key",
                    secret_access_key="your-secret-key",
                    model_id="anthropic.claude-3-5-sonnet-20241022-v2:0",
                )

                # Using environment variables (BEDROCK_REGION, BEDROCK_MODEL_ID, ...)
                client = BedrockConverseClient()

                response = await client.complete(
                    ChatRequest(messages=[ChatMessage(role="user", text="Hello")])
                )
        """
        settings = BedrockSettings(
            region=region_name,
            model_id=model_id,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
            bearer_token=bearer_token,
            request_timeout=request_timeout,
            env_file_path=env_file_path,
            env_file_encoding=env_file_encoding,
        )

        self.model_id = settings.model_id
        self.region_name = settings.region or BEDROCK_DEFAULT_REGION
        self.capabilities = capabilities or StaticModelCapabilities()

        if transport is None:
            transport = HttpxTransport(
                base_url=api_base(self.region_name),
                signer=signer or create_signer(settings),
                timeout=settings.request_timeout,
                http_client=http_client,
            )
        self.transport = transport
        self.model_lister = model_lister or BedrockModelLister(
            region_name=self.region_name, capabilities=self.capabilities
        )

    def service_url(self) -> str:
        """Get the URL of the bedrock-runtime endpoint."""
        return api_base(self.region_name)

    def _prepare_request(self, request: ChatRequest, *, stream: bool) -> tuple[str, dict[str, Any]]:
        """Normalize, validate and render a request.

        Returns:
            Tuple of (model_id, payload).

        Raises:
            ServiceInvalidRequestError: If no model ID is available.
            UnsupportedPromptArnParameterError: If a prompt ARN request carries runtime overrides.
            PayloadRenderingError: If the request cannot be serialized.
        """
        model_id = request.model_id or self.model_id
        if not model_id:
            raise ServiceInvalidRequestError(
                "Model ID is required. Set via 'model_id' parameter or BEDROCK_MODEL_ID."
            )

        params = normalize_params(
            request.params, supports_top_k=self.capabilities.supports_reasoning_embedded(model_id)
        )
        validate_prompt_arn_runtime_overrides(
            model_id,
            request.messages,
            request.tools,
            request.temperature,
            params,
        )
        payload = render_payload(
            request.messages,
            tools=request.tools,
            temperature=request.temperature,
            params=params,
            response_format=request.response_format,
            thinking=request.thinking,
            tool_choice=request.tool_choice,
            stream=stream,
        )
        return model_id, payload

    async def complete(self, request: ChatRequest) -> ChatResponse:
        """Get a complete response from the Converse API.

        Raises:
            UnsupportedPromptArnParameterError: Before any network call, for disallowed prompt ARN overrides.
            ServiceResponseException: If the service returns an error.
        """
        model_id, payload = self._prepare_request(request, stream=False)
        response = await self.transport.post(completion_path(model_id), payload, request.headers)
        return parse_converse_response(response, model_id)

    def stream(self, request: ChatRequest) -> AsyncIterator[ChatResponseUpdate]:
        """Stream a response from the ConverseStream API.

        The request is validated and rendered when this method is called, so policy
        errors are raised here rather than on first iteration.

        Examples:
            .. code-block:: python

                async for update in client.stream(request):
                    print(update.text, end="")
        """
        model_id, payload = self._prepare_request(request, stream=True)
        return self._stream_updates(stream_path(model_id), payload, request.headers)

    async def _stream_updates(
        self, path: str, payload: dict[str, Any], headers: Mapping[str, str]
    ) -> AsyncIterator[ChatResponseUpdate]:
        processor = ConverseStreamProcessor()
        async for event in decode_event_stream(self.transport.stream(path, payload, headers)):
            if update := processor.process_event(event):
                yield update

    async def list_models(self) -> list[ModelInfo]:
        """List the foundation models available in the configured region."""
        return await self.model_lister.list_models()

    @staticmethod
    def parse_error(body: str | bytes | None) -> str | None:
        """Extract a human-readable message from an error response body."""
        return parse_error(body)

    async def close(self) -> None:
        if isinstance(self.transport, HttpxTransport):
            await self.transport.aclose()

    async def __aenter__(self) -> "BedrockConverseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
