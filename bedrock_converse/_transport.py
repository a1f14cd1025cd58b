# Copyright (c) Microsoft. All rights reserved.

import json
from collections.abc import AsyncIterator, Mapping
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from ._auth import RequestSigner
from ._logging import get_logger
from .exceptions import ServiceResponseException

__all__ = ["HttpxTransport", "Transport", "parse_error"]

logger = get_logger("bedrock_converse.transport")

ERROR_MESSAGE_KEYS: Final[tuple[str, ...]] = ("message", "Message", "error", "__type")
REQUEST_ID_HEADER: Final[str] = "x-amzn-requestid"
EVENT_STREAM_CONTENT_TYPE: Final[str] = "application/vnd.amazon.eventstream"


def parse_error(body: str | bytes | None) -> str | None:
    """Reduce an error response body to a single human-readable message.

    Tries the ``message``, ``Message``, ``error`` and ``__type`` fields of a JSON object in
    that order; a JSON string is returned as is.

    Returns:
        The message, or None when the body is empty, not JSON, or has none of those fields.
    """
    if not body:
        return None
    try:
        parsed = json.loads(body)
    except ValueError:
        return None

    if isinstance(parsed, str):
        return parsed or None
    if isinstance(parsed, Mapping):
        for key in ERROR_MESSAGE_KEYS:
            if value := parsed.get(key):
                return str(value)
    return None


@runtime_checkable
class Transport(Protocol):
    """Sends rendered payloads to the Converse API."""

    async def post(self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> dict[str, Any]: ...

    def stream(
        self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> AsyncIterator[bytes]: ...


class HttpxTransport:
    """Signed JSON transport over an httpx async client."""

    def __init__(
        self,
        *,
        base_url: str,
        signer: RequestSigner,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Keyword Args:
            base_url: The bedrock-runtime endpoint, e.g. https://bedrock-runtime.us-east-1.amazonaws.com.
            signer: Adds authentication headers to each request.
            timeout: Request timeout in seconds.
            http_client: An existing httpx client to use; the caller keeps ownership of it.
                If not provided, one is created and closed by ``aclose``.
        """
        self.base_url = base_url.rstrip("/")
        self.signer = signer
        self._owns_http_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=timeout)

    def _build_request(
        self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str], accept: str
    ) -> httpx.Request:
        url = f"{self.base_url}{path}"
        body = json.dumps(payload).encode("utf-8")
        request_headers = {"Content-Type": "application/json", "Accept": accept, **headers}
        signed_headers = self.signer.sign("POST", url, body, request_headers)
        return self.http_client.build_request("POST", url, content=body, headers=signed_headers)

    async def post(self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str]) -> dict[str, Any]:
        """POST a payload and return the decoded JSON response.

        The response is returned in the boto3 shape, with ``ResponseMetadata`` holding the
        request ID and HTTP status code.

        Raises:
            ServiceResponseException: On connection failures and non-2xx responses.
        """
        request = self._build_request(path, payload, headers, "application/json")
        try:
            response = await self.http_client.send(request)
        except httpx.HTTPError as ex:
            logger.error(f"Bedrock request to {path} failed: {ex}")
            raise ServiceResponseException(f"Bedrock request failed: {ex}") from ex

        if response.is_error:
            self._raise_for_response(response.status_code, response.content)

        result: dict[str, Any] = response.json()
        result["ResponseMetadata"] = {
            "RequestId": response.headers.get(REQUEST_ID_HEADER),
            "HTTPStatusCode": response.status_code,
        }
        return result

    async def stream(
        self, path: str, payload: Mapping[str, Any], headers: Mapping[str, str]
    ) -> AsyncIterator[bytes]:
        """POST a payload and yield the raw event-stream bytes as they arrive.

        Raises:
            ServiceResponseException: On connection failures and non-2xx responses.
        """
        request = self._build_request(path, payload, headers, EVENT_STREAM_CONTENT_TYPE)
        try:
            response = await self.http_client.send(request, stream=True)
        except httpx.HTTPError as ex:
            logger.error(f"Bedrock stream request to {path} failed: {ex}")
            raise ServiceResponseException(f"Bedrock request failed: {ex}") from ex

        try:
            if response.is_error:
                self._raise_for_response(response.status_code, await response.aread())
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as ex:
            logger.error(f"Bedrock stream from {path} interrupted: {ex}")
            raise ServiceResponseException(f"Bedrock stream interrupted: {ex}") from ex
        finally:
            await response.aclose()

    def _raise_for_response(self, status_code: int, body: bytes) -> None:
        text = body.decode("utf-8", errors="replace")
        message = parse_error(text) or f"Bedrock request failed with HTTP status {status_code}"
        logger.error(f"Bedrock API error [{status_code}]: {message}")
        raise ServiceResponseException(message, status_code=status_code, body=text)

    async def aclose(self) -> None:
        """Close the httpx client if this transport created it; a caller-supplied client is left open."""
        if self._owns_http_client:
            await self.http_client.aclose()
