# Copyright (c) Microsoft. All rights reserved.

from collections.abc import Mapping
from typing import Final, Protocol, runtime_checkable

from ._logging import get_logger
from ._settings import BEDROCK_DEFAULT_REGION, BedrockSettings
from .exceptions import ServiceInitializationError

try:
    import boto3
    from botocore.auth import SigV4Auth
    from botocore.awsrequest import AWSRequest
    from botocore.credentials import Credentials
    from botocore.exceptions import BotoCoreError
except ImportError as e:
    raise ImportError(
        "boto3 and botocore are required for AWS Bedrock integration. "
        "Install them with: pip install boto3 botocore"
    ) from e

__all__ = ["BearerTokenSigner", "RequestSigner", "SigV4Signer", "create_signer"]

logger = get_logger("bedrock_converse.auth")

# bedrock-runtime requests are signed with the 'bedrock' service name
SIGNING_SERVICE_NAME: Final[str] = "bedrock"


@runtime_checkable
class RequestSigner(Protocol):
    """Adds authentication headers to an outgoing request."""

    def sign(self, method: str, url: str, body: bytes, headers: Mapping[str, str]) -> dict[str, str]: ...


class SigV4Signer:
    """Signs requests with AWS Signature Version 4 using botocore."""

    def __init__(self, credentials: Credentials, region_name: str) -> None:
        self.credentials = credentials
        self.region_name = region_name

    def sign(self, method: str, url: str, body: bytes, headers: Mapping[str, str]) -> dict[str, str]:
        request = AWSRequest(method=method, url=url, data=body, headers=dict(headers))
        SigV4Auth(self.credentials, SIGNING_SERVICE_NAME, self.region_name).add_auth(request)
        return dict(request.headers.items())


class BearerTokenSigner:
    """Authenticates with a Bedrock API key sent as a bearer token."""

    def __init__(self, token: str) -> None:
        self._token = token

    def sign(self, method: str, url: str, body: bytes, headers: Mapping[str, str]) -> dict[str, str]:
        return {**headers, "Authorization": f"Bearer {self._token}"}


def create_signer(settings: BedrockSettings) -> RequestSigner:
    """Create the request signer for the configured credentials.

    Priority order:
    1. Bearer token (BEDROCK_BEARER_TOKEN)
    2. Explicit AWS credentials (access key/secret key, optional session token)
    3. Default boto3 credential chain

    Raises:
        ServiceInitializationError: If no credentials can be resolved.
    """
    region_name = settings.region or BEDROCK_DEFAULT_REGION

    if settings.bearer_token:
        logger.info("Using bearer token for Bedrock authentication")
        return BearerTokenSigner(settings.bearer_token)

    if settings.access_key_id and settings.secret_access_key:
        logger.info("Using AWS access key/secret for Bedrock authentication")
        credentials = Credentials(
            access_key=str(settings.access_key_id),
            secret_key=str(settings.secret_access_key),
            token=str(settings.session_token) if settings.session_token else None,
        )
        return SigV4Signer(credentials, region_name)

    logger.info("Using default AWS credential chain for Bedrock authentication")
    try:
        credentials = boto3.Session(region_name=region_name).get_credentials()
    except BotoCoreError as ex:
        raise ServiceInitializationError(f"Failed to resolve AWS credentials: {ex}") from ex
    if credentials is None:
        raise ServiceInitializationError(
            "AWS credentials not found. Set 'bearer_token' or 'access_key_id/secret_access_key', "
            "or configure AWS credentials via environment variables or ~/.aws/credentials file."
        )
    return SigV4Signer(credentials, region_name)
