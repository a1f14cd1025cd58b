# Copyright (c) Microsoft. All rights reserved.

"""Settings with environment variable and .env file resolution.

Values are resolved in this order:

1. Constructor keyword arguments
2. Environment variables (``env_prefix`` + upper-cased field name)
3. A .env file, loaded with python-dotenv without overriding existing variables
4. Class defaults
"""

import os
from contextlib import suppress
from typing import Any, ClassVar, Final, get_args, get_origin, get_type_hints

from dotenv import load_dotenv

__all__ = ["BEDROCK_DEFAULT_REGION", "BedrockBaseSettings", "BedrockSettings", "SecretString"]

BEDROCK_DEFAULT_REGION: Final[str] = "us-east-1"


class SecretString(str):
    """A string subclass that masks its value in repr().

    SecretString behaves like a regular string in all operations, but its repr()
    shows '**********' so credentials do not end up in logs or tracebacks.

    Example:
        ```python
        secret_key = SecretString("wJalrXUtnFEMI")
        print(secret_key)  # wJalrXUtnFEMI
        print(repr(secret_key))  # SecretString('**********')
        ```
    """

    def __repr__(self) -> str:
        """Return a masked representation to prevent secret exposure."""
        return "SecretString('**********')"


def _coerce_value(value: str, target_type: Any) -> Any:
    """Coerce a string value from the environment to the target type.

    Args:
        value: The string value to coerce.
        target_type: The annotated type of the field.

    Returns:
        The coerced value.

    Raises:
        ValueError: If the value cannot be coerced.
    """
    args = get_args(target_type)

    # Optional fields: try each non-None member of the union
    if get_origin(target_type) is not None and type(None) in args:
        for arg in args:
            if arg is type(None):
                continue
            try:
                return _coerce_value(value, arg)
            except (ValueError, TypeError):
                continue
        return value

    if isinstance(target_type, type) and issubclass(target_type, SecretString):
        return SecretString(value)
    if target_type is str:
        return value
    if target_type is bool:
        return value.lower() in ("true", "1", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)

    return value


class BedrockBaseSettings:
    """Base class for settings loaded from arguments, the environment and .env files.

    Subclasses declare fields as annotated class attributes and set ``env_prefix``.

    Example:
        ```python
        class MySettings(BedrockBaseSettings):
            env_prefix: ClassVar[str] = "MY_APP_"

            region: str | None = None
            timeout: float = 30.0
        ```
    """

    env_prefix: ClassVar[str] = ""

    def __init__(
        self,
        *,
        env_file_path: str | None = None,
        env_file_encoding: str | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize settings from constructor arguments and the environment.

        Keyword Args:
            env_file_path: Path to a .env file. Defaults to ".env" lookup if not provided.
            env_file_encoding: Encoding of the .env file. Defaults to "utf-8".
            **kwargs: Field values; these take precedence over environment variables.
        """
        encoding = env_file_encoding or "utf-8"
        load_dotenv(dotenv_path=env_file_path, encoding=encoding)

        self._env_file_path = env_file_path
        self._env_file_encoding = encoding

        kwargs = {k: v for k, v in kwargs.items() if v is not None}

        for field_name, field_type in self._get_field_hints().items():
            if field_name in kwargs:
                value = kwargs[field_name]
                if isinstance(value, str) and field_type is not str:
                    with suppress(ValueError, TypeError):
                        value = _coerce_value(value, field_type)
                setattr(self, field_name, value)
                continue

            env_value = os.getenv(f"{self.env_prefix}{field_name.upper()}")
            if env_value is not None:
                try:
                    setattr(self, field_name, _coerce_value(env_value, field_type))
                except (ValueError, TypeError):
                    setattr(self, field_name, env_value)
                continue

            setattr(self, field_name, getattr(self.__class__, field_name, None))

    @property
    def env_file_path(self) -> str | None:
        """Get the .env file path used for loading settings."""
        return self._env_file_path

    @property
    def env_file_encoding(self) -> str:
        """Get the encoding used for reading the .env file."""
        return self._env_file_encoding

    def _get_field_hints(self) -> dict[str, Any]:
        """Collect annotated fields from this class and its bases, skipping ClassVars."""
        hints: dict[str, Any] = {}
        for cls in type(self).__mro__:
            if cls in (BedrockBaseSettings, object):
                continue
            with suppress(TypeError):
                for name, hint in get_type_hints(cls).items():
                    if name.startswith("_") or name in hints or get_origin(hint) is ClassVar:
                        continue
                    hints[name] = hint
        return hints

    def __repr__(self) -> str:
        """Return a string representation with secrets masked."""
        fields: list[str] = []
        for field_name in self._get_field_hints():
            value = getattr(self, field_name, None)
            if isinstance(value, SecretString):
                fields.append(f"{field_name}=SecretString('**********')")
            elif value is not None:
                fields.append(f"{field_name}={value!r}")
        return f"{self.__class__.__name__}({', '.join(fields)})"


class BedrockSettings(BedrockBaseSettings):
    """AWS Bedrock Converse settings.

    The settings are first loaded from environment variables with the prefix 'BEDROCK_'.
    If a variable is not set, the .env file is consulted, then the class default.

    Keyword Args:
        region: AWS region of the bedrock-runtime endpoint (default: us-east-1).
        model_id: The default model ID or prompt ARN to use.
        access_key_id: AWS access key ID for SigV4 signing.
        secret_access_key: AWS secret access key for SigV4 signing.
        session_token: AWS session token for temporary credentials.
        bearer_token: Bedrock API key, sent as a bearer token instead of SigV4.
        request_timeout: HTTP timeout in seconds.
        env_file_path: If provided, the .env settings are read from this file path location.
        env_file_encoding: The encoding of the .env file, defaults to 'utf-8'.

    Examples:
        .. code-block:: python

            from bedrock_converse import BedrockSettings

            # Using environment variables
            # BEDROCK_REGION=us-west-2
            # BEDROCK_MODEL_ID=anthropic.claude-3-5-sonnet-20241022-v2:0
            settings = BedrockSettings()

            # Or passing parameters directly
            settings = BedrockSettings(region="eu-central-1", access_key_id="AKIA...", secret_access_key="...")
    """

    env_prefix: ClassVar[str] = "BEDROCK_"

    region: str | None = BEDROCK_DEFAULT_REGION
    model_id: str | None = None
    access_key_id: SecretString | None = None
    secret_access_key: SecretString | None = None
    session_token: SecretString | None = None
    bearer_token: SecretString | None = None
    request_timeout: float | None = 300.0
