# Copyright (c) Microsoft. All rights reserved.

import logging

from .exceptions import BedrockConverseException

__all__ = ["get_logger", "setup_logging"]

LOGGER_NAMESPACE = "bedrock_converse"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure a basic console handler for the package loggers."""
    logging.basicConfig(
        format="[%(asctime)s - %(name)s:%(lineno)d - %(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger(LOGGER_NAMESPACE).setLevel(level)


def get_logger(name: str = LOGGER_NAMESPACE) -> logging.Logger:
    """Get a logger with the specified name, defaulting to 'bedrock_converse'.

    Args:
        name: The name of the logger. Must live under the 'bedrock_converse' namespace.

    Returns:
        The configured logger instance.

    Raises:
        BedrockConverseException: If the name is outside the package namespace.
    """
    if name != LOGGER_NAMESPACE and not name.startswith(f"{LOGGER_NAMESPACE}."):
        raise BedrockConverseException(f"Logger name must start with '{LOGGER_NAMESPACE}', got '{name}'.")
    return logging.getLogger(name)
