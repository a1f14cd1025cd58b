# Copyright (c) Microsoft. All rights reserved.


class BedrockConverseException(Exception):
    """Base class for exceptions in the Bedrock Converse client."""

    pass


class ServiceException(BedrockConverseException):
    """Base class for all service exceptions."""

    pass


class ServiceInitializationError(ServiceException):
    """An error occurred while initializing the service client."""

    pass


class ServiceInvalidRequestError(ServiceException):
    """The request is invalid and was not sent to the service."""

    pass


class UnsupportedPromptArnParameterError(ServiceInvalidRequestError):
    """A prompt resource request carries a runtime override the service does not allow.

    Prompt resources own their system instructions, tool configuration and inference
    settings server-side. The message names the rejected override and how to fix it.
    """

    pass


class PayloadRenderingError(ServiceException):
    """The request could not be rendered into a Converse wire payload."""

    pass


class ServiceResponseException(ServiceException):
    """The service returned an error response."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
