"""Exceptions raised by render-deploy."""

from typing import Any


class RenderDeployError(Exception):
    """Base exception for render-deploy."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ConfigurationError(RenderDeployError):
    """Invalid or missing configuration, detected before any request is sent."""

    pass


class RenderAPIError(RenderDeployError):
    """A call to the Render API did not produce a usable answer."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        details: dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if body:
            details["body"] = body[:500]
        super().__init__(message, details)
        self.status_code = status_code


class UnauthorizedError(RenderAPIError):
    """The API key was rejected."""

    pass


class NotFoundError(RenderAPIError):
    """The service or deploy does not exist."""

    pass


class TransportError(RenderAPIError):
    """Network or connection failure before a response was received."""

    pass


class UnexpectedResponseError(RenderAPIError):
    """The response could not be parsed or violated the API contract."""

    pass
