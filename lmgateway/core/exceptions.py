"""Core exceptions for the gateway."""

from typing import Optional


class GatewayError(Exception):
    """Base exception for gateway errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(GatewayError):
    """Raised when there's an issue with the configuration."""
    pass


class ModelNotFoundError(GatewayError):
    """Raised when a requested model is not offered by the host."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f"Model {model_id} not found")
        self.model_id = model_id


class InvalidRequestError(GatewayError):
    """Raised when an incoming request is invalid."""

    def __init__(
        self,
        message: str,
        code: str = "invalid_request",
        param: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.param = param


class HostModelError(GatewayError):
    """Raised by a host model when a chat request or token count fails.

    ``name`` follows the host's error vocabulary (``InvalidMessageFormat``,
    ``InvalidModel``, ``NoPermissions``, ``Blocked``, ``NotFound``,
    ``ChatQuotaExceeded``, ``Unknown``). Failures relayed from a further
    upstream API use the generic name ``Error`` and a message of the form
    ``Request Failed: <status> <json>``.
    """

    def __init__(
        self,
        message: str,
        name: str = "Unknown",
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.name = name
        self.code = code
