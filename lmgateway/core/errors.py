"""Dialect-independent error taxonomy.

Every failure the gateway can surface is reduced to an :class:`ErrorKind`
and an HTTP status here. The dialect packages only decide how a
:class:`MappedError` is labelled on the wire.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .exceptions import HostModelError, InvalidRequestError, ModelNotFoundError

logger = logging.getLogger("lmgateway")

DEFAULT_ERROR_MESSAGE = "An unknown error has occurred"

# Host relaying a failure from a further upstream API, e.g.
#   Request Failed: 503 {"error":{"type":"overloaded","message":"busy"}}
UPSTREAM_FAILURE_PATTERN = re.compile(r"Request Failed: (\d+)\s+(\{.*\})", re.DOTALL)


class ErrorKind(str, Enum):
    INVALID_REQUEST = "invalid_request"
    INVALID_MODEL = "invalid_model"
    PERMISSION_DENIED = "permission_denied"
    CONTENT_BLOCKED = "content_blocked"
    MODEL_NOT_FOUND = "model_not_found"
    QUOTA_EXCEEDED = "quota_exceeded"
    UPSTREAM_PASSTHROUGH = "upstream_passthrough"
    UNKNOWN = "unknown"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.INVALID_MODEL: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.CONTENT_BLOCKED: 403,
    ErrorKind.MODEL_NOT_FOUND: 404,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.UNKNOWN: 500,
}

KIND_BY_HOST_ERROR_NAME: dict[str, ErrorKind] = {
    "InvalidMessageFormat": ErrorKind.INVALID_REQUEST,
    "InvalidModel": ErrorKind.INVALID_MODEL,
    "NoPermissions": ErrorKind.PERMISSION_DENIED,
    "Blocked": ErrorKind.CONTENT_BLOCKED,
    "NotFound": ErrorKind.MODEL_NOT_FOUND,
    "ChatQuotaExceeded": ErrorKind.QUOTA_EXCEEDED,
    "Unknown": ErrorKind.UNKNOWN,
}


@dataclass(frozen=True)
class MappedError:
    kind: ErrorKind
    status_code: int
    message: str
    code: Optional[str] = None
    param: Optional[str] = None
    # Nested ``error`` object of a relayed upstream failure
    upstream_error: Optional[dict[str, Any]] = None


def parse_upstream_failure(message: str) -> Optional[tuple[int, dict[str, Any]]]:
    """Extract ``(status, error object)`` from a relayed upstream failure.

    Returns ``None`` when the message does not carry the pattern or when
    the embedded JSON cannot be used.
    """
    match = UPSTREAM_FAILURE_PATTERN.search(message or "")
    if not match:
        return None
    try:
        status = int(match.group(1))
        body = json.loads(match.group(2))
    except (ValueError, json.JSONDecodeError) as exc:
        logger.warning(f"Unparseable upstream failure body: {exc}")
        return None
    if not isinstance(body, dict) or not isinstance(body.get("error"), dict):
        logger.warning("Upstream failure body has no error object")
        return None
    if not 100 <= status <= 599:
        return None
    return status, body["error"]


def map_error(exc: BaseException) -> MappedError:
    """Reduce any exception to a :class:`MappedError`. Never raises."""
    message = str(getattr(exc, "message", "") or exc) or DEFAULT_ERROR_MESSAGE

    if isinstance(exc, InvalidRequestError):
        return MappedError(
            kind=ErrorKind.INVALID_REQUEST,
            status_code=STATUS_BY_KIND[ErrorKind.INVALID_REQUEST],
            message=message,
            code=exc.code,
            param=exc.param,
        )

    if isinstance(exc, ModelNotFoundError):
        return MappedError(
            kind=ErrorKind.MODEL_NOT_FOUND,
            status_code=STATUS_BY_KIND[ErrorKind.MODEL_NOT_FOUND],
            message=message,
            param="model",
        )

    upstream = parse_upstream_failure(message)
    if upstream is not None:
        status, error_obj = upstream
        return MappedError(
            kind=ErrorKind.UPSTREAM_PASSTHROUGH,
            status_code=status,
            message=str(error_obj.get("message") or DEFAULT_ERROR_MESSAGE),
            code=error_obj.get("code"),
            param=error_obj.get("param"),
            upstream_error=error_obj,
        )

    name = exc.name if isinstance(exc, HostModelError) else ""
    kind = KIND_BY_HOST_ERROR_NAME.get(name, ErrorKind.UNKNOWN)
    code = exc.code if isinstance(exc, HostModelError) else None
    return MappedError(
        kind=kind,
        status_code=STATUS_BY_KIND[kind],
        message=message,
        code=code,
    )
