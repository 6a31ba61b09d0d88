"""Messages API error objects."""

from __future__ import annotations

import logging
from typing import Any

from fastapi.responses import JSONResponse

from ..core.errors import ErrorKind, MappedError, map_error

logger = logging.getLogger("lmgateway")

MESSAGES_ERROR_TYPES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_REQUEST: "invalid_request_error",
    ErrorKind.INVALID_MODEL: "invalid_request_error",
    ErrorKind.PERMISSION_DENIED: "permission_error",
    ErrorKind.CONTENT_BLOCKED: "permission_error",
    ErrorKind.MODEL_NOT_FOUND: "not_found_error",
    ErrorKind.QUOTA_EXCEEDED: "rate_limit_error",
    ErrorKind.UPSTREAM_PASSTHROUGH: "api_error",
    ErrorKind.UNKNOWN: "api_error",
}


def build_messages_error(mapped: MappedError) -> dict[str, Any]:
    """Build the ``error`` object of a Messages API error body."""
    error_type = MESSAGES_ERROR_TYPES[mapped.kind]
    if mapped.kind is ErrorKind.UPSTREAM_PASSTHROUGH and mapped.upstream_error:
        error_type = str(mapped.upstream_error.get("type") or error_type)
    return {"type": error_type, "message": mapped.message}


def messages_error_payload(exc: BaseException) -> dict[str, Any]:
    """Map an exception to a Messages API error body."""
    return {"type": "error", "error": build_messages_error(map_error(exc))}


def messages_error_response(exc: BaseException) -> JSONResponse:
    mapped = map_error(exc)
    logger.error(
        f"Messages API error: kind={mapped.kind.value}, "
        f"status={mapped.status_code}, message={mapped.message}"
    )
    payload = {"type": "error", "error": build_messages_error(mapped)}
    return JSONResponse(payload, status_code=mapped.status_code)
