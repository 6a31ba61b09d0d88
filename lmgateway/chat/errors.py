"""Chat Completions error objects."""

from __future__ import annotations

import logging
from typing import Any

from fastapi.responses import JSONResponse

from ..core.errors import ErrorKind, MappedError, map_error

logger = logging.getLogger("lmgateway")

# kind -> (type, code)
CHAT_ERROR_LABELS: dict[ErrorKind, tuple[str, str]] = {
    ErrorKind.INVALID_REQUEST: ("invalid_request_error", "invalid_message_format"),
    ErrorKind.INVALID_MODEL: ("invalid_request_error", "invalid_model"),
    ErrorKind.PERMISSION_DENIED: ("access_terminated", "access_terminated"),
    ErrorKind.CONTENT_BLOCKED: ("blocked", "blocked"),
    ErrorKind.MODEL_NOT_FOUND: ("not_found_error", "model_not_found"),
    ErrorKind.QUOTA_EXCEEDED: ("insufficient_quota", "quota_exceeded"),
    ErrorKind.UPSTREAM_PASSTHROUGH: ("api_error", "upstream_error"),
    ErrorKind.UNKNOWN: ("server_error", "internal_server_error"),
}


def build_chat_error(mapped: MappedError) -> dict[str, Any]:
    """Build the ``error`` object of a Chat Completions error body."""
    error_type, default_code = CHAT_ERROR_LABELS[mapped.kind]
    code = mapped.code or default_code
    if mapped.kind is ErrorKind.UPSTREAM_PASSTHROUGH and mapped.upstream_error:
        error_type = str(mapped.upstream_error.get("type") or error_type)
        code = mapped.upstream_error.get("code")

    return {
        "message": mapped.message,
        "type": error_type,
        "code": code,
        "param": mapped.param,
    }


def chat_error_payload(exc: BaseException) -> dict[str, Any]:
    """Map an exception to a Chat Completions error body."""
    return {"error": build_chat_error(map_error(exc))}


def chat_error_response(exc: BaseException) -> JSONResponse:
    mapped = map_error(exc)
    logger.error(
        f"Chat completions error: kind={mapped.kind.value}, "
        f"status={mapped.status_code}, message={mapped.message}"
    )
    return JSONResponse({"error": build_chat_error(mapped)}, status_code=mapped.status_code)
