"""Chat Completions dialect.

Translates Chat Completions requests into canonical host requests and host
responses back into Chat Completions objects and chunks.
"""

from .errors import build_chat_error, chat_error_payload, chat_error_response
from .stream_adapter import HostToChatStreamAdapter, generate_completion_id
from .translator import (
    build_chat_options,
    chat_completion_to_canonical,
    validate_chat_completion_request,
)

__all__ = [
    "HostToChatStreamAdapter",
    "build_chat_error",
    "build_chat_options",
    "chat_completion_to_canonical",
    "chat_error_payload",
    "chat_error_response",
    "generate_completion_id",
    "validate_chat_completion_request",
]
