"""Anthropic Messages API dialect.

Translates Anthropic Messages requests into canonical host requests and
host responses back into Messages objects and stream events.
"""

from .errors import build_messages_error, messages_error_payload, messages_error_response
from .stream_adapter import HostToMessagesStreamAdapter, generate_message_id
from .translator import (
    build_messages_options,
    messages_to_canonical,
    validate_messages_request,
)

__all__ = [
    "HostToMessagesStreamAdapter",
    "build_messages_error",
    "build_messages_options",
    "generate_message_id",
    "messages_error_payload",
    "messages_error_response",
    "messages_to_canonical",
    "validate_messages_request",
]
