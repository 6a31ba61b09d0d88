"""Core module initialization."""

from .canonical import (
    CancellationToken,
    CanonicalMessage,
    CanonicalOptions,
    CanonicalRequest,
    HostPart,
    HostResponse,
    HostUsage,
    Part,
    Role,
    TextPart,
    ToolCallPart,
    ToolInfo,
    ToolMode,
    ToolResultPart,
)
from .catalog import PROXY_MODEL_ID, PROXY_MODEL_NAME, ModelCatalog
from .errors import ErrorKind, MappedError, map_error, parse_upstream_failure
from .exceptions import (
    ConfigurationError,
    GatewayError,
    HostModelError,
    InvalidRequestError,
    ModelNotFoundError,
)
from .host import HostModel, ModelInfo
from .registry import get_catalog, set_catalog
from .sse import DONE_SENTINEL, EventStreamEncoder, SSEDecoder, SSEEvent, format_sse_event

__all__ = [
    "CancellationToken",
    "CanonicalMessage",
    "CanonicalOptions",
    "CanonicalRequest",
    "ConfigurationError",
    "DONE_SENTINEL",
    "ErrorKind",
    "EventStreamEncoder",
    "GatewayError",
    "HostModel",
    "HostModelError",
    "HostPart",
    "HostResponse",
    "HostUsage",
    "InvalidRequestError",
    "MappedError",
    "ModelCatalog",
    "ModelInfo",
    "ModelNotFoundError",
    "PROXY_MODEL_ID",
    "PROXY_MODEL_NAME",
    "Part",
    "Role",
    "TextPart",
    "ToolCallPart",
    "ToolInfo",
    "ToolMode",
    "SSEDecoder",
    "SSEEvent",
    "ToolResultPart",
    "format_sse_event",
    "get_catalog",
    "map_error",
    "parse_upstream_failure",
    "set_catalog",
]
