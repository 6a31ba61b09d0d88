"""Host models served by OpenAI-compatible HTTP upstreams."""

from .catalog import ConfigModelCatalog, build_upstream_model, normalize_target_model
from .model import UpstreamChatModel, build_upstream_payload, estimate_tokens
from .transport import (
    clear_upstream_transports,
    get_upstream_transport,
    register_upstream_transport,
)

__all__ = [
    "ConfigModelCatalog",
    "UpstreamChatModel",
    "build_upstream_model",
    "build_upstream_payload",
    "clear_upstream_transports",
    "estimate_tokens",
    "get_upstream_transport",
    "normalize_target_model",
    "register_upstream_transport",
]
