"""Testing utilities for in-process gateway simulations."""

from .fake_host import FakeHostModel, FakeModelCatalog, HostScript, RecordedCall
from .fake_upstream import FakeUpstream, UpstreamResponse, build_chat_chunk
from .gateway_harness import GatewayHarness

__all__ = [
    "FakeHostModel",
    "FakeModelCatalog",
    "FakeUpstream",
    "GatewayHarness",
    "HostScript",
    "RecordedCall",
    "UpstreamResponse",
    "build_chat_chunk",
]
