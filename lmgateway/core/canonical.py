"""Canonical message model shared by both wire dialects.

Both request adapters translate into these types, and the host model only
ever sees them. The host answers with a stream of the same part types
(plus an optional usage report), which the response adapters translate
back out.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, Optional, Union


class Role(str, Enum):
    """The two roles the host understands."""

    USER = "user"
    ASSISTANT = "assistant"


class ToolMode(str, Enum):
    AUTO = "auto"
    REQUIRED = "required"


@dataclass(frozen=True)
class TextPart:
    value: str


@dataclass(frozen=True)
class ToolCallPart:
    call_id: str
    name: str
    input: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResultPart:
    call_id: str
    content: list[TextPart] = field(default_factory=list)


Part = Union[TextPart, ToolCallPart, ToolResultPart]


@dataclass
class CanonicalMessage:
    role: Role
    content: Union[str, list[Part]]
    name: str = ""

    def text(self) -> str:
        """Return the concatenated text of the message."""
        if isinstance(self.content, str):
            return self.content
        chunks: list[str] = []
        for part in self.content:
            if isinstance(part, TextPart):
                chunks.append(part.value)
            elif isinstance(part, ToolResultPart):
                chunks.extend(item.value for item in part.content)
        return "".join(chunks)


@dataclass
class ToolInfo:
    name: str
    description: str = ""
    input_schema: Optional[dict[str, Any]] = None


@dataclass
class CanonicalOptions:
    """Options passed to the host alongside the messages.

    ``extra`` carries every request field the gateway does not interpret.
    It is forwarded to the host untouched.
    """

    tool_mode: Optional[ToolMode] = None
    tools: list[ToolInfo] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class CanonicalRequest:
    messages: list[CanonicalMessage]
    options: CanonicalOptions
    input_tokens: int = 0


@dataclass(frozen=True)
class HostUsage:
    """Output usage reported by the host itself."""

    output_tokens: int


HostPart = Union[TextPart, ToolCallPart, HostUsage]


class HostResponse:
    """Single-consumer stream of host increments.

    The stream is forward-only: iterating it a second time raises
    ``RuntimeError``. ``aclose`` releases the stream and whatever the host
    attached through ``on_close``, whether or not iteration ever started.
    """

    def __init__(
        self,
        stream: AsyncIterator[HostPart],
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        self._stream = stream
        self._on_close = on_close
        self._consumed = False
        self._closed = False

    @classmethod
    def from_parts(cls, parts: Iterable[HostPart]) -> "HostResponse":
        """Wrap an aggregate host result so it is consumed like a stream."""
        items = list(parts)

        async def _replay() -> AsyncIterator[HostPart]:
            for item in items:
                yield item

        return cls(_replay())

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[HostPart]:
        if self._consumed:
            raise RuntimeError("Host response stream has already been consumed")
        self._consumed = True
        return self._stream.__aiter__()

    async def aclose(self) -> None:
        """Release the stream. Calling it again does nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            close_stream = getattr(self._stream, "aclose", None)
            if close_stream is not None:
                await close_stream()
        finally:
            if self._on_close is not None:
                await self._on_close()


class CancellationToken:
    """Per-request cancellation signal handed to the host."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
