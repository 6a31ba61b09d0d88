"""SSE (Server-Sent Events) encoding shared by both dialects."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Optional

logger = logging.getLogger("lmgateway")

DONE_SENTINEL = "[DONE]"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def format_sse_event(data: Any, event_type: Optional[str] = None) -> bytes:
    """Format one SSE record.

    ``data`` is JSON encoded unless it is already a string.
    """
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    lines: list[str] = []
    if event_type:
        lines.append(f"event: {event_type}")
    lines.append(f"data: {payload}")
    return ("\n".join(lines) + "\n\n").encode("utf-8")


class EventStreamEncoder:
    """Writes a dialect event sequence as SSE records.

    One record is yielded per event, in arrival order. A failure raised
    while the events are produced becomes exactly one error record built
    by ``error_formatter``; the sentinel (if the dialect has one) follows
    both the normal and the failed ending.
    """

    def __init__(
        self,
        error_formatter: Callable[[BaseException], dict[str, Any]],
        *,
        sentinel: Optional[str] = None,
        named_events: bool = False,
        label: str = "stream",
    ) -> None:
        self.error_formatter = error_formatter
        self.sentinel = sentinel
        self.named_events = named_events
        self.label = label

    def _record(self, event: dict[str, Any]) -> bytes:
        event_type = event.get("type") if self.named_events else None
        return format_sse_event(event, event_type)

    async def encode(
        self,
        events: AsyncIterator[dict[str, Any]],
        request_path: str = "",
    ) -> AsyncIterator[bytes]:
        logger.debug(f"[{self.label}] Streaming started: path={request_path}")
        chunk_count = 0
        failed = False

        try:
            async for event in events:
                record = self._record(event)
                chunk_count += 1
                yield record
        except Exception as exc:
            failed = True
            logger.error(
                f"[{self.label}] Streaming error after {chunk_count} chunks "
                f"on {request_path}: {exc}"
            )
            yield self._record(self.error_formatter(exc))

        if self.sentinel is not None:
            yield format_sse_event(self.sentinel)

        if not failed:
            logger.debug(
                f"[{self.label}] Streaming ended: path={request_path}, "
                f"chunks={chunk_count}"
            )


@dataclass
class SSEEvent:
    data: Optional[str]
    other_lines: list[str] = field(default_factory=list)

    @property
    def event_type(self) -> Optional[str]:
        for line in self.other_lines:
            if line.startswith("event:"):
                return line[6:].strip()
        return None


class SSEDecoder:
    """Incremental decoder for ``text/event-stream`` bodies."""

    def __init__(self) -> None:
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[SSEEvent]:
        if not chunk:
            return []
        text = chunk.decode("utf-8", errors="replace")
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        self._buffer += text
        events: list[SSEEvent] = []

        while True:
            sep_index = self._buffer.find("\n\n")
            if sep_index == -1:
                break
            raw_event = self._buffer[:sep_index]
            self._buffer = self._buffer[sep_index + 2:]
            if not raw_event.strip():
                continue
            events.append(self._parse_event(raw_event))

        return events

    def flush(self) -> list[SSEEvent]:
        """Return the trailing event of a stream that did not end with a blank line."""
        leftover = self._buffer
        self._buffer = ""
        if not leftover.strip():
            return []
        return [self._parse_event(leftover.rstrip("\n"))]

    @staticmethod
    def _parse_event(raw: str) -> SSEEvent:
        data_lines: list[str] = []
        other_lines: list[str] = []
        for line in raw.split("\n"):
            if line.startswith("data:"):
                data_lines.append(line[5:].lstrip())
            else:
                other_lines.append(line)
        data = "\n".join(data_lines) if data_lines else None
        return SSEEvent(data=data, other_lines=other_lines)
