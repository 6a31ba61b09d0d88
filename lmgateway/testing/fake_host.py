"""Scripted host model and catalog for in-process tests."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Deque, Optional, Sequence, Union

from ..core.canonical import (
    CancellationToken,
    CanonicalMessage,
    CanonicalOptions,
    HostPart,
    HostResponse,
    TextPart,
    ToolCallPart,
)
from ..core.catalog import ModelCatalog
from ..core.exceptions import HostModelError
from ..core.host import HostModel, ModelInfo
from ..upstream.model import render_message_text


@dataclass
class HostScript:
    """One scripted answer of :class:`FakeHostModel`.

    Fields:
        parts: Increments to stream, in order
        send_error: Raised by ``send_request`` itself
        error_after_parts: Raise ``stream_error`` after this many parts
        stream_error: Error raised mid-stream
        chunk_delay_s: Delay between parts
    """

    parts: list[HostPart] = field(default_factory=list)
    send_error: Optional[BaseException] = None
    error_after_parts: Optional[int] = None
    stream_error: Optional[BaseException] = None
    chunk_delay_s: Optional[float] = None


@dataclass
class RecordedCall:
    messages: list[CanonicalMessage]
    options: CanonicalOptions
    token: Optional[CancellationToken]


class FakeHostModel(HostModel):
    """Host model that replays queued scripts and records every call.

    Every part handed to a consumer is appended to ``yielded``, and
    ``finished_streams`` counts replays that have run to an end or been closed.

    ``count_tokens`` charges one token per character of the rendered text,
    so counts are deterministic and sensitive to every payload change.
    An empty queue answers with the text ``"hello"``.
    """

    def __init__(
        self,
        model_id: str = "fake-model",
        *,
        display_name: Optional[str] = None,
        vendor: str = "fake",
        scripts: Optional[Sequence[HostScript]] = None,
    ) -> None:
        self.id = model_id
        self.display_name = display_name or model_id
        self.vendor = vendor
        self._queue: Deque[HostScript] = deque(scripts or [])
        self.calls: list[RecordedCall] = []
        self.counted: list[Union[str, CanonicalMessage]] = []
        self.yielded: list[HostPart] = []
        self.finished_streams = 0

    def enqueue(self, script: HostScript) -> None:
        self._queue.append(script)

    def enqueue_text(self, *chunks: str) -> None:
        self.enqueue(HostScript(parts=[TextPart(chunk) for chunk in chunks]))

    def enqueue_tool_call(
        self, name: str, arguments: dict[str, Any], call_id: str = "call_1"
    ) -> None:
        self.enqueue(HostScript(parts=[ToolCallPart(call_id=call_id, name=name, input=arguments)]))

    def enqueue_error(self, message: str, name: str = "Unknown", code: Optional[str] = None) -> None:
        self.enqueue(HostScript(send_error=HostModelError(message, name=name, code=code)))

    async def count_tokens(self, value: Union[str, CanonicalMessage]) -> int:
        self.counted.append(value)
        if isinstance(value, CanonicalMessage):
            return len(render_message_text(value))
        return len(value)

    async def send_request(
        self,
        messages: Sequence[CanonicalMessage],
        options: CanonicalOptions,
        token: Optional[CancellationToken] = None,
    ) -> HostResponse:
        self.calls.append(RecordedCall(list(messages), options, token))
        script = self._queue.popleft() if self._queue else HostScript(parts=[TextPart("hello")])
        if script.send_error is not None:
            raise script.send_error
        return HostResponse(self._replay(script, token))

    async def _replay(
        self, script: HostScript, token: Optional[CancellationToken]
    ) -> AsyncIterator[HostPart]:
        try:
            for index, part in enumerate(script.parts):
                if script.error_after_parts is not None and index >= script.error_after_parts:
                    break
                if token is not None and token.is_cancelled:
                    return
                if script.chunk_delay_s:
                    await asyncio.sleep(script.chunk_delay_s)
                self.yielded.append(part)
                yield part
            if script.error_after_parts is not None:
                raise script.stream_error or HostModelError("stream interrupted")
        finally:
            self.finished_streams += 1


class FakeModelCatalog(ModelCatalog):
    """In-memory catalog over fake (or any) host models."""

    def __init__(
        self,
        models: Optional[Sequence[HostModel]] = None,
        default_model_id: Optional[str] = None,
    ) -> None:
        self.models = {model.id: model for model in models or []}
        if default_model_id is None and self.models:
            default_model_id = next(iter(self.models))
        self.default_model_id = default_model_id

    async def list_models(self) -> list[ModelInfo]:
        return [model.info for model in self.models.values()]

    async def get_model(self, model_id: str) -> Optional[HostModel]:
        return self.models.get(model_id)
