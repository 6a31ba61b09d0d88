"""Stream adapter for converting host responses to Anthropic Messages events.

Host increments arrive as text parts and complete tool calls. The adapter
wraps them in the Messages streaming lifecycle:

    event: message_start
    data: {"type":"message_start","message":{...}}

    event: content_block_start
    data: {"type":"content_block_start","index":0,"content_block":{"type":"text","text":""}}

    event: content_block_delta
    data: {"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"Hello"}}

    event: content_block_stop
    data: {"type":"content_block_stop","index":0}

    event: message_delta
    data: {"type":"message_delta","delta":{"stop_reason":"end_turn"},"usage":{"output_tokens":10}}

    event: message_stop
    data: {"type":"message_stop"}

Consecutive text parts share one text block; every tool call gets its own
tool_use block carrying its whole input as a single input_json_delta.
"""

import json
import logging
import uuid
from typing import Any, AsyncIterator, Optional

from ..core.canonical import HostResponse, HostUsage, TextPart, ToolCallPart
from ..core.host import HostModel
from ..core.tokens import count_text_tokens

logger = logging.getLogger("lmgateway")


def generate_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:24]}"


class HostToMessagesStreamAdapter:
    """Converts a host response into Anthropic Messages events or a message.

    This adapter maintains state during streaming to:
    - Track content blocks (text and tool_use)
    - Accumulate text per block
    - Generate proper event sequences
    - Build the final message with usage
    """

    def __init__(
        self,
        message_id: str,
        model: HostModel,
        input_tokens: int = 0,
    ):
        """Initialize the stream adapter.

        Args:
            message_id: The message ID to use (e.g., "msg_xxx")
            model: Host model, used for naming and output token counting
            input_tokens: Token count of the translated request
        """
        self.message_id = message_id
        self.model = model

        self.content_blocks: list[dict[str, Any]] = []
        self.current_text_index: Optional[int] = None

        self.input_tokens = input_tokens
        self.reported_output_tokens: Optional[int] = None

    @property
    def has_tool_use(self) -> bool:
        return any(block["type"] == "tool_use" for block in self.content_blocks)

    @property
    def stop_reason(self) -> str:
        return "tool_use" if self.has_tool_use else "end_turn"

    async def adapt_stream(self, host_response: HostResponse) -> AsyncIterator[dict[str, Any]]:
        """Transform the host stream into Anthropic Messages events.

        Args:
            host_response: The host's response stream

        Yields:
            Anthropic Messages stream event objects
        """
        try:
            yield self._message_start()
            async for part in host_response:
                for event in self._process_part(part):
                    yield event
        finally:
            await host_response.aclose()

        for event in self._close_text_block():
            yield event

        output_tokens = await self._count_output_tokens()
        yield {
            "type": "message_delta",
            "delta": {"stop_reason": self.stop_reason, "stop_sequence": None},
            "usage": {"output_tokens": output_tokens},
        }
        yield {"type": "message_stop"}

    async def collect(self, host_response: HostResponse) -> dict[str, Any]:
        """Drain the host response and build a ``message`` object."""
        try:
            async for part in host_response:
                for _ in self._process_part(part):
                    pass
        finally:
            await host_response.aclose()
        list(self._close_text_block())
        return await self.build_final_message()

    def _process_part(self, part: Any) -> list[dict[str, Any]]:
        if isinstance(part, TextPart):
            return self._process_text(part.value)

        if isinstance(part, ToolCallPart):
            return self._process_tool_call(part)

        if isinstance(part, HostUsage):
            self.reported_output_tokens = part.output_tokens
            return []

        logger.warning(f"MessagesStreamAdapter: ignoring unknown host part {type(part).__name__}")
        return []

    def _process_text(self, text: str) -> list[dict[str, Any]]:
        events: list[dict[str, Any]] = []

        if self.current_text_index is None:
            self.current_text_index = len(self.content_blocks)
            self.content_blocks.append({"type": "text", "text": ""})
            events.append(
                {
                    "type": "content_block_start",
                    "index": self.current_text_index,
                    "content_block": {"type": "text", "text": ""},
                }
            )

        self.content_blocks[self.current_text_index]["text"] += text
        events.append(
            {
                "type": "content_block_delta",
                "index": self.current_text_index,
                "delta": {"type": "text_delta", "text": text},
            }
        )
        return events

    def _process_tool_call(self, part: ToolCallPart) -> list[dict[str, Any]]:
        events = list(self._close_text_block())

        block_index = len(self.content_blocks)
        self.content_blocks.append(
            {"type": "tool_use", "id": part.call_id, "name": part.name, "input": part.input}
        )
        events.append(
            {
                "type": "content_block_start",
                "index": block_index,
                "content_block": {
                    "type": "tool_use",
                    "id": part.call_id,
                    "name": part.name,
                    "input": {},
                },
            }
        )
        events.append(
            {
                "type": "content_block_delta",
                "index": block_index,
                "delta": {
                    "type": "input_json_delta",
                    "partial_json": json.dumps(part.input, ensure_ascii=False),
                },
            }
        )
        events.append({"type": "content_block_stop", "index": block_index})
        return events

    def _close_text_block(self) -> list[dict[str, Any]]:
        if self.current_text_index is None:
            return []
        index = self.current_text_index
        self.current_text_index = None
        return [{"type": "content_block_stop", "index": index}]

    async def _count_output_tokens(self) -> int:
        if self.reported_output_tokens is not None:
            return self.reported_output_tokens
        total = 0
        for block in self.content_blocks:
            if block["type"] == "text":
                total += await count_text_tokens(self.model, block["text"])
            else:
                total += await count_text_tokens(self.model, json.dumps(block, ensure_ascii=False))
        return total

    def _message_start(self) -> dict[str, Any]:
        message = {
            "id": self.message_id,
            "type": "message",
            "role": "assistant",
            "content": [],
            "model": self.model.id,
            "stop_reason": None,
            "stop_sequence": None,
            "usage": {"input_tokens": self.input_tokens, "output_tokens": 0},
        }
        return {"type": "message_start", "message": message}

    async def build_final_message(self) -> dict[str, Any]:
        """Build the complete message object.

        Returns:
            Anthropic Messages API response body
        """
        content = self.content_blocks if self.content_blocks else [{"type": "text", "text": ""}]

        return {
            "id": self.message_id,
            "type": "message",
            "role": "assistant",
            "content": content,
            "model": self.model.id,
            "stop_reason": self.stop_reason,
            "stop_sequence": None,
            "usage": {
                "input_tokens": self.input_tokens,
                "output_tokens": await self._count_output_tokens(),
            },
        }
