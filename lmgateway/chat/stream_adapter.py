"""Stream adapter for converting host responses to Chat Completions.

Host increments arrive as text parts and complete tool calls. Each one
becomes exactly one ``chat.completion.chunk``; the adapter adds the role
chunk in front and the finish/usage chunk at the end:

    data: {"object":"chat.completion.chunk","choices":[{"delta":{"role":"assistant","content":""},...}]}
    data: {"object":"chat.completion.chunk","choices":[{"delta":{"content":"Hello"},...}]}
    data: {"object":"chat.completion.chunk","choices":[{"delta":{"tool_calls":[...]},...}]}
    data: {"object":"chat.completion.chunk","choices":[{"delta":{},"finish_reason":"stop",...}],"usage":{...}}
    data: [DONE]

The ``[DONE]`` sentinel is written by the stream encoder, not here.
"""

import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Optional

from ..core.canonical import HostResponse, HostUsage, TextPart, ToolCallPart
from ..core.host import HostModel
from ..core.tokens import count_text_tokens

logger = logging.getLogger("lmgateway")


def generate_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex[:24]}"


class HostToChatStreamAdapter:
    """Converts a host response into Chat Completions chunks or a completion.

    The adapter keeps the state needed for the final chunk and for the
    non-streaming completion:
    - accumulated text
    - emitted tool calls in order
    - usage reported by the host, if any
    """

    def __init__(
        self,
        completion_id: str,
        model: HostModel,
        input_tokens: int = 0,
    ):
        """Initialize the stream adapter.

        Args:
            completion_id: The completion ID to use (e.g., "chatcmpl-xxx")
            model: Host model, used for naming and output token counting
            input_tokens: Token count of the translated request
        """
        self.completion_id = completion_id
        self.model = model
        self.created = int(time.time())

        self.accumulated_text = ""
        self.tool_calls: list[dict[str, Any]] = []

        self.input_tokens = input_tokens
        self.reported_output_tokens: Optional[int] = None

    @property
    def finish_reason(self) -> str:
        return "tool_calls" if self.tool_calls else "stop"

    async def adapt_stream(self, host_response: HostResponse) -> AsyncIterator[dict[str, Any]]:
        """Transform the host stream into Chat Completions chunks.

        Args:
            host_response: The host's response stream

        Yields:
            Chat completion chunk objects
        """
        try:
            yield self._chunk({"role": "assistant", "content": ""})
            async for part in host_response:
                chunk = self._process_part(part)
                if chunk is not None:
                    yield chunk
        finally:
            await host_response.aclose()

        usage = await self._build_usage()
        yield self._chunk({}, finish_reason=self.finish_reason, usage=usage)

    async def collect(self, host_response: HostResponse) -> dict[str, Any]:
        """Drain the host response and build a ``chat.completion`` object."""
        try:
            async for part in host_response:
                self._process_part(part)
        finally:
            await host_response.aclose()
        return await self.build_final_completion()

    def _process_part(self, part: Any) -> Optional[dict[str, Any]]:
        if isinstance(part, TextPart):
            self.accumulated_text += part.value
            return self._chunk({"content": part.value})

        if isinstance(part, ToolCallPart):
            index = len(self.tool_calls)
            call = {
                "id": part.call_id,
                "type": "function",
                "function": {
                    "name": part.name,
                    "arguments": json.dumps(part.input, ensure_ascii=False),
                },
            }
            self.tool_calls.append(call)
            return self._chunk({"tool_calls": [{"index": index, **call}]})

        if isinstance(part, HostUsage):
            self.reported_output_tokens = part.output_tokens
            return None

        logger.warning(f"ChatStreamAdapter: ignoring unknown host part {type(part).__name__}")
        return None

    async def _count_output_tokens(self) -> int:
        if self.reported_output_tokens is not None:
            return self.reported_output_tokens
        total = await count_text_tokens(self.model, self.accumulated_text)
        for call in self.tool_calls:
            total += await count_text_tokens(self.model, json.dumps(call, ensure_ascii=False))
        return total

    async def _build_usage(self) -> dict[str, int]:
        output_tokens = await self._count_output_tokens()
        return {
            "prompt_tokens": self.input_tokens,
            "completion_tokens": output_tokens,
            "total_tokens": self.input_tokens + output_tokens,
        }

    def _chunk(
        self,
        delta: dict[str, Any],
        *,
        finish_reason: Optional[str] = None,
        usage: Optional[dict[str, int]] = None,
    ) -> dict[str, Any]:
        chunk: dict[str, Any] = {
            "id": self.completion_id,
            "object": "chat.completion.chunk",
            "created": self.created,
            "model": self.model.id,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "logprobs": None,
                    "finish_reason": finish_reason,
                }
            ],
        }
        if usage is not None:
            chunk["usage"] = usage
        return chunk

    async def build_final_completion(self) -> dict[str, Any]:
        """Build the complete ``chat.completion`` object.

        Returns:
            Chat Completions response body
        """
        message: dict[str, Any] = {
            "role": "assistant",
            "content": self.accumulated_text if self.accumulated_text or not self.tool_calls else None,
            "refusal": None,
        }
        if self.tool_calls:
            message["tool_calls"] = self.tool_calls

        return {
            "id": self.completion_id,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model.id,
            "choices": [
                {
                    "index": 0,
                    "message": message,
                    "logprobs": None,
                    "finish_reason": self.finish_reason,
                }
            ],
            "usage": await self._build_usage(),
        }
