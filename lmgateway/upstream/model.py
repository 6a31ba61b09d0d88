"""Host model backed by an OpenAI-compatible HTTP upstream."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping, Optional, Sequence, Union

import httpx

from ..core.canonical import (
    CancellationToken,
    CanonicalMessage,
    CanonicalOptions,
    HostPart,
    HostResponse,
    HostUsage,
    TextPart,
    ToolCallPart,
    ToolMode,
    ToolResultPart,
)
from ..core.exceptions import HostModelError
from ..core.host import HostModel
from ..core.sse import DONE_SENTINEL, SSEDecoder
from .transport import get_upstream_transport

logger = logging.getLogger("lmgateway")

DEFAULT_TIMEOUT = 60.0
CHARS_PER_TOKEN = 4

# Passthrough options the upstream understands; the rest are dropped
FORWARDED_OPTION_KEYS = frozenset({
    "audio",
    "frequency_penalty",
    "logit_bias",
    "logprobs",
    "max_completion_tokens",
    "max_tokens",
    "metadata",
    "modalities",
    "n",
    "parallel_tool_calls",
    "prediction",
    "presence_penalty",
    "reasoning_effort",
    "response_format",
    "seed",
    "service_tier",
    "stop",
    "store",
    "temperature",
    "top_logprobs",
    "top_p",
    "user",
    "web_search_options",
})


def estimate_tokens(text: str) -> int:
    """Rough token estimate for text the upstream cannot count for us."""
    if not text:
        return 0
    return max(1, (len(text) + CHARS_PER_TOKEN - 1) // CHARS_PER_TOKEN)


def render_message_text(message: CanonicalMessage) -> str:
    """Render every part of a message as text, for token estimation."""
    chunks = [message.role.value]
    if isinstance(message.content, str):
        chunks.append(message.content)
    else:
        for part in message.content:
            if isinstance(part, TextPart):
                chunks.append(part.value)
            elif isinstance(part, ToolCallPart):
                chunks.append(part.name)
                chunks.append(json.dumps(part.input, ensure_ascii=False))
            elif isinstance(part, ToolResultPart):
                chunks.extend(item.value for item in part.content)
    return " ".join(chunks)


def _convert_message_to_chat(message: CanonicalMessage) -> list[dict[str, Any]]:
    """Convert one canonical message to one or more upstream chat messages.

    Tool results become separate ``tool`` messages placed ahead of the
    message's own text, as the chat format requires.
    """
    role = message.role.value
    if isinstance(message.content, str):
        return [{"role": role, "content": message.content}]

    converted: list[dict[str, Any]] = []
    text_chunks: list[str] = []
    tool_calls: list[dict[str, Any]] = []

    for part in message.content:
        if isinstance(part, TextPart):
            text_chunks.append(part.value)
        elif isinstance(part, ToolCallPart):
            tool_calls.append({
                "id": part.call_id,
                "type": "function",
                "function": {
                    "name": part.name,
                    "arguments": json.dumps(part.input, ensure_ascii=False),
                },
            })
        elif isinstance(part, ToolResultPart):
            converted.append({
                "role": "tool",
                "tool_call_id": part.call_id,
                "content": "".join(item.value for item in part.content),
            })

    text = "".join(text_chunks)
    if tool_calls:
        converted.append({"role": "assistant", "content": text or None, "tool_calls": tool_calls})
    elif text or not converted:
        converted.append({"role": role, "content": text})
    return converted


def build_upstream_payload(
    target_model: str,
    messages: Sequence[CanonicalMessage],
    options: CanonicalOptions,
) -> dict[str, Any]:
    """Build the upstream chat completion request body."""
    chat_messages: list[dict[str, Any]] = []
    for message in messages:
        chat_messages.extend(_convert_message_to_chat(message))

    payload: dict[str, Any] = {
        key: value for key, value in options.extra.items() if key in FORWARDED_OPTION_KEYS
    }
    dropped = sorted(set(options.extra) - FORWARDED_OPTION_KEYS - {"stream", "stream_options"})
    if dropped:
        logger.debug(f"Not forwarding unsupported options upstream: {dropped}")

    payload.update({
        "model": target_model,
        "messages": chat_messages,
        "stream": True,
        "stream_options": {"include_usage": True},
    })

    if options.tools:
        payload["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.input_schema or {"type": "object", "properties": {}},
                },
            }
            for tool in options.tools
        ]
        if options.tool_mode is ToolMode.REQUIRED:
            payload["tool_choice"] = "required"
        elif options.tool_mode is ToolMode.AUTO:
            payload["tool_choice"] = "auto"

    return payload


def format_httpx_error(exc: httpx.HTTPError, url: str, timeout: float) -> str:
    """Produce a detailed, user-facing description of an httpx error."""
    parts = [exc.__class__.__name__]
    message = str(exc).strip()
    if message:
        parts.append(message)
    parts.append(f"url={url}")
    if isinstance(exc, httpx.TimeoutException):
        parts.append(f"timeout={timeout}s")
    return "; ".join(parts)


async def _release(client: httpx.AsyncClient, resp: httpx.Response) -> None:
    await resp.aclose()
    await client.aclose()


@dataclass
class _PendingToolCall:
    call_id: str = ""
    name: str = ""
    arguments: str = ""

    def to_part(self) -> ToolCallPart:
        try:
            input_data = json.loads(self.arguments) if self.arguments else {}
        except json.JSONDecodeError:
            input_data = {"raw": self.arguments}
        if not isinstance(input_data, dict):
            input_data = {"value": input_data}
        return ToolCallPart(call_id=self.call_id, name=self.name, input=input_data)


class UpstreamChatModel(HostModel):
    """Chat model served by an OpenAI-compatible ``/chat/completions`` endpoint.

    Requests are always streamed from the upstream. Text deltas are relayed
    as they arrive; tool calls are assembled and relayed once complete.
    """

    def __init__(
        self,
        model_id: str,
        *,
        base_url: str,
        api_key: str = "",
        target_model: Optional[str] = None,
        display_name: Optional[str] = None,
        vendor: str = "openai",
        timeout: Optional[float] = None,
    ) -> None:
        self.id = model_id
        self.display_name = display_name or model_id
        self.vendor = vendor
        self.base_url = base_url
        self.api_key = api_key
        self.target_model = target_model or model_id
        self.timeout = timeout or DEFAULT_TIMEOUT

    def build_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def count_tokens(self, value: Union[str, CanonicalMessage]) -> int:
        if isinstance(value, CanonicalMessage):
            return estimate_tokens(render_message_text(value))
        return estimate_tokens(value)

    async def send_request(
        self,
        messages: Sequence[CanonicalMessage],
        options: CanonicalOptions,
        token: Optional[CancellationToken] = None,
    ) -> HostResponse:
        url = self.build_url("/chat/completions")
        payload = build_upstream_payload(self.target_model, messages, options)
        logger.debug(
            f"Sending upstream request for {self.id}: url={url}, "
            f"messages={len(payload['messages'])}, tools={len(payload.get('tools', []))}"
        )

        stream_timeout = httpx.Timeout(
            connect=self.timeout, read=None, write=self.timeout, pool=self.timeout
        )
        client = httpx.AsyncClient(
            timeout=stream_timeout,
            transport=get_upstream_transport(url),
            follow_redirects=True,
        )
        try:
            request = client.build_request("POST", url, headers=self._headers(), json=payload)
            resp = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            logger.error(f"Failed to send upstream request to {url}: {exc}")
            raise HostModelError(format_httpx_error(exc, url, self.timeout)) from exc

        if resp.status_code >= 400:
            try:
                data = await resp.aread()
            except httpx.HTTPError as exc:
                logger.error(f"Failed to read upstream error body from {url}: {exc}")
                raise HostModelError(format_httpx_error(exc, url, self.timeout)) from exc
            finally:
                await _release(client, resp)
            body = data.decode("utf-8", errors="replace")
            logger.warning(f"Upstream {url} returned error status {resp.status_code}")
            raise HostModelError(f"Request Failed: {resp.status_code} {body}", name="Error")

        return HostResponse(
            self._iter_parts(client, resp, token),
            on_close=lambda: _release(client, resp),
        )

    async def _iter_parts(
        self,
        client: httpx.AsyncClient,
        resp: httpx.Response,
        token: Optional[CancellationToken],
    ) -> AsyncIterator[HostPart]:
        decoder = SSEDecoder()
        pending: dict[int, _PendingToolCall] = {}
        usage: Optional[HostUsage] = None

        try:
            async for chunk in resp.aiter_bytes():
                if token is not None and token.is_cancelled:
                    logger.info(f"Upstream stream for {self.id} cancelled")
                    return
                for event in decoder.feed(chunk):
                    if event.data is None or event.data == DONE_SENTINEL:
                        continue
                    try:
                        data = json.loads(event.data)
                    except json.JSONDecodeError:
                        logger.debug(f"UpstreamChatModel: Failed to parse: {event.data[:100]}")
                        continue
                    for part in self._process_chunk(data, pending):
                        yield part
                    if isinstance(data.get("usage"), Mapping):
                        usage = HostUsage(int(data["usage"].get("completion_tokens") or 0))
        except httpx.HTTPError as exc:
            raise HostModelError(format_httpx_error(exc, str(resp.url), self.timeout)) from exc
        finally:
            await _release(client, resp)

        for index in sorted(pending):
            yield pending[index].to_part()
        if usage is not None:
            yield usage

    def _process_chunk(
        self, data: Mapping[str, Any], pending: dict[int, _PendingToolCall]
    ) -> list[HostPart]:
        error = data.get("error")
        if isinstance(error, Mapping):
            raise HostModelError(str(error.get("message") or error), code=error.get("code"))

        parts: list[HostPart] = []
        for choice in data.get("choices") or []:
            delta = choice.get("delta") or {}
            content = delta.get("content")
            if content:
                parts.append(TextPart(content))

            for tc in delta.get("tool_calls") or []:
                call = pending.setdefault(int(tc.get("index", 0)), _PendingToolCall())
                if tc.get("id"):
                    call.call_id = tc["id"]
                function = tc.get("function") or {}
                if function.get("name"):
                    call.name = function["name"]
                call.arguments += function.get("arguments") or ""

            if choice.get("finish_reason") and pending:
                parts.extend(pending[index].to_part() for index in sorted(pending))
                pending.clear()
        return parts
