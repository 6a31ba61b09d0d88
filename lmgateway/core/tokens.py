"""Token accounting helpers.

All counting is delegated to the host model; these helpers only decide
which representation gets counted.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from .canonical import CanonicalMessage
from .host import HostModel


async def count_text_tokens(model: HostModel, text: str) -> int:
    if not text:
        return 0
    return await model.count_tokens(text)


async def count_message_tokens(model: HostModel, message: CanonicalMessage) -> int:
    return await model.count_tokens(message)


async def count_input_tokens(
    model: HostModel, messages: Iterable[CanonicalMessage]
) -> int:
    """Sum the per-message token cost of already normalized messages."""
    total = 0
    for message in messages:
        total += await count_message_tokens(model, message)
    return total


async def count_messages_request_tokens(
    payload: Mapping[str, Any], model: HostModel
) -> int:
    """Count the input tokens of a raw Messages-dialect request.

    Counts each message's role and content (plain string, or the JSON of
    every content block joined by spaces), the system prompt, and every
    tool's name, description and input schema.
    """
    total = 0

    for message in payload.get("messages") or []:
        total += await count_text_tokens(model, str(message.get("role", "")))
        content = message.get("content")
        if isinstance(content, str):
            total += await count_text_tokens(model, content)
        elif isinstance(content, list):
            joined = " ".join(json.dumps(block, ensure_ascii=False) for block in content)
            total += await count_text_tokens(model, joined)

    system = payload.get("system")
    if isinstance(system, str):
        total += await count_text_tokens(model, system)
    elif isinstance(system, list):
        text = " ".join(str(block.get("text", "")) for block in system)
        total += await count_text_tokens(model, text)

    for tool in payload.get("tools") or []:
        total += await count_text_tokens(model, str(tool.get("name", "")))
        description = tool.get("description")
        if description:
            total += await count_text_tokens(model, description)
        if "input_schema" in tool:
            schema = json.dumps(tool["input_schema"], ensure_ascii=False)
            total += await count_text_tokens(model, schema)

    return total
