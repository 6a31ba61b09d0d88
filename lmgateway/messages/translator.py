"""Anthropic Messages request -> canonical request translation.

Key mappings:
- top-level system (string or text blocks) -> leading assistant message
  prefixed with "[SYSTEM] "
- text blocks pass through; tool_use / tool_result blocks become tool call
  and tool result parts; image, document and thinking blocks are serialized
  into labelled text parts
- tools (custom tools with input_schema, or server tools without) -> ToolInfo
- tool_choice {"type": "any"} -> ToolMode.REQUIRED, anything else -> AUTO
- every other request field is forwarded untouched in options.extra

Reference:
- Anthropic Messages API: https://docs.anthropic.com/en/api/messages
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from ..core.canonical import (
    CanonicalMessage,
    CanonicalOptions,
    CanonicalRequest,
    Part,
    Role,
    TextPart,
    ToolCallPart,
    ToolInfo,
    ToolMode,
    ToolResultPart,
)
from ..core.exceptions import InvalidRequestError
from ..core.host import HostModel
from ..core.tokens import count_input_tokens

logger = logging.getLogger("lmgateway")

SYSTEM_PREFIX = "[SYSTEM] "

ROLE_MAP: dict[str, tuple[Role, str, str]] = {
    "user": (Role.USER, "", "User"),
    "assistant": (Role.ASSISTANT, "", "Assistant"),
}

# block type -> label; the whole block minus its type is serialized
NON_TEXT_BLOCKS: dict[str, str] = {
    "image": "Image",
    "document": "Document",
    "thinking": "Thinking",
    "redacted_thinking": "Redacted Thinking",
}

TOOL_CHOICE_MODES: dict[str, ToolMode] = {
    "auto": ToolMode.AUTO,
    "any": ToolMode.REQUIRED,
}

CANONICAL_FIELDS = frozenset({"model", "messages", "system", "tools", "tool_choice"})


def validate_messages_request(payload: Any) -> None:
    """Check the fields a Messages request cannot be translated without.

    Raises:
        InvalidRequestError: If the body is not an object, the messages
            array is missing or empty, or the model is missing.
    """
    if not isinstance(payload, Mapping):
        raise InvalidRequestError(
            "Request body must be a JSON object", code="invalid_json_shape"
        )

    messages = payload.get("messages")
    if not messages or not isinstance(messages, list):
        raise InvalidRequestError(
            "The messages field is required",
            code="invalid_request_error",
            param="messages",
        )
    if not all(isinstance(msg, Mapping) for msg in messages):
        raise InvalidRequestError(
            "Each message must be a JSON object",
            code="invalid_request_error",
            param="messages",
        )

    model = payload.get("model")
    if not isinstance(model, str) or not model:
        raise InvalidRequestError(
            "The model field is required", code="invalid_model", param="model"
        )


def _resolve_role(raw_role: Any) -> tuple[Role, str, str]:
    role = str(raw_role or "user")
    mapped = ROLE_MAP.get(role)
    if mapped is not None:
        return mapped
    return Role.ASSISTANT, f"[{role.upper()}] ", role.capitalize()


def _describe_block(label: str, payload: Any) -> TextPart:
    return TextPart(f"[{label}]: {json.dumps(payload, ensure_ascii=False)}")


def _convert_tool_result(block: Mapping[str, Any]) -> ToolResultPart:
    """Convert a tool_result block.

    Result content can be a string or an array of blocks; non-text blocks in
    the array are serialized like any other non-text block.
    """
    content = block.get("content")
    parts: list[TextPart] = []

    if isinstance(content, str):
        parts.append(TextPart(content))
    elif isinstance(content, list):
        for item in content:
            converted = _convert_block(item)
            if isinstance(converted, TextPart):
                parts.append(converted)
            else:
                parts.append(_describe_block(str(item.get("type", "")), dict(item)))
    elif content is not None:
        parts.append(TextPart(str(content)))

    if block.get("is_error"):
        parts.insert(0, TextPart("[Error] "))

    return ToolResultPart(call_id=str(block.get("tool_use_id", "")), content=parts)


def _convert_block(block: Any) -> Part:
    if not isinstance(block, Mapping):
        return TextPart(str(block))

    block_type = str(block.get("type", ""))

    if block_type == "text":
        return TextPart(str(block.get("text", "")))

    if block_type == "tool_use":
        input_data = block.get("input")
        return ToolCallPart(
            call_id=str(block.get("id", "")),
            name=str(block.get("name", "")),
            input=input_data if isinstance(input_data, dict) else {},
        )

    if block_type == "tool_result":
        return _convert_tool_result(block)

    label = NON_TEXT_BLOCKS.get(block_type)
    payload = {key: value for key, value in block.items() if key != "type"}
    if label is None:
        logger.warning(f"Unknown content block type: {block_type}")
        label = block_type or "Unknown"
    return _describe_block(label, payload)


def _convert_message(msg: Mapping[str, Any]) -> CanonicalMessage:
    role, prefix, name = _resolve_role(msg.get("role"))
    content = msg.get("content")

    if isinstance(content, list):
        parts: list[Part] = [_convert_block(block) for block in content]
        if prefix:
            parts.insert(0, TextPart(prefix))
        return CanonicalMessage(role=role, content=parts, name=name)

    return CanonicalMessage(role=role, content=prefix + str(content or ""), name=name)


def _convert_system(system: Any) -> Optional[CanonicalMessage]:
    """Convert the top-level system prompt into a prefixed assistant message."""
    if not system:
        return None

    if isinstance(system, str):
        text = system
    elif isinstance(system, list):
        text_parts: list[str] = []
        for block in system:
            if isinstance(block, Mapping) and block.get("type") == "text":
                text_parts.append(str(block.get("text", "")))
            else:
                logger.warning(f"Non-text block in system parameter: {block!r:.80}")
                text_parts.append(_describe_block("System Block", block).value)
        text = "\n".join(text_parts)
    else:
        text = str(system)

    return CanonicalMessage(role=Role.ASSISTANT, content=SYSTEM_PREFIX + text, name="System")


def _convert_tool_choice(tool_choice: Any) -> ToolMode:
    """Convert tool_choice to a tool mode.

    Anthropic: "auto" | "any" | "none" | {"type": "tool", "name": "..."}
    Only "any" forces tool use; everything else, including "none" and a
    pinned tool, falls back to AUTO.
    """
    if isinstance(tool_choice, Mapping):
        tool_choice = tool_choice.get("type")
    if isinstance(tool_choice, str):
        return TOOL_CHOICE_MODES.get(tool_choice, ToolMode.AUTO)
    return ToolMode.AUTO


def _convert_tool(tool: Mapping[str, Any]) -> ToolInfo:
    """Convert an Anthropic tool definition.

    Custom tools: {"name": "...", "description": "...", "input_schema": {...}}
    Server tools: {"type": "web_search_20250305", "name": "web_search", ...}
    """
    return ToolInfo(
        name=str(tool.get("name", "")),
        description=tool.get("description") or "",
        input_schema=tool.get("input_schema"),
    )


def build_messages_options(payload: Mapping[str, Any]) -> CanonicalOptions:
    options = CanonicalOptions()

    tool_choice = payload.get("tool_choice")
    if tool_choice is not None:
        options.tool_mode = _convert_tool_choice(tool_choice)

    tools = payload.get("tools")
    if isinstance(tools, list):
        options.tools = [_convert_tool(tool) for tool in tools]

    options.extra = {
        key: value for key, value in payload.items() if key not in CANONICAL_FIELDS
    }
    return options


async def messages_to_canonical(
    payload: Mapping[str, Any], model: HostModel
) -> CanonicalRequest:
    """Translate an Anthropic Messages request into the canonical form.

    Args:
        payload: Anthropic Messages API request body (already validated)
        model: Host model used for token counting

    Returns:
        Canonical messages, options and the input token count
    """
    logger.debug("Converting messages request to canonical request")

    messages: list[CanonicalMessage] = []
    system_message = _convert_system(payload.get("system"))
    if system_message is not None:
        messages.append(system_message)
    messages.extend(_convert_message(msg) for msg in payload.get("messages", []))

    options = build_messages_options(payload)
    input_tokens = await count_input_tokens(model, messages)

    logger.debug(
        f"Converted messages request: messages={len(messages)}, "
        f"tools={len(options.tools)}, tool_mode={options.tool_mode}, "
        f"extra={sorted(options.extra)}, input_tokens={input_tokens}"
    )
    return CanonicalRequest(messages=messages, options=options, input_tokens=input_tokens)
