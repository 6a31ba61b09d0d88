"""Chat Completions request -> canonical request translation.

Key mappings:
- user / assistant roles pass through; system, developer, tool and function
  collapse onto the assistant role with a bracketed prefix
- text content parts pass through; image, audio, file and refusal parts are
  serialized into labelled text parts
- function and custom (text / grammar) tools -> ToolInfo
- tool_choice "required" -> ToolMode.REQUIRED, anything else -> ToolMode.AUTO
- every other request field is forwarded untouched in options.extra

Reference:
- OpenAI Chat Completions: https://platform.openai.com/docs/api-reference/chat
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
)
from ..core.exceptions import InvalidRequestError
from ..core.host import HostModel
from ..core.tokens import count_input_tokens

logger = logging.getLogger("lmgateway")

# wire role -> (canonical role, prefix, display name)
ROLE_MAP: dict[str, tuple[Role, str, str]] = {
    "user": (Role.USER, "", "User"),
    "assistant": (Role.ASSISTANT, "", "Assistant"),
    "developer": (Role.ASSISTANT, "[DEVELOPER] ", "Developer"),
    "system": (Role.ASSISTANT, "[SYSTEM] ", "System"),
    "tool": (Role.ASSISTANT, "[TOOL] ", "Tool"),
    "function": (Role.ASSISTANT, "[FUNCTION] ", "Function"),
}

# content part type -> (label, payload key)
NON_TEXT_PARTS: dict[str, tuple[str, str]] = {
    "image_url": ("Image URL", "image_url"),
    "input_audio": ("Input Audio", "input_audio"),
    "file": ("File", "file"),
    "refusal": ("Refusal", "refusal"),
}

TOOL_CHOICE_MODES: dict[str, ToolMode] = {
    "auto": ToolMode.AUTO,
    "required": ToolMode.REQUIRED,
}

# Fields interpreted by the translator; everything else goes to options.extra
CANONICAL_FIELDS = frozenset({"model", "messages", "tools", "tool_choice"})


def validate_chat_completion_request(payload: Any) -> None:
    """Check the fields a chat completion cannot be translated without.

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
            code="invalid_message_format",
            param="messages",
        )
    if not all(isinstance(msg, Mapping) for msg in messages):
        raise InvalidRequestError(
            "Each message must be a JSON object",
            code="invalid_message_format",
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
    # Unknown roles are labelled the same way as system-like roles
    return Role.ASSISTANT, f"[{role.upper()}] ", role.capitalize()


def _describe_part(label: str, payload: Any) -> TextPart:
    return TextPart(f"[{label}]: {json.dumps(payload, ensure_ascii=False)}")


def _convert_content_part(part: Any) -> TextPart:
    if not isinstance(part, Mapping):
        return TextPart(str(part))
    part_type = str(part.get("type", ""))

    if part_type == "text":
        return TextPart(str(part.get("text", "")))

    described = NON_TEXT_PARTS.get(part_type)
    if described is not None:
        label, key = described
        return _describe_part(label, part.get(key))

    logger.warning(f"Unknown content part type: {part_type}")
    return _describe_part(part_type or "Unknown", dict(part))


def _convert_tool_calls(tool_calls: list[Mapping[str, Any]]) -> list[ToolCallPart]:
    calls: list[ToolCallPart] = []
    for index, call in enumerate(tool_calls):
        function = call.get("function") or {}
        arguments = function.get("arguments") or "{}"
        try:
            input_data = json.loads(arguments) if isinstance(arguments, str) else arguments
        except json.JSONDecodeError:
            input_data = {"raw": arguments}
        if not isinstance(input_data, dict):
            input_data = {"value": input_data}
        calls.append(
            ToolCallPart(
                call_id=str(call.get("id") or f"call_{index}"),
                name=str(function.get("name", "")),
                input=input_data,
            )
        )
    return calls


def _convert_message(msg: Mapping[str, Any]) -> CanonicalMessage:
    role, prefix, name = _resolve_role(msg.get("role"))
    content = msg.get("content")
    tool_calls = msg.get("tool_calls") or []

    if isinstance(content, list):
        parts: list[Part] = [_convert_content_part(part) for part in content]
        if prefix:
            parts.insert(0, TextPart(prefix))
    elif tool_calls:
        parts = [TextPart(prefix + str(content))] if content else []
    else:
        return CanonicalMessage(role=role, content=prefix + str(content or ""), name=name)

    parts.extend(_convert_tool_calls(tool_calls))
    return CanonicalMessage(role=role, content=parts, name=name)


def _convert_tool_choice(tool_choice: Any) -> ToolMode:
    """Convert tool_choice to a tool mode.

    There is no "off" mode, so "none" and a pinned function both fall back
    to AUTO; the caller should omit tools if it wants none used.
    """
    if isinstance(tool_choice, str):
        return TOOL_CHOICE_MODES.get(tool_choice, ToolMode.AUTO)
    return ToolMode.AUTO


def _convert_tool(tool: Mapping[str, Any]) -> ToolInfo:
    if tool.get("type") == "custom" or "custom" in tool:
        custom = tool.get("custom") or {}
        info = ToolInfo(
            name=str(custom.get("name", "")),
            description=custom.get("description") or "",
        )
        fmt = custom.get("format") or {}
        if fmt.get("type") == "grammar":
            grammar = fmt.get("grammar") or {}
            info.input_schema = {
                "syntax": grammar.get("syntax"),
                "definition": grammar.get("definition"),
            }
        return info

    function = tool.get("function") or {}
    return ToolInfo(
        name=str(function.get("name", "")),
        description=function.get("description") or "",
        input_schema=function.get("parameters"),
    )


def _collect_extra(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if key not in CANONICAL_FIELDS}


def build_chat_options(payload: Mapping[str, Any]) -> CanonicalOptions:
    options = CanonicalOptions()

    tool_choice: Optional[Any] = payload.get("tool_choice")
    if tool_choice is not None:
        options.tool_mode = _convert_tool_choice(tool_choice)

    tools = payload.get("tools")
    if isinstance(tools, list):
        options.tools = [_convert_tool(tool) for tool in tools]

    options.extra = _collect_extra(payload)
    return options


async def chat_completion_to_canonical(
    payload: Mapping[str, Any], model: HostModel
) -> CanonicalRequest:
    """Translate a Chat Completions request into the canonical form.

    Args:
        payload: Chat Completions request body (already validated)
        model: Host model used for token counting

    Returns:
        Canonical messages, options and the input token count
    """
    logger.debug("Converting chat completion request to canonical request")

    messages = [_convert_message(msg) for msg in payload.get("messages", [])]
    options = build_chat_options(payload)
    input_tokens = await count_input_tokens(model, messages)

    logger.debug(
        f"Converted chat completion request: messages={len(messages)}, "
        f"tools={len(options.tools)}, tool_mode={options.tool_mode}, "
        f"extra={sorted(options.extra)}, input_tokens={input_tokens}"
    )
    return CanonicalRequest(messages=messages, options=options, input_tokens=input_tokens)
