"""Tests for Anthropic Messages -> canonical request translation."""

import json

import pytest

from lmgateway.core import (
    InvalidRequestError,
    Role,
    TextPart,
    ToolCallPart,
    ToolMode,
    ToolResultPart,
)
from lmgateway.messages.translator import (
    _convert_tool_choice,
    build_messages_options,
    messages_to_canonical,
    validate_messages_request,
)
from lmgateway.testing import FakeHostModel


@pytest.fixture
def model() -> FakeHostModel:
    return FakeHostModel()


class TestValidateMessagesRequest:
    def test_rejects_empty_messages(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_messages_request({"model": "m", "max_tokens": 10, "messages": []})
        assert exc_info.value.param == "messages"

    def test_rejects_missing_model(self):
        with pytest.raises(InvalidRequestError) as exc_info:
            validate_messages_request({"messages": [{"role": "user", "content": "hi"}]})
        assert exc_info.value.code == "invalid_model"


# =============================================================================
# messages_to_canonical() tests
# =============================================================================


class TestMessagesToCanonical:
    """Tests for translating Messages requests into canonical messages."""

    @pytest.mark.asyncio
    async def test_simple_text_message(self, model):
        payload = {
            "model": "claude-3-opus",
            "max_tokens": 1024,
            "messages": [{"role": "user", "content": "Hello, how are you?"}],
        }

        request = await messages_to_canonical(payload, model)

        [message] = request.messages
        assert message.role is Role.USER
        assert message.content == "Hello, how are you?"
        assert request.options.extra == {"max_tokens": 1024}

    @pytest.mark.asyncio
    async def test_system_as_string(self, model):
        payload = {
            "model": "m",
            "system": "You are a helpful assistant.",
            "messages": [{"role": "user", "content": "Hello"}],
        }

        request = await messages_to_canonical(payload, model)

        assert len(request.messages) == 2
        system = request.messages[0]
        assert system.role is Role.ASSISTANT
        assert system.content == "[SYSTEM] You are a helpful assistant."
        assert system.name == "System"

    @pytest.mark.asyncio
    async def test_system_as_content_blocks(self, model):
        payload = {
            "model": "m",
            "system": [
                {"type": "text", "text": "You are a helpful assistant."},
                {"type": "text", "text": "Be concise."},
            ],
            "messages": [{"role": "user", "content": "Hello"}],
        }

        request = await messages_to_canonical(payload, model)

        assert request.messages[0].content == (
            "[SYSTEM] You are a helpful assistant.\nBe concise."
        )

    @pytest.mark.asyncio
    async def test_tool_use_and_result_blocks(self, model):
        payload = {
            "model": "m",
            "messages": [
                {"role": "user", "content": "Weather in Paris?"},
                {
                    "role": "assistant",
                    "content": [
                        {"type": "text", "text": "Let me check."},
                        {
                            "type": "tool_use",
                            "id": "toolu_1",
                            "name": "get_weather",
                            "input": {"city": "Paris"},
                        },
                    ],
                },
                {
                    "role": "user",
                    "content": [
                        {"type": "tool_result", "tool_use_id": "toolu_1", "content": "18C, sunny"}
                    ],
                },
            ],
        }

        request = await messages_to_canonical(payload, model)

        assert request.messages[1].content == [
            TextPart("Let me check."),
            ToolCallPart(call_id="toolu_1", name="get_weather", input={"city": "Paris"}),
        ]
        assert request.messages[2].content == [
            ToolResultPart(call_id="toolu_1", content=[TextPart("18C, sunny")])
        ]

    @pytest.mark.asyncio
    async def test_error_tool_result_is_marked(self, model):
        payload = {
            "model": "m",
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": "toolu_1",
                            "is_error": True,
                            "content": [{"type": "text", "text": "boom"}],
                        }
                    ],
                }
            ],
        }

        request = await messages_to_canonical(payload, model)

        [result] = request.messages[0].content
        assert result.content == [TextPart("[Error] "), TextPart("boom")]

    @pytest.mark.asyncio
    async def test_image_block_round_trips(self, model):
        block = {
            "type": "image",
            "source": {"type": "base64", "media_type": "image/png", "data": "iVBORw0KGgo="},
        }
        payload = {"model": "m", "messages": [{"role": "user", "content": [block]}]}

        request = await messages_to_canonical(payload, model)

        [part] = request.messages[0].content
        assert part.value.startswith("[Image]: ")
        assert json.loads(part.value[len("[Image]: "):]) == {"source": block["source"]}

    @pytest.mark.asyncio
    async def test_unknown_role_is_labelled(self, model):
        payload = {"model": "m", "messages": [{"role": "narrator", "content": "Once"}]}

        request = await messages_to_canonical(payload, model)

        assert request.messages[0].role is Role.ASSISTANT
        assert request.messages[0].content == "[NARRATOR] Once"

    @pytest.mark.asyncio
    async def test_input_tokens_include_system_message(self, model):
        payload = {
            "model": "m",
            "system": "rules",
            "messages": [{"role": "user", "content": "hi"}],
        }

        with_system = await messages_to_canonical(payload, model)
        without_system = await messages_to_canonical(
            {key: value for key, value in payload.items() if key != "system"}, model
        )

        assert with_system.input_tokens > without_system.input_tokens > 0


# =============================================================================
# Options translation
# =============================================================================


class TestConvertToolChoice:
    @pytest.mark.parametrize(
        "choice, expected",
        [
            ({"type": "auto"}, ToolMode.AUTO),
            ({"type": "any"}, ToolMode.REQUIRED),
            ({"type": "none"}, ToolMode.AUTO),
            ({"type": "tool", "name": "get_weather"}, ToolMode.AUTO),
            ("any", ToolMode.REQUIRED),
            (42, ToolMode.AUTO),
        ],
    )
    def test_modes(self, choice, expected):
        assert _convert_tool_choice(choice) is expected


class TestBuildMessagesOptions:
    def test_tools_and_extra(self):
        schema = {"type": "object", "properties": {"q": {"type": "string"}}}
        options = build_messages_options({
            "model": "m",
            "messages": [],
            "system": "s",
            "max_tokens": 100,
            "stop_sequences": ["END"],
            "tool_choice": {"type": "none"},
            "tools": [
                {"name": "search", "description": "Search the web", "input_schema": schema},
                {"type": "web_search_20250305", "name": "web_search"},
            ],
        })

        assert options.tool_mode is ToolMode.AUTO
        assert [tool.name for tool in options.tools] == ["search", "web_search"]
        assert options.tools[0].input_schema == schema
        assert options.tools[1].input_schema is None
        assert options.extra == {"max_tokens": 100, "stop_sequences": ["END"]}
