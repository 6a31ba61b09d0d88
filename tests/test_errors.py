"""Tests for the error taxonomy and its two wire shapes."""

import pytest

from lmgateway.chat import build_chat_error, chat_error_payload
from lmgateway.core import (
    ErrorKind,
    HostModelError,
    InvalidRequestError,
    ModelNotFoundError,
    map_error,
    parse_upstream_failure,
)
from lmgateway.core.errors import KIND_BY_HOST_ERROR_NAME, STATUS_BY_KIND
from lmgateway.messages import build_messages_error, messages_error_payload

PASSTHROUGH_MESSAGE = 'Request Failed: 503 {"error":{"type":"overloaded","message":"busy"}}'


class TestMapError:
    """Every failure reduces to exactly one kind and status."""

    @pytest.mark.parametrize(
        "name, kind, status",
        [
            ("InvalidMessageFormat", ErrorKind.INVALID_REQUEST, 400),
            ("InvalidModel", ErrorKind.INVALID_MODEL, 400),
            ("NoPermissions", ErrorKind.PERMISSION_DENIED, 403),
            ("Blocked", ErrorKind.CONTENT_BLOCKED, 403),
            ("NotFound", ErrorKind.MODEL_NOT_FOUND, 404),
            ("ChatQuotaExceeded", ErrorKind.QUOTA_EXCEEDED, 429),
            ("Unknown", ErrorKind.UNKNOWN, 500),
            ("SomethingElse", ErrorKind.UNKNOWN, 500),
        ],
    )
    def test_host_error_names(self, name, kind, status):
        mapped = map_error(HostModelError("failed", name=name))

        assert mapped.kind is kind
        assert mapped.status_code == status
        assert mapped.message == "failed"

    def test_every_host_name_has_a_status(self):
        for kind in KIND_BY_HOST_ERROR_NAME.values():
            assert kind in STATUS_BY_KIND

    def test_invalid_request(self):
        mapped = map_error(InvalidRequestError("bad", code="invalid_model", param="model"))

        assert mapped.kind is ErrorKind.INVALID_REQUEST
        assert mapped.status_code == 400
        assert (mapped.code, mapped.param) == ("invalid_model", "model")

    def test_model_not_found(self):
        mapped = map_error(ModelNotFoundError("gpt-9"))

        assert mapped.status_code == 404
        assert mapped.message == "Model gpt-9 not found"

    def test_arbitrary_exception_is_unknown(self):
        mapped = map_error(ValueError("oops"))

        assert mapped.kind is ErrorKind.UNKNOWN
        assert mapped.status_code == 500
        assert mapped.message == "oops"

    def test_empty_message_gets_default(self):
        assert map_error(RuntimeError()).message == "An unknown error has occurred"


class TestUpstreamPassthrough:
    def test_parse(self):
        status, error = parse_upstream_failure(PASSTHROUGH_MESSAGE)

        assert status == 503
        assert error == {"type": "overloaded", "message": "busy"}

    @pytest.mark.parametrize(
        "message",
        [
            "Request Failed: 503 not json",
            'Request Failed: 503 {"error": "flat string"}',
            'Request Failed: 999 {"error": {"message": "x"}}',
            "Something else entirely",
        ],
    )
    def test_unparseable_falls_back(self, message):
        assert parse_upstream_failure(message) is None
        mapped = map_error(HostModelError(message, name="Blocked"))
        assert mapped.kind is ErrorKind.CONTENT_BLOCKED
        assert mapped.status_code == 403

    def test_passthrough_overrides_host_name(self):
        mapped = map_error(HostModelError(PASSTHROUGH_MESSAGE, name="Error"))

        assert mapped.kind is ErrorKind.UPSTREAM_PASSTHROUGH
        assert mapped.status_code == 503
        assert mapped.message == "busy"

    def test_chat_shape_keeps_upstream_type(self):
        payload = chat_error_payload(HostModelError(PASSTHROUGH_MESSAGE))

        assert payload["error"]["type"] == "overloaded"
        assert payload["error"]["message"] == "busy"

    def test_messages_shape_keeps_upstream_type(self):
        payload = messages_error_payload(HostModelError(PASSTHROUGH_MESSAGE))

        assert payload == {"type": "error", "error": {"type": "overloaded", "message": "busy"}}


class TestDialectShapes:
    @pytest.mark.parametrize("kind", [k for k in ErrorKind if k is not ErrorKind.UPSTREAM_PASSTHROUGH])
    def test_each_kind_has_fixed_shapes(self, kind):
        name = next(n for n, k in KIND_BY_HOST_ERROR_NAME.items() if k is kind)
        mapped = map_error(HostModelError("m", name=name))

        chat = build_chat_error(mapped)
        messages = build_messages_error(mapped)

        assert set(chat) == {"message", "type", "code", "param"}
        assert set(messages) == {"type", "message"}
        assert chat["type"] and messages["type"]

    def test_chat_invalid_request_carries_param(self):
        payload = chat_error_payload(
            InvalidRequestError("The messages field is required", code="invalid_message_format", param="messages")
        )

        assert payload["error"] == {
            "message": "The messages field is required",
            "type": "invalid_request_error",
            "code": "invalid_message_format",
            "param": "messages",
        }

    def test_messages_quota(self):
        payload = messages_error_payload(HostModelError("slow down", name="ChatQuotaExceeded"))

        assert payload["error"]["type"] == "rate_limit_error"
