"""Anthropic-compatible Messages API endpoints."""

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from ...core.canonical import CancellationToken
from ...core.registry import get_catalog
from ...core.sse import EventStreamEncoder
from ...core.tokens import count_messages_request_tokens
from ...messages import (
    HostToMessagesStreamAdapter,
    generate_message_id,
    messages_error_payload,
    messages_error_response,
    messages_to_canonical,
    validate_messages_request,
)
from .common import client_closed_response, read_json_body, stream_events

logger = logging.getLogger("lmgateway")

MESSAGES_STREAM_ENCODER = EventStreamEncoder(
    messages_error_payload, named_events=True, label="messages"
)


async def messages_endpoint(request: Request) -> Response:
    """POST /anthropic/v1/messages - Anthropic Messages API compatible endpoint."""
    logger.info(f"Handling {request.method} request to {request.url.path}")

    try:
        payload = await read_json_body(request)
        validate_messages_request(payload)
        model = await get_catalog().resolve_model(payload["model"])
        canonical = await messages_to_canonical(payload, model)
    except ClientDisconnect:
        return client_closed_response()
    except Exception as exc:
        return messages_error_response(exc)

    is_stream = payload.get("stream") is True
    logger.info(f"Processing messages request for model {model.id}, stream={is_stream}")

    token = CancellationToken()
    try:
        host_response = await model.send_request(canonical.messages, canonical.options, token)
    except Exception as exc:
        token.cancel()
        return messages_error_response(exc)

    adapter = HostToMessagesStreamAdapter(
        generate_message_id(), model, input_tokens=canonical.input_tokens
    )
    if is_stream:
        return stream_events(
            request, MESSAGES_STREAM_ENCODER, adapter.adapt_stream(host_response), token
        )

    try:
        message = await adapter.collect(host_response)
    except Exception as exc:
        return messages_error_response(exc)
    finally:
        token.cancel()

    logger.info(f"Message {adapter.message_id} for model {model.id} completed")
    return JSONResponse(message)


async def count_tokens_endpoint(request: Request) -> Response:
    """POST /anthropic/v1/messages/count_tokens

    Returns ``{"input_tokens": n}`` counted by the requested model.
    """
    logger.info(f"Handling {request.method} request to {request.url.path}")

    try:
        payload = await read_json_body(request)
        validate_messages_request(payload)
        model = await get_catalog().resolve_model(payload["model"])
        input_tokens = await count_messages_request_tokens(payload, model)
    except ClientDisconnect:
        return client_closed_response()
    except Exception as exc:
        return messages_error_response(exc)

    logger.debug(f"Counted {input_tokens} input tokens for model {model.id}")
    return JSONResponse({"input_tokens": input_tokens})
