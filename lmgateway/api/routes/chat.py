"""OpenAI-compatible chat completions endpoint."""

import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.requests import ClientDisconnect

from ...chat import (
    HostToChatStreamAdapter,
    chat_completion_to_canonical,
    chat_error_payload,
    chat_error_response,
    generate_completion_id,
    validate_chat_completion_request,
)
from ...core.canonical import CancellationToken
from ...core.registry import get_catalog
from ...core.sse import DONE_SENTINEL, EventStreamEncoder
from .common import client_closed_response, read_json_body, stream_events

logger = logging.getLogger("lmgateway")

CHAT_STREAM_ENCODER = EventStreamEncoder(
    chat_error_payload, sentinel=DONE_SENTINEL, label="chat"
)


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /openai/v1/chat/completions
    """
    logger.info(f"Handling {request.method} request to {request.url.path}")

    try:
        payload = await read_json_body(request)
        validate_chat_completion_request(payload)
        model = await get_catalog().resolve_model(payload["model"])
        canonical = await chat_completion_to_canonical(payload, model)
    except ClientDisconnect:
        return client_closed_response()
    except Exception as exc:
        return chat_error_response(exc)

    is_stream = payload.get("stream") is True
    logger.info(f"Processing chat completion for model {model.id}, stream={is_stream}")

    token = CancellationToken()
    try:
        host_response = await model.send_request(canonical.messages, canonical.options, token)
    except Exception as exc:
        token.cancel()
        return chat_error_response(exc)

    adapter = HostToChatStreamAdapter(
        generate_completion_id(), model, input_tokens=canonical.input_tokens
    )
    if is_stream:
        return stream_events(
            request, CHAT_STREAM_ENCODER, adapter.adapt_stream(host_response), token
        )

    try:
        completion = await adapter.collect(host_response)
    except Exception as exc:
        return chat_error_response(exc)
    finally:
        token.cancel()

    logger.info(f"Chat completion {adapter.completion_id} for model {model.id} completed")
    return JSONResponse(completion)
