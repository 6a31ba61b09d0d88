"""Helpers shared by the dialect endpoints."""

import json
import logging
from typing import Any, AsyncGenerator, AsyncIterator

from fastapi import Request
from fastapi.responses import Response, StreamingResponse
from starlette.requests import ClientDisconnect

from ...core.canonical import CancellationToken
from ...core.exceptions import InvalidRequestError
from ...core.sse import SSE_HEADERS, EventStreamEncoder

logger = logging.getLogger("lmgateway")

CLIENT_CLOSED_REQUEST = 499


async def read_json_body(request: Request) -> Any:
    """Read and decode the request body.

    Raises:
        ClientDisconnect: If the client goes away before the body is read.
        InvalidRequestError: If the body is not valid JSON.
    """
    try:
        body = await request.body()
    except ClientDisconnect:
        logger.warning(f"Client disconnected before the request body to {request.url.path} was read")
        raise
    try:
        return json.loads(body or b"{}")
    except json.JSONDecodeError as exc:
        logger.error(f"Invalid JSON payload on {request.url.path}: {exc}")
        raise InvalidRequestError("Invalid JSON payload", code="invalid_json") from exc


def client_closed_response() -> Response:
    return Response(status_code=CLIENT_CLOSED_REQUEST)


def stream_events(
    request: Request,
    encoder: EventStreamEncoder,
    events: AsyncGenerator[dict[str, Any], None],
    token: CancellationToken,
) -> StreamingResponse:
    """Build the SSE response for an accepted streaming request.

    ``events`` is the adapted host stream. A failure while it is iterated
    becomes the stream's error record. The token is cancelled once the
    stream ends or the client goes away.
    """

    async def body() -> AsyncIterator[bytes]:
        records = encoder.encode(events, request.url.path)
        try:
            async for record in records:
                yield record
        finally:
            token.cancel()
            await records.aclose()
            await events.aclose()

    return StreamingResponse(body(), media_type="text/event-stream", headers=SSE_HEADERS)
