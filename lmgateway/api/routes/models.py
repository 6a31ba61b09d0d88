"""Model listing endpoints for both dialects."""

import logging
import time
from datetime import datetime, timezone

from fastapi import Response
from fastapi.responses import JSONResponse

from ...chat import chat_error_response
from ...core.catalog import PROXY_MODEL_ID, PROXY_MODEL_NAME
from ...core.exceptions import ModelNotFoundError
from ...core.host import ModelInfo
from ...core.registry import get_catalog
from ...messages import messages_error_response

logger = logging.getLogger("lmgateway")

# Models have no creation date of their own; report when the gateway started
STARTED_AT = int(time.time())

PROXY_MODEL = ModelInfo(id=PROXY_MODEL_ID, display_name=PROXY_MODEL_NAME, vendor="lmgateway")


def _chat_model_object(info: ModelInfo) -> dict:
    return {
        "id": info.id,
        "object": "model",
        "created": STARTED_AT,
        "owned_by": info.vendor,
    }


def _messages_model_object(info: ModelInfo) -> dict:
    created_at = datetime.fromtimestamp(STARTED_AT, tz=timezone.utc)
    return {
        "id": info.id,
        "type": "model",
        "display_name": info.display_name,
        "created_at": created_at.isoformat().replace("+00:00", "Z"),
    }


async def _available_models() -> list[ModelInfo]:
    models = await get_catalog().list_models()
    return [*models, PROXY_MODEL]


async def _find_model(model_id: str) -> ModelInfo:
    if model_id == PROXY_MODEL_ID:
        return PROXY_MODEL
    info = await get_catalog().get_model_info(model_id)
    if info is None:
        raise ModelNotFoundError(model_id)
    return info


async def list_chat_models() -> Response:
    """List available models in OpenAI API format.

    GET /openai/v1/models
    """
    logger.info("Received models list request")
    try:
        models = await _available_models()
    except Exception as exc:
        return chat_error_response(exc)
    return JSONResponse({"object": "list", "data": [_chat_model_object(m) for m in models]})


async def get_chat_model(model_id: str) -> Response:
    """GET /openai/v1/models/{model_id}"""
    logger.info(f"Received model lookup for '{model_id}'")
    try:
        info = await _find_model(model_id)
    except Exception as exc:
        return chat_error_response(exc)
    return JSONResponse(_chat_model_object(info))


async def list_messages_models() -> Response:
    """List available models in Anthropic API format.

    GET /anthropic/v1/models
    """
    logger.info("Received models list request")
    try:
        models = await _available_models()
    except Exception as exc:
        return messages_error_response(exc)
    data = [_messages_model_object(m) for m in models]
    return JSONResponse({
        "data": data,
        "first_id": data[0]["id"],
        "last_id": data[-1]["id"],
        "has_more": False,
    })


async def get_messages_model(model_id: str) -> Response:
    """GET /anthropic/v1/models/{model_id}"""
    logger.info(f"Received model lookup for '{model_id}'")
    try:
        info = await _find_model(model_id)
    except Exception as exc:
        return messages_error_response(exc)
    return JSONResponse(_messages_model_object(info))


async def health() -> dict:
    """GET /health"""
    return {"status": "ok"}
