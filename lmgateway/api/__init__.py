"""API module for the gateway."""

from fastapi import FastAPI

from .routes import (
    chat_completions,
    count_tokens_endpoint,
    get_chat_model,
    get_messages_model,
    health,
    list_chat_models,
    list_messages_models,
    messages_endpoint,
)

CHAT_PREFIXES = ("/openai/v1", "/openai")
MESSAGES_PREFIXES = ("/anthropic/v1", "/anthropic")


def register_routes(app: FastAPI) -> None:
    """Register both dialects, with and without the ``/v1`` segment."""
    for prefix in CHAT_PREFIXES:
        app.post(f"{prefix}/chat/completions")(chat_completions)
        app.get(f"{prefix}/models")(list_chat_models)
        app.get(f"{prefix}/models/{{model_id:path}}")(get_chat_model)

    for prefix in MESSAGES_PREFIXES:
        app.post(f"{prefix}/messages")(messages_endpoint)
        app.post(f"{prefix}/messages/count_tokens")(count_tokens_endpoint)
        app.get(f"{prefix}/models")(list_messages_models)
        app.get(f"{prefix}/models/{{model_id:path}}")(get_messages_model)

    app.get("/health")(health)


__all__ = ["register_routes"]
