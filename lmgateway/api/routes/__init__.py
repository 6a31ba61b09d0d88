"""API routes for the gateway."""

from .chat import chat_completions
from .messages import count_tokens_endpoint, messages_endpoint
from .models import (
    get_chat_model,
    get_messages_model,
    health,
    list_chat_models,
    list_messages_models,
)

__all__ = [
    "chat_completions",
    "count_tokens_endpoint",
    "get_chat_model",
    "get_messages_model",
    "health",
    "list_chat_models",
    "list_messages_models",
    "messages_endpoint",
]
