"""Model discovery and resolution."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from .exceptions import InvalidRequestError, ModelNotFoundError
from .host import HostModel, ModelInfo

logger = logging.getLogger("lmgateway")

# Reserved model id that stands for the gateway itself
PROXY_MODEL_ID = "lm-gateway"
PROXY_MODEL_NAME = "LM Gateway"


class ModelCatalog(ABC):
    """Lookup of the host models the gateway can serve."""

    default_model_id: Optional[str] = None

    @abstractmethod
    async def list_models(self) -> list[ModelInfo]:
        """Return descriptors of every available model."""

    @abstractmethod
    async def get_model(self, model_id: str) -> Optional[HostModel]:
        """Return the model with the given id, or ``None``."""

    async def get_model_info(self, model_id: str) -> Optional[ModelInfo]:
        model = await self.get_model(model_id)
        return model.info if model is not None else None

    async def resolve_model(self, model_id: str) -> HostModel:
        """Return the host model for a client-supplied model id.

        The reserved proxy id resolves to the configured default model.

        Raises:
            ModelNotFoundError: If no such model is available.
        """
        if not model_id:
            raise InvalidRequestError(
                "The model field is required", code="invalid_model", param="model"
            )

        target = model_id
        if model_id == PROXY_MODEL_ID:
            if not self.default_model_id:
                logger.error("No default model configured for the proxy model id")
                raise ModelNotFoundError(model_id)
            target = self.default_model_id

        model = await self.get_model(target)
        if model is None:
            logger.warning(f"Requested model '{model_id}' is not available")
            raise ModelNotFoundError(model_id)
        logger.debug(f"Resolved model '{model_id}' to '{model.id}'")
        return model
