"""Model catalog built from the ``model_list`` config section."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.catalog import ModelCatalog
from ..core.exceptions import ConfigurationError
from ..core.host import HostModel, ModelInfo
from .model import UpstreamChatModel

logger = logging.getLogger("lmgateway")


def normalize_target_model(model: str) -> str:
    """Strip the provider prefix from an upstream model name."""
    if model.startswith("openai/"):
        return model[len("openai/"):]
    return model


def build_upstream_model(entry: Mapping[str, Any]) -> UpstreamChatModel:
    """Build one host model from a ``model_list`` entry.

    Raises:
        ConfigurationError: If the entry has no name or no ``api_base``.
    """
    name = entry.get("model_name")
    if not isinstance(name, str) or not name:
        raise ConfigurationError("Every model_list entry needs a model_name")

    params = entry.get("model_params") or {}
    api_base = params.get("api_base")
    if not api_base:
        raise ConfigurationError(f"Model '{name}' is missing model_params.api_base")

    timeout = params.get("timeout")
    try:
        timeout_value = float(timeout) if timeout is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Model '{name}' has an invalid timeout: {timeout!r}") from exc

    return UpstreamChatModel(
        name,
        base_url=str(api_base),
        api_key=str(params.get("api_key") or ""),
        target_model=normalize_target_model(str(params.get("model") or name)),
        display_name=entry.get("display_name") or name,
        vendor=str(entry.get("vendor") or "openai"),
        timeout=timeout_value,
    )


class ConfigModelCatalog(ModelCatalog):
    """Catalog of upstream-backed models, in config order."""

    def __init__(
        self,
        models: Optional[list[HostModel]] = None,
        default_model_id: Optional[str] = None,
    ) -> None:
        self.models: dict[str, HostModel] = {}
        for model in models or []:
            if model.id in self.models:
                logger.warning(f"Duplicate model '{model.id}' in config; keeping the last one")
            self.models[model.id] = model
        self.default_model_id = default_model_id

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "ConfigModelCatalog":
        entries = config.get("model_list") or []
        if not isinstance(entries, list):
            raise ConfigurationError("model_list must be a list")

        models = [build_upstream_model(entry) for entry in entries]
        settings = config.get("gateway_settings") or {}
        default_model_id = settings.get("default_model")
        if default_model_id is None and models:
            default_model_id = models[0].id

        catalog = cls(models, default_model_id=default_model_id)
        if default_model_id and default_model_id not in catalog.models:
            logger.warning(f"Default model '{default_model_id}' is not in model_list")
        logger.info(
            f"Model catalog initialized with {len(catalog.models)} models, "
            f"default={default_model_id}"
        )
        return catalog

    async def list_models(self) -> list[ModelInfo]:
        return [model.info for model in self.models.values()]

    async def get_model(self, model_id: str) -> Optional[HostModel]:
        return self.models.get(model_id)
