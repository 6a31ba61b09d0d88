"""Main FastAPI application for the LM gateway.

Run with ``lmgateway`` (installed script) or::

    uvicorn lmgateway.main:create_app --factory
"""

import logging
import socket
from typing import Any, Mapping, Optional

import uvicorn
from fastapi import FastAPI

from .api import register_routes
from .config_loader import load_config, resolve_log_level, resolve_server_address
from .core.catalog import ModelCatalog
from .core.registry import set_catalog
from .logging import setup_logging
from .upstream import ConfigModelCatalog

logger = logging.getLogger("lmgateway")


def create_app(
    config: Optional[Mapping[str, Any]] = None,
    catalog: Optional[ModelCatalog] = None,
) -> FastAPI:
    """Factory function to create the FastAPI application.

    Args:
        config: Parsed configuration; loaded from disk when omitted.
        catalog: Model catalog to serve; built from ``config`` when omitted.

    Returns:
        The configured FastAPI application instance.
    """
    if catalog is None:
        if config is None:
            config = load_config()
        catalog = ConfigModelCatalog.from_config(config)

    set_catalog(catalog)

    app = FastAPI(title="LM Gateway")
    app.state.catalog = catalog
    register_routes(app)

    @app.on_event("startup")
    async def startup_event():
        models = await catalog.list_models()
        logger.info("LM Gateway ready to handle requests")
        logger.info(f"Available models: {[m.id for m in models]}")
        logger.info(f"Default model: {catalog.default_model_id}")

    logger.info("FastAPI application created")
    return app


def run() -> None:
    """Console entry point: load config, set up logging and serve."""
    config = load_config()
    setup_logging(resolve_log_level(config))
    host, port = resolve_server_address(config)

    logger.info("Configured bind address %s:%s", host, port)
    if host == "0.0.0.0":
        logger.info("Reachable on local network at http://%s:%s", socket.gethostname(), port)

    uvicorn.run(create_app(config), host=host, port=port, log_level="info")


if __name__ == "__main__":
    run()
