"""Tests for application assembly and logging setup."""

import logging

from fastapi.testclient import TestClient

from lmgateway.core import get_catalog
from lmgateway.logging import setup_logging
from lmgateway.main import create_app
from lmgateway.upstream import ConfigModelCatalog

from conftest import build_gateway_config


class TestCreateApp:
    def test_builds_catalog_from_config(self):
        app = create_app(build_gateway_config("http://upstream.local/v1"))

        assert isinstance(app.state.catalog, ConfigModelCatalog)
        assert get_catalog() is app.state.catalog

    def test_routes_are_served_with_and_without_version(self):
        app = create_app(build_gateway_config("http://upstream.local/v1"))

        with TestClient(app) as client:
            versioned = client.get("/openai/v1/models")
            bare = client.get("/openai/models")

        assert versioned.status_code == bare.status_code == 200
        assert versioned.json() == bare.json()
        assert [m["id"] for m in bare.json()["data"]] == ["test-model", "lm-gateway"]


class TestSetupLogging:
    def test_single_stdout_handler(self):
        logger = setup_logging("DEBUG")
        setup_logging("DEBUG")

        assert logger.name == "lmgateway"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
