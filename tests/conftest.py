"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

from typing import Any, Generator

import httpx
import pytest

from lmgateway.testing import FakeHostModel, FakeModelCatalog, FakeUpstream, GatewayHarness
from lmgateway.upstream import clear_upstream_transports, register_upstream_transport


# =============================================================================
# Host Fixtures
# =============================================================================


@pytest.fixture
def fake_model() -> FakeHostModel:
    return FakeHostModel("fake-model", display_name="Fake Model", vendor="fake")


@pytest.fixture
def fake_catalog(fake_model: FakeHostModel) -> FakeModelCatalog:
    return FakeModelCatalog([fake_model], default_model_id=fake_model.id)


@pytest.fixture
def harness(fake_catalog: FakeModelCatalog) -> Generator[GatewayHarness, None, None]:
    """Gateway app wired to the fake catalog."""
    with GatewayHarness(fake_catalog) as gateway:
        yield gateway


# =============================================================================
# Transport Registry Fixtures
# =============================================================================


@pytest.fixture
def clear_transport_registry() -> Generator[None, None, None]:
    """Clear upstream transport registry after test.

    Use this fixture in tests that register fake transports.
    """
    yield
    clear_upstream_transports()


def register_fake_upstream(host: str, upstream: FakeUpstream) -> None:
    """Route HTTP host traffic for ``host`` to an in-process fake upstream."""
    register_upstream_transport(host, httpx.ASGITransport(app=upstream.app))


# =============================================================================
# Configuration Builders
# =============================================================================


def build_gateway_config(
    base_url: str,
    *,
    model_name: str = "test-model",
    api_key: str = "test-key",
    default_model: str | None = None,
) -> dict[str, Any]:
    """Build a config with one upstream-backed model.

    Args:
        base_url: Upstream server URL
        model_name: Model name to register
        api_key: API key for the model
        default_model: Model served for the proxy id

    Returns:
        Config dict for ``create_app`` / ``ConfigModelCatalog.from_config``
    """
    return {
        "gateway_settings": {"default_model": default_model or model_name},
        "model_list": [
            {
                "model_name": model_name,
                "display_name": "Test Model",
                "vendor": "test",
                "model_params": {
                    "model": "openai/fake",
                    "api_base": base_url,
                    "api_key": api_key,
                },
            }
        ],
    }
