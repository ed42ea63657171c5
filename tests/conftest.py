from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from ajax_bridge.client import AjaxClient
from ajax_bridge.core.config.app_config import BridgeConfig
from ajax_bridge.core.domain.request import RequestDescriptor

BASE_URL = "http://a.com/"


@pytest.fixture
def bridge_config() -> BridgeConfig:
    return BridgeConfig()


@pytest.fixture
def make_descriptor():
    """Build a RequestDescriptor for ``http://a.com/foo`` with overrides."""

    def _make(**overrides) -> RequestDescriptor:
        values = {"url": f"{BASE_URL}foo"}
        values.update(overrides)
        return RequestDescriptor.model_validate(values)

    return _make


@pytest_asyncio.fixture(name="ajax_client")
async def ajax_client_fixture(bridge_config: BridgeConfig) -> AsyncIterator[AjaxClient]:
    """An AjaxClient on the default httpx transport (intercepted by httpx_mock)."""
    client = AjaxClient(bridge_config)
    try:
        yield client
    finally:
        await client.aclose()
