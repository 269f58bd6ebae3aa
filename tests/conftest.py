"""Shared fixtures"""

import httpx
import pytest

from checkout.config import CheckoutConfig, RelaySettings
from fakes import FakeRelay, FakeWidget


@pytest.fixture
def config() -> CheckoutConfig:
    return CheckoutConfig(
        publishable_key="pk_test_123",
        api_base_url="http://relay.test/api",
        return_url="http://shop.test/completion",
    )


@pytest.fixture
def relay() -> FakeRelay:
    return FakeRelay()


@pytest.fixture
async def http_client(relay: FakeRelay):
    async with httpx.AsyncClient(transport=httpx.MockTransport(relay.handler)) as client:
        yield client


@pytest.fixture
def widget(relay: FakeRelay) -> FakeWidget:
    return FakeWidget(relay)


@pytest.fixture
def relay_settings() -> RelaySettings:
    return RelaySettings(
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        frontend_url="http://localhost:5175",
    )
