import pytest

from checkout.errors import NetworkError, RelayError, ValidationError
from checkout.intents import IntentRequester, IntentStatus, PaymentIntentHandle


@pytest.fixture
def requester(config, http_client):
    return IntentRequester(config, client=http_client)


async def test_create_intent_returns_handle(requester, relay):
    handle = await requester.create_intent(9996, "usd")

    assert handle.id == "pi_test_1"
    assert handle.client_secret
    assert relay.paths == ["/api/create-intent"]
    assert relay.intents["pi_test_1"]["amount"] == 9996


async def test_create_intent_uses_configured_currency(requester, relay):
    await requester.create_intent(2500)

    assert relay.intents["pi_test_1"]["currency"] == "usd"


@pytest.mark.parametrize("amount", [0, 25, 49])
async def test_amount_below_minimum_never_reaches_relay(requester, relay, amount):
    with pytest.raises(ValidationError) as exc:
        await requester.create_intent(amount, "usd")

    assert "$0.50" in exc.value.message
    assert relay.requests == []


async def test_each_call_issues_a_fresh_secret(requester):
    first = await requester.create_intent(9996, "usd")
    second = await requester.create_intent(9996, "usd")

    assert first.id != second.id
    assert first.client_secret != second.client_secret


async def test_relay_error_message_passes_through(requester, relay):
    relay.create_error = (400, {"error": "Amount must be at least $0.50 USD"})

    with pytest.raises(RelayError) as exc:
        await requester.create_intent(9996, "usd")

    assert exc.value.message == "Amount must be at least $0.50 USD"
    assert exc.value.status_code == 400


async def test_relay_error_without_body(requester, relay):
    relay.create_error = (502, {})

    with pytest.raises(RelayError) as exc:
        await requester.create_intent(9996, "usd")

    assert exc.value.message == "Failed to create payment intent"


async def test_unreachable_relay_is_a_network_error(requester, relay):
    relay.unreachable = True

    with pytest.raises(NetworkError):
        await requester.create_intent(9996, "usd")


def test_client_secret_is_not_in_repr():
    handle = PaymentIntentHandle(id="pi_1", client_secret="pi_1_secret_xyz")

    assert "secret_xyz" not in repr(handle)


def test_terminal_statuses():
    terminal = {s for s in IntentStatus if s.is_terminal}

    assert terminal == {IntentStatus.SUCCEEDED, IntentStatus.FAILED, IntentStatus.CANCELED}
