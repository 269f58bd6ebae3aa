"""In-memory relay and scripted payment widget used across the tests"""

import asyncio
import itertools
import json
from typing import Optional

import httpx

from checkout.widget import ConfirmationResult

# Stripe test payment methods
VISA = {"payment_method": "pm_card_visa"}
DECLINED = {"payment_method": "pm_card_chargeDeclined"}
THREE_DS = {"payment_method": "pm_card_threeDSecure2Required"}

DECLINE_MESSAGE = "Your card was declined."


class FakeRelay:
    """Answers /create-intent and /confirm-status the way the relay does"""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.intents: dict[str, dict] = {}
        self.create_error: Optional[tuple[int, dict]] = None
        self.unreachable = False
        self._ids = itertools.count(1)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)
        self.requests.append(request)
        body = json.loads(request.content or b"{}")

        if request.url.path.endswith("/create-intent"):
            if self.create_error:
                status, payload = self.create_error
                return httpx.Response(status, json=payload)
            n = next(self._ids)
            intent_id = f"pi_test_{n}"
            self.intents[intent_id] = {
                "status": "requires_payment_method",
                "amount": body["amount"],
                "currency": body["currency"],
            }
            return httpx.Response(200, json={"clientSecret": f"{intent_id}_secret_{n}", "paymentIntentId": intent_id})

        if request.url.path.endswith("/confirm-status"):
            intent = self.intents.get(body.get("paymentIntentId"))
            if intent is None:
                return httpx.Response(500, json={"error": "No such payment_intent"})
            return httpx.Response(200, json=intent)

        return httpx.Response(404, json={"error": "Not found"})

    def set_status(self, intent_id: str, status: str) -> None:
        self.intents[intent_id]["status"] = status


class FakeWidget:
    """Stands in for the processor's hosted payment form"""

    def __init__(self, relay: Optional[FakeRelay] = None):
        self.relay = relay
        self.calls: list[dict] = []
        self.gate: Optional[asyncio.Event] = None

    async def confirm_payment(self, client_secret, widget_state, *, return_url, redirect="if_required"):
        self.calls.append(
            {"client_secret": client_secret, "widget_state": widget_state, "return_url": return_url, "redirect": redirect}
        )
        if self.gate is not None:
            await self.gate.wait()

        intent_id = client_secret.split("_secret_")[0]
        method = widget_state["payment_method"]
        if method == DECLINED["payment_method"]:
            self._record(intent_id, "requires_payment_method")
            return ConfirmationResult(error_message=DECLINE_MESSAGE, raw={"code": "card_declined"})
        if method == THREE_DS["payment_method"]:
            self._record(intent_id, "requires_action")
            return ConfirmationResult(status="requires_action", redirect_url="https://hooks.stripe.test/3ds")
        self._record(intent_id, "succeeded")
        return ConfirmationResult(status="succeeded")

    def _record(self, intent_id: str, status: str) -> None:
        if self.relay is not None and intent_id in self.relay.intents:
            self.relay.set_status(intent_id, status)
