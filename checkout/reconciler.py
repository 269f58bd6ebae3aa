"""Read-only status lookups for an existing payment intent"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from checkout.config import CheckoutConfig
from checkout.errors import StatusError
from checkout.intents import IntentStatus, response_json
from checkout.orchestrator import ConfirmationOrchestrator, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentStatusReport:
    id: str
    status: IntentStatus
    amount: int
    currency: str

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class StatusReconciler:
    """Polls the relay for an intent's current status. Never mutates anything."""

    def __init__(self, config: CheckoutConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    async def fetch_status(self, intent_id: str) -> IntentStatusReport:
        """
        Raises:
            StatusError: relay unreachable, relay error, or malformed response
        """
        url = f"{self.config.api_base_url}/confirm-status"
        payload = {"paymentIntentId": intent_id}

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.config.http_timeout) as client:
                    response = await client.post(url, json=payload)
        except httpx.RequestError as e:
            raise StatusError(f"Could not reach payment server: {e}") from e

        data = response_json(response)
        if response.is_error:
            raise StatusError(data.get("error") or "Failed to confirm payment")

        try:
            report = IntentStatusReport(
                id=intent_id,
                status=IntentStatus(data["status"]),
                amount=int(data["amount"]),
                currency=data["currency"],
            )
        except (KeyError, ValueError, TypeError) as e:
            raise StatusError(f"Invalid status response from payment server: {e}") from e

        logger.info("Fetched payment intent status", extra={"payment_intent_id": intent_id, "status": report.status.value})
        return report

    async def reconcile(self, orchestrator: ConfirmationOrchestrator) -> Outcome:
        """Resolve an orchestrator waiting on an out-of-band step"""
        if orchestrator.handle is None:
            return orchestrator.outcome
        report = await self.fetch_status(orchestrator.handle.id)
        return orchestrator.observe_status(report.status.value)
