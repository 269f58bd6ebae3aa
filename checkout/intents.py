"""Payment intent creation against the backend relay"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

import httpx

from checkout.config import CheckoutConfig
from checkout.errors import NetworkError, RelayError
from checkout.money import normalize_currency, validate_amount

logger = logging.getLogger(__name__)


class IntentStatus(str, Enum):
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    REQUIRES_ACTION = "requires_action"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (IntentStatus.SUCCEEDED, IntentStatus.FAILED, IntentStatus.CANCELED)


@dataclass(frozen=True)
class PaymentIntentHandle:
    id: str
    client_secret: str = field(repr=False)


class IntentRequester:
    """Asks the relay for a new payment intent.

    Every call creates a new processor-side intent; nothing is retried.
    """

    def __init__(self, config: CheckoutConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    async def create_intent(self, amount: int, currency: Optional[str] = None) -> PaymentIntentHandle:
        """
        Create a payment intent for ``amount`` minor units.

        Raises:
            ValidationError: amount below the minimum or malformed currency
            NetworkError: relay unreachable
            RelayError: relay answered with an error
        """
        currency = normalize_currency(currency or self.config.currency)
        validate_amount(amount, self.config.min_amount, currency)

        logger.info("Creating payment intent", extra={"amount": amount, "currency": currency})
        url = f"{self.config.api_base_url}/create-intent"
        payload = {"amount": amount, "currency": currency}

        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.config.http_timeout) as client:
                    response = await client.post(url, json=payload)
        except httpx.RequestError as e:
            logger.warning("Relay unreachable", extra={"error": str(e)})
            raise NetworkError(f"Could not reach payment server: {e}") from e

        data = response_json(response)
        if response.is_error:
            message = data.get("error") or "Failed to create payment intent"
            raise RelayError(message, status_code=response.status_code)

        try:
            handle = PaymentIntentHandle(id=data["paymentIntentId"], client_secret=data["clientSecret"])
        except KeyError as e:
            raise RelayError(f"Invalid response from payment server: missing {e}") from e
        if not handle.client_secret:
            raise RelayError("Invalid response from payment server: empty client secret")

        logger.info("Payment intent created", extra={"payment_intent_id": handle.id})
        return handle


def response_json(response: httpx.Response) -> dict:
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
