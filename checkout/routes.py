import logging
from collections import deque
from datetime import datetime, timezone
from typing import List, Optional

import stripe
from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from checkout.config import RelaySettings
from checkout.money import MIN_AMOUNT, format_amount
from checkout.stripe_service import (
    construct_event,
    create_payment,
    create_setup_intent,
    error_message,
    retrieve_payment,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class SeenEvents:
    """Ids of recently handled webhook events; the oldest are evicted first"""

    def __init__(self, maxlen: int = 10000):
        self._order = deque(maxlen=maxlen)
        self._ids = set()

    def __contains__(self, event_id: str) -> bool:
        return event_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, event_id: str) -> None:
        if event_id in self._ids:
            return
        if len(self._order) == self._order.maxlen:
            self._ids.discard(self._order[0])
        self._order.append(event_id)
        self._ids.add(event_id)


class CreateIntentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: Optional[int] = None
    currency: str = "usd"
    payment_method_types: Optional[List[str]] = Field(default=None, alias="paymentMethodTypes")


class ConfirmStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: Optional[str] = Field(default=None, alias="paymentIntentId")


def get_settings(request: Request) -> RelaySettings:
    return request.app.state.settings


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stripe": "connected",
    }


@router.post("/create-intent")
def create_intent_api(request: CreateIntentRequest, settings: RelaySettings = Depends(get_settings)):
    if not request.amount or request.amount < MIN_AMOUNT:
        return error_response(400, f"Amount must be at least {format_amount(MIN_AMOUNT)} USD")

    currency = request.currency.lower()
    logger.info("Creating PaymentIntent", extra={"amount": request.amount, "currency": currency})

    try:
        intent = create_payment(settings, request.amount, currency, request.payment_method_types)
    except stripe.StripeError as e:
        logger.error("Error creating payment intent", extra={"error": str(e)})
        return error_response(500, error_message(e, "Failed to create payment intent"))

    return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}


@router.post("/confirm-status")
def confirm_status_api(request: ConfirmStatusRequest, settings: RelaySettings = Depends(get_settings)):
    if not request.payment_intent_id:
        return error_response(400, "paymentIntentId is required")

    try:
        intent = retrieve_payment(settings, request.payment_intent_id)
    except stripe.StripeError as e:
        logger.error("Error retrieving payment intent", extra={"payment_intent_id": request.payment_intent_id, "error": str(e)})
        return error_response(500, error_message(e, "Failed to confirm payment"))

    return {"status": intent.status, "amount": intent.amount, "currency": intent.currency}


@router.post("/create-setup-intent")
def create_setup_intent_api(settings: RelaySettings = Depends(get_settings)):
    try:
        setup_intent = create_setup_intent(settings)
    except stripe.StripeError as e:
        logger.error("Error creating setup intent", extra={"error": str(e)})
        return error_response(500, error_message(e, "Failed to create setup intent"))

    return {"clientSecret": setup_intent.client_secret}


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    settings: RelaySettings = Depends(get_settings),
):
    if not settings.stripe_webhook_secret or not stripe_signature:
        return error_response(400, "Webhook signature required")

    payload = await request.body()
    try:
        event = construct_event(settings, payload, stripe_signature)
    except ValueError:
        return error_response(400, "Invalid payload")
    except stripe.SignatureVerificationError:
        return error_response(400, "Invalid signature")

    # Stripe delivers at least once
    processed = request.app.state.processed_events
    if event["id"] in processed:
        logger.info("Duplicate webhook event ignored", extra={"event_id": event["id"]})
        return {"received": True}
    processed.add(event["id"])

    event_type = event["type"]
    if event_type == "payment_intent.succeeded":
        logger.info("Payment succeeded", extra={"payment_intent_id": event["data"]["object"]["id"]})
    elif event_type == "payment_intent.payment_failed":
        logger.warning("Payment failed", extra={"payment_intent_id": event["data"]["object"]["id"]})
    else:
        logger.info("Unhandled event type", extra={"event_type": event_type})

    return {"received": True}
