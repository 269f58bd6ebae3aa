from typing import List, Optional

import stripe

from checkout.config import RelaySettings


def create_payment(settings: RelaySettings, amount: int, currency: str, payment_method_types: Optional[List[str]] = None):
    params = {"amount": amount, "currency": currency}
    if payment_method_types:
        params["payment_method_types"] = payment_method_types
    else:
        params["automatic_payment_methods"] = {"enabled": True}

    return stripe.PaymentIntent.create(
        api_key=settings.stripe_secret_key,
        stripe_version=settings.stripe_api_version,
        **params,
    )


def retrieve_payment(settings: RelaySettings, payment_intent_id: str):
    return stripe.PaymentIntent.retrieve(
        payment_intent_id,
        api_key=settings.stripe_secret_key,
        stripe_version=settings.stripe_api_version,
    )


def create_setup_intent(settings: RelaySettings):
    return stripe.SetupIntent.create(
        automatic_payment_methods={"enabled": True},
        api_key=settings.stripe_secret_key,
        stripe_version=settings.stripe_api_version,
    )


def construct_event(settings: RelaySettings, payload: bytes, signature: str):
    return stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)


def error_message(error: stripe.StripeError, default: str) -> str:
    return error.user_message or default
