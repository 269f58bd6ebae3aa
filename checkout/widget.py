"""Boundary with the processor's hosted payment widget"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol


@dataclass(frozen=True)
class ConfirmationResult:
    """What the widget reports back after a confirmation attempt.

    Only ``status``, ``error_message`` and ``redirect_url`` are read; the rest
    of the processor's payload stays in ``raw`` untouched.
    """

    status: Optional[str] = None
    error_message: Optional[str] = None
    redirect_url: Optional[str] = None
    raw: Optional[Mapping[str, Any]] = None


class PaymentWidget(Protocol):
    """Processor widget holding the collected payment method.

    ``widget_state`` is whatever the widget needs to finish the payment; it is
    passed through without inspection.
    """

    async def confirm_payment(
        self,
        client_secret: str,
        widget_state: Any,
        *,
        return_url: str,
        redirect: str = "if_required",
    ) -> ConfirmationResult:
        ...


@dataclass(frozen=True)
class RedirectReturn:
    """Query parameters the processor appends to the return URL"""

    intent_id: str
    client_secret: Optional[str] = None
    redirect_status: Optional[str] = None

    def __repr__(self) -> str:
        return f"RedirectReturn(intent_id={self.intent_id!r}, redirect_status={self.redirect_status!r})"


def parse_redirect_return(params: Mapping[str, str]) -> Optional[RedirectReturn]:
    """Extract the redirect-return fields, or None if this is not a return visit"""
    intent_id = params.get("payment_intent")
    if not intent_id:
        return None
    return RedirectReturn(
        intent_id=intent_id,
        client_secret=params.get("payment_intent_client_secret"),
        redirect_status=params.get("redirect_status"),
    )
