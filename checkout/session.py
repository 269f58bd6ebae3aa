"""Checkout attempt state owned by a single UI session"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from functools import partial
from typing import Any, Callable, List, Mapping, Optional

from checkout.config import CheckoutConfig
from checkout.errors import IntentError, NotReadyError, StatusError
from checkout.intents import IntentRequester, PaymentIntentHandle
from checkout.orchestrator import (
    Abandoned,
    ConfirmationOrchestrator,
    ConfirmationState,
    IntentReady,
    Outcome,
    RedirectReturned,
)
from checkout.reconciler import StatusReconciler
from checkout.widget import PaymentWidget, parse_redirect_return

logger = logging.getLogger(__name__)


class AttemptStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_STATUS_BY_STATE = {
    ConfirmationState.IDLE: AttemptStatus.IDLE,
    ConfirmationState.AWAITING_INPUT: AttemptStatus.READY,
    ConfirmationState.CONFIRMING: AttemptStatus.PROCESSING,
    ConfirmationState.AWAITING_ACTION: AttemptStatus.PROCESSING,
    ConfirmationState.SUCCEEDED: AttemptStatus.SUCCEEDED,
    ConfirmationState.FAILED: AttemptStatus.FAILED,
}


@dataclass(frozen=True)
class CheckoutAttempt:
    token: int = 0
    amount: Optional[int] = None
    currency: Optional[str] = None
    handle: Optional[PaymentIntentHandle] = None
    status: AttemptStatus = AttemptStatus.IDLE
    message: Optional[str] = None


AttemptListener = Callable[[CheckoutAttempt], None]


class CheckoutSession:
    """
    Owns the current CheckoutAttempt and wires the requester, orchestrator
    and reconciler together.

    Each ``start`` bumps the attempt token. Responses carrying an older token
    are dropped so a late reply never overwrites a newer attempt.
    """

    def __init__(
        self,
        config: CheckoutConfig,
        requester: Optional[IntentRequester] = None,
        reconciler: Optional[StatusReconciler] = None,
        widget: Optional[PaymentWidget] = None,
        on_success: Optional[Callable[[PaymentIntentHandle], None]] = None,
    ):
        self.config = config
        self.requester = requester or IntentRequester(config)
        self.reconciler = reconciler or StatusReconciler(config)
        self.widget = widget
        self.on_success = on_success
        self.attempt = CheckoutAttempt()
        self.orchestrator: Optional[ConfirmationOrchestrator] = None
        self._listeners: List[AttemptListener] = []

    def subscribe(self, listener: AttemptListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def attach_widget(self, widget: PaymentWidget) -> None:
        self.widget = widget
        if self.orchestrator is not None:
            self.orchestrator.attach_widget(widget)

    async def start(self, amount: int, currency: Optional[str] = None) -> Optional[PaymentIntentHandle]:
        """
        Begin a new attempt, superseding any previous one.

        Returns None if another ``start`` or ``cancel`` happened while the
        intent was being created.
        """
        self._abandon_orchestrator()
        token = self.attempt.token + 1
        self._set(CheckoutAttempt(token=token, amount=amount, currency=currency, status=AttemptStatus.LOADING))

        try:
            handle = await self.requester.create_intent(amount, currency)
        except IntentError as e:
            if token != self.attempt.token:
                logger.info("Dropping error from superseded attempt", extra={"attempt": token})
                return None
            self._set(replace(self.attempt, status=AttemptStatus.FAILED, message=e.message))
            raise

        if token != self.attempt.token:
            logger.info("Dropping superseded payment intent", extra={"attempt": token, "payment_intent_id": handle.id})
            return None

        orchestrator = self._new_orchestrator()
        self._set(replace(self.attempt, handle=handle))
        orchestrator.dispatch(IntentReady(handle))
        return handle

    async def retry(self) -> Optional[PaymentIntentHandle]:
        """Start over with a fresh intent for the last requested amount"""
        if self.attempt.amount is None:
            raise NotReadyError("There is no checkout to retry")
        return await self.start(self.attempt.amount, self.attempt.currency)

    async def submit(self, widget_state: Any) -> Optional[Outcome]:
        if self.orchestrator is None:
            raise NotReadyError("Payment processor is not loaded. Please refresh the page.")
        return await self.orchestrator.confirm(widget_state)

    async def resume(self, return_params: Mapping[str, str]) -> Optional[Outcome]:
        """Handle the user's return from an external authentication step"""
        redirect = parse_redirect_return(return_params)
        if redirect is None:
            return None

        orchestrator = self.orchestrator
        if orchestrator is None and redirect.client_secret:
            # The page was reloaded by the redirect; rebuild the attempt from the return URL
            handle = PaymentIntentHandle(id=redirect.intent_id, client_secret=redirect.client_secret)
            self._set(CheckoutAttempt(token=self.attempt.token + 1, handle=handle, status=AttemptStatus.PROCESSING))
            orchestrator = self._new_orchestrator()
            orchestrator.dispatch(RedirectReturned(handle))
        elif orchestrator is None or orchestrator.handle is None or orchestrator.handle.id != redirect.intent_id:
            raise NotReadyError("No checkout in progress for this payment")

        token = self.attempt.token
        logger.info(
            "Resuming after redirect",
            extra={"payment_intent_id": redirect.intent_id, "redirect_status": redirect.redirect_status},
        )
        try:
            return await self.reconciler.reconcile(orchestrator)
        except StatusError as e:
            if token != self.attempt.token:
                logger.info("Dropping status error from superseded attempt", extra={"attempt": token})
                return None
            self._set(replace(self.attempt, status=AttemptStatus.FAILED, message=e.message))
            raise

    def cancel(self) -> None:
        """Abandon the current attempt; in-flight results are discarded"""
        self._abandon_orchestrator()
        self._set(CheckoutAttempt(token=self.attempt.token + 1))

    def _new_orchestrator(self) -> ConfirmationOrchestrator:
        orchestrator = ConfirmationOrchestrator(self.config, widget=self.widget, on_success=self.on_success)
        orchestrator.subscribe(partial(self._on_state, orchestrator))
        self.orchestrator = orchestrator
        return orchestrator

    def _abandon_orchestrator(self) -> None:
        orchestrator, self.orchestrator = self.orchestrator, None
        if orchestrator is not None:
            orchestrator.dispatch(Abandoned())

    def _on_state(
        self,
        orchestrator: ConfirmationOrchestrator,
        previous: ConfirmationState,
        current: ConfirmationState,
    ) -> None:
        if orchestrator is not self.orchestrator:
            return
        message = orchestrator.message if current is ConfirmationState.FAILED else None
        self._set(replace(self.attempt, status=_STATUS_BY_STATE[current], message=message))

    def _set(self, attempt: CheckoutAttempt) -> None:
        self.attempt = attempt
        for listener in list(self._listeners):
            listener(attempt)
