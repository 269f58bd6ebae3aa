"""Confirmation state machine driving a payment intent to a terminal outcome"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional

from checkout.config import CheckoutConfig
from checkout.errors import ConfirmError, NotReadyError
from checkout.intents import IntentStatus, PaymentIntentHandle
from checkout.widget import ConfirmationResult, PaymentWidget

logger = logging.getLogger(__name__)


class ConfirmationState(str, Enum):
    IDLE = "idle"
    AWAITING_INPUT = "awaiting_input"
    CONFIRMING = "confirming"
    AWAITING_ACTION = "awaiting_action"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ConfirmationState.SUCCEEDED, ConfirmationState.FAILED)


# Events accepted by ConfirmationOrchestrator.dispatch


@dataclass(frozen=True)
class IntentReady:
    handle: PaymentIntentHandle


@dataclass(frozen=True)
class ConfirmStarted:
    pass


@dataclass(frozen=True)
class ConfirmResolved:
    result: ConfirmationResult


@dataclass(frozen=True)
class StatusObserved:
    status: str
    message: Optional[str] = None


@dataclass(frozen=True)
class RedirectReturned:
    """The customer came back from an external authentication step"""

    handle: PaymentIntentHandle


@dataclass(frozen=True)
class Abandoned:
    pass


@dataclass(frozen=True)
class Outcome:
    state: ConfirmationState
    message: Optional[str] = None
    redirect_url: Optional[str] = None


class InvalidTransition(Exception):
    """Event not accepted in the current state"""


StateListener = Callable[[ConfirmationState, ConfirmationState], None]

_PENDING_STATUSES = (
    IntentStatus.REQUIRES_ACTION,
    IntentStatus.REQUIRES_CONFIRMATION,
    IntentStatus.PROCESSING,
)


class ConfirmationOrchestrator:
    """
    Finite-state machine for one payment intent.

    idle -> awaiting_input -> confirming -> succeeded | failed | awaiting_action,
    and awaiting_action -> succeeded | failed once a status is observed. A
    fresh orchestrator enters awaiting_action directly on ``RedirectReturned``.
    ``Abandoned`` resets to idle from anywhere and invalidates in-flight
    confirmations.
    """

    def __init__(
        self,
        config: CheckoutConfig,
        widget: Optional[PaymentWidget] = None,
        on_success: Optional[Callable[[PaymentIntentHandle], None]] = None,
    ):
        self.config = config
        self.widget = widget
        self.on_success = on_success
        self.state = ConfirmationState.IDLE
        self.handle: Optional[PaymentIntentHandle] = None
        self.message: Optional[str] = None
        self.redirect_url: Optional[str] = None
        self._listeners: List[StateListener] = []
        self._generation = 0
        self._completed = False

    @property
    def outcome(self) -> Outcome:
        return Outcome(state=self.state, message=self.message, redirect_url=self.redirect_url)

    def attach_widget(self, widget: PaymentWidget) -> None:
        self.widget = widget

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register ``listener(previous, current)``; returns an unsubscribe callable"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, event) -> ConfirmationState:
        state = self.state

        if isinstance(event, Abandoned):
            self._generation += 1
            self.handle = None
            self.message = None
            self.redirect_url = None
            next_state = ConfirmationState.IDLE
        elif isinstance(event, IntentReady) and state is ConfirmationState.IDLE:
            self.handle = event.handle
            next_state = ConfirmationState.AWAITING_INPUT
        elif isinstance(event, RedirectReturned) and state is ConfirmationState.IDLE:
            self.handle = event.handle
            next_state = ConfirmationState.AWAITING_ACTION
        elif isinstance(event, ConfirmStarted) and state is ConfirmationState.AWAITING_INPUT:
            self.message = None
            next_state = ConfirmationState.CONFIRMING
        elif isinstance(event, ConfirmResolved) and state is ConfirmationState.CONFIRMING:
            next_state = self._resolve(event.result)
        elif isinstance(event, StatusObserved) and state is ConfirmationState.AWAITING_ACTION:
            next_state = self._observe(event.status, event.message)
        else:
            raise InvalidTransition(f"{type(event).__name__} not allowed in state {state.value}")

        self._transition(next_state)
        return self.state

    async def confirm(self, widget_state: Any) -> Optional[Outcome]:
        """
        Confirm the current intent with the widget's collected payment method.

        Returns None when the request is ignored (a confirmation is already in
        flight, the intent is already resolved, or the attempt was abandoned
        while waiting).

        Raises:
            NotReadyError: no intent handle or no widget yet
            ConfirmError: the processor rejected the payment
        """
        if self.state is ConfirmationState.CONFIRMING:
            logger.info("Confirmation already in progress, ignoring submit")
            return None
        if self.handle is None or self.widget is None:
            raise NotReadyError("Payment processor is not loaded. Please refresh the page.")
        if self.state is not ConfirmationState.AWAITING_INPUT:
            logger.info("Ignoring submit", extra={"state": self.state.value})
            return None

        self.dispatch(ConfirmStarted())
        generation = self._generation
        handle = self.handle

        try:
            result = await self.widget.confirm_payment(
                handle.client_secret,
                widget_state,
                return_url=self.config.return_url,
                redirect="if_required",
            )
        except Exception as e:
            logger.exception("Widget confirmation raised", extra={"payment_intent_id": handle.id})
            result = ConfirmationResult(error_message=str(e) or "An unexpected error occurred")

        if generation != self._generation:
            logger.info("Discarding confirmation for abandoned attempt", extra={"payment_intent_id": handle.id})
            return None

        self.dispatch(ConfirmResolved(result))
        if self.state is ConfirmationState.FAILED:
            raise ConfirmError(self.message)
        return self.outcome

    def observe_status(self, status: str, message: Optional[str] = None) -> Outcome:
        """Feed a status read from the relay; only acts while awaiting action"""
        if self.state is ConfirmationState.AWAITING_ACTION:
            self.dispatch(StatusObserved(status, message))
        return self.outcome

    def _resolve(self, result: ConfirmationResult) -> ConfirmationState:
        if result.error_message:
            self.message = result.error_message
            return ConfirmationState.FAILED
        if result.status == IntentStatus.SUCCEEDED:
            return ConfirmationState.SUCCEEDED
        if result.status in (IntentStatus.FAILED, IntentStatus.CANCELED, IntentStatus.REQUIRES_PAYMENT_METHOD):
            self.message = f"Payment not completed (status: {result.status})"
            return ConfirmationState.FAILED

        # requires_action and friends, or no status at all: resolved later by
        # the redirect return or the status reconciler
        self.redirect_url = result.redirect_url
        return ConfirmationState.AWAITING_ACTION

    def _observe(self, status: str, message: Optional[str]) -> ConfirmationState:
        if status == IntentStatus.SUCCEEDED:
            return ConfirmationState.SUCCEEDED
        if status in _PENDING_STATUSES:
            return ConfirmationState.AWAITING_ACTION
        self.message = message or f"Payment not completed (status: {status})"
        return ConfirmationState.FAILED

    def _transition(self, next_state: ConfirmationState) -> None:
        previous = self.state
        self.state = next_state
        if previous is not next_state:
            logger.debug("Confirmation state changed", extra={"from": previous.value, "to": next_state.value})

        fire_success = next_state is ConfirmationState.SUCCEEDED and not self._completed
        if fire_success:
            self._completed = True

        try:
            if previous is not next_state:
                for listener in list(self._listeners):
                    listener(previous, next_state)
        finally:
            if fire_success and self.on_success is not None:
                self.on_success(self.handle)
