"""Checkout error taxonomy"""

from typing import Optional


class CheckoutError(Exception):
    """Base error; ``message`` is shown to the user as-is"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class IntentError(CheckoutError):
    """Creating a payment intent failed"""


class ValidationError(IntentError):
    """Local precondition violated before any network call"""


class NetworkError(IntentError):
    """The relay could not be reached"""


class RelayError(IntentError):
    """The relay answered with a processor-reported error"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConfirmError(CheckoutError):
    """The processor rejected the confirmation (e.g. card declined)"""


class NotReadyError(CheckoutError):
    """Confirmation attempted before the widget or intent was available"""


class StatusError(CheckoutError):
    """Reading an intent's status failed"""
