"""Notification surface used by the verification flow."""
from typing import List, Protocol

import structlog

from .models import Notification, Severity

logger = structlog.get_logger(__name__)

PAYMENT_SUCCESSFUL = Notification(
    title="Payment Successful",
    description="Thank you for your payment. Your transaction has been completed.",
    severity=Severity.SUCCESS,
)
PAYMENT_SUCCESSFUL_RECORDS_PENDING = Notification(
    title="Payment Successful",
    description=(
        "Your payment was successful, but we encountered an issue updating our records. "
        "Our team will verify your payment shortly."
    ),
    severity=Severity.SUCCESS,
)
PAYMENT_PROCESSING = Notification(
    title="Payment Processing",
    description="Your payment is being processed. We'll update you when it's complete.",
    severity=Severity.INFO,
)
PAYMENT_FAILED = Notification(
    title="Payment Failed",
    description="Please try another payment method.",
    severity=Severity.DESTRUCTIVE,
)
PAYMENT_ERROR = Notification(
    title="Payment Error",
    description="Something went wrong with your payment.",
    severity=Severity.DESTRUCTIVE,
)


def verification_failed(message: str) -> Notification:
    """Notification for failures detected before a gateway status was known."""
    return Notification(
        title="Payment Verification Failed",
        description=message,
        severity=Severity.DESTRUCTIVE,
    )


class Notifier(Protocol):
    """Fire-and-forget sink for user-facing notifications."""

    def notify(self, notification: Notification) -> None:
        ...


class CollectingNotifier:
    """Keeps notifications in memory so the HTTP layer can return them with the page."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, notification: Notification) -> None:
        logger.info(
            "notification_emitted",
            title=notification.title,
            severity=notification.severity.value,
        )
        self.notifications.append(notification)
