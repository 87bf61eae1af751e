"""Core payment confirmation logic."""
from .models import (
    IntentStatus,
    Notification,
    PaymentIntentView,
    VerificationPhase,
    VerificationRequest,
    VerificationState,
)
from .notifications import CollectingNotifier, Notifier
from .presentation import PaymentPage, render_page
from .verification import PaymentVerificationFlow, build_flow

__all__ = [
    "IntentStatus",
    "Notification",
    "PaymentIntentView",
    "VerificationPhase",
    "VerificationRequest",
    "VerificationState",
    "CollectingNotifier",
    "Notifier",
    "PaymentPage",
    "render_page",
    "PaymentVerificationFlow",
    "build_flow",
]
