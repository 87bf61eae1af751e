"""
Pydantic schemas for API responses.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from fee_portal.core.models import Notification, ReconciliationOutcome
from fee_portal.core.presentation import PaymentPage


class PaymentPageResponse(PaymentPage):
    """Confirmation page plus the notification the page must show."""

    notifications: List[Notification] = Field(
        default_factory=list, description="Notifications emitted by the verification run"
    )
    reconciliation: ReconciliationOutcome = Field(
        ..., description="Outcome of the backend record update"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "phase": "success",
                    "title": "Payment Successful!",
                    "description": "Your payment has been processed successfully.",
                    "icon": "check-circle",
                    "accent": "green",
                    "error_message": None,
                    "details": {
                        "amount": "₹1,500.00",
                        "payment_method": "Credit/Debit Card",
                        "date": "October 19, 2026",
                        "reference": "23456789",
                        "payment_intent_id": "pi_abc123456789",
                    },
                    "actions": [
                        {"label": "View Dashboard", "kind": "navigate", "target": "/fees"}
                    ],
                    "notifications": [
                        {
                            "title": "Payment Successful",
                            "description": "Thank you for your payment. "
                            "Your transaction has been completed.",
                            "severity": "success",
                        }
                    ],
                    "reconciliation": "skipped",
                }
            ]
        }
    }


class HealthCheckResponse(BaseModel):
    """Response schema for health checks."""

    status: str = Field(..., description="Overall health status (healthy/unhealthy)")
    checks: Optional[Dict[str, Any]] = Field(default=None, description="Individual service checks")
    message: Optional[str] = Field(default=None, description="Status message")
