"""
Data models for payment confirmation.

PaymentIntentView is validated once at the gateway boundary; everything
downstream reads its canonical fields only.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

CLIENT_SECRET_PARAMS = ("payment_intent_client_secret", "clientSecret")
PAYMENT_ID_PARAM = "paymentId"
EMI_PARAM = "emiPayment"


class IntentStatus(str, Enum):
    """Gateway intent statuses the flow distinguishes."""

    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    REQUIRES_PAYMENT_METHOD = "requires_payment_method"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> "IntentStatus":
        return cls.OTHER


class VerificationPhase(str, Enum):
    """Phase of a verification run; drives the rendered page."""

    VERIFYING = "verifying"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


class FailureKind(str, Enum):
    """Why a verification ended in the failed phase."""

    MISSING_PARAMETER = "missing_parameter"
    GATEWAY_QUERY_FAILURE = "gateway_query_failure"
    GATEWAY_TERMINAL_STATUS = "gateway_terminal_status"


class ReconciliationOutcome(str, Enum):
    """Result of the secondary backend write. Never affects the phase."""

    NOT_ATTEMPTED = "not_attempted"
    SKIPPED = "skipped"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Severity(str, Enum):
    """Notification severity."""

    SUCCESS = "success"
    INFO = "info"
    DESTRUCTIVE = "destructive"


class PaymentIntentView(BaseModel):
    """Gateway intent as seen by the confirmation page."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    amount_minor: int = Field(..., ge=0, description="Amount in minor units (e.g. paise)")
    currency: str = Field(..., min_length=3, max_length=3)
    status: IntentStatus
    raw_status: str = Field(default="", description="Status string as returned by the gateway")
    payment_method_kind: str = Field(default="card")

    @field_validator("currency")
    @classmethod
    def normalise_currency(cls, v: str) -> str:
        return v.upper()

    @computed_field  # type: ignore[prop-decorator]
    @property
    def reference(self) -> str:
        """Short transaction reference shown to the payer."""
        return self.id[-8:]

    @classmethod
    def from_gateway(cls, intent: Any) -> "PaymentIntentView":
        """
        Build a view from a gateway PaymentIntent object.

        Args:
            intent: Object exposing id, amount, currency, status and
                payment_method_types attributes

        Returns:
            PaymentIntentView: Validated view
        """
        raw_status = str(getattr(intent, "status", "") or "")
        method_types = getattr(intent, "payment_method_types", None) or []
        return cls(
            id=intent.id,
            amount_minor=intent.amount,
            currency=intent.currency,
            status=IntentStatus(raw_status),
            raw_status=raw_status,
            payment_method_kind=method_types[0] if method_types else "card",
        )


class Notification(BaseModel):
    """A single user-facing toast."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    severity: Severity


def _first_value(params: Mapping[str, str], name: str) -> Optional[str]:
    """First value of a possibly repeated query parameter."""
    getlist = getattr(params, "getlist", None)
    if getlist is not None:
        values = getlist(name)
        return values[0] if values else None
    return params.get(name)


@dataclass(frozen=True)
class VerificationRequest:
    """Navigation parameters read once when the confirmation page is entered."""

    client_secret: Optional[str] = None
    payment_id: Optional[str] = None
    is_emi: bool = False

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "VerificationRequest":
        """Parse query parameters; the first non-empty client secret name wins."""
        client_secret = next(
            (
                value
                for value in (_first_value(params, name) for name in CLIENT_SECRET_PARAMS)
                if value
            ),
            None,
        )
        return cls(
            client_secret=client_secret,
            payment_id=_first_value(params, PAYMENT_ID_PARAM) or None,
            is_emi=(_first_value(params, EMI_PARAM) or "").lower() == "true",
        )


class InvalidTransition(RuntimeError):
    """Raised when a terminal verification state is asked to move again."""


@dataclass
class VerificationState:
    """
    State owned by one verification flow.

    Only the transition methods below mutate it. Invariants:
    - payment_view is set iff phase is success or processing
    - error_message and failure_kind are set iff phase is failed
    """

    phase: VerificationPhase = VerificationPhase.VERIFYING
    error_message: Optional[str] = None
    failure_kind: Optional[FailureKind] = None
    payment_view: Optional[PaymentIntentView] = None
    reconciliation: ReconciliationOutcome = ReconciliationOutcome.NOT_ATTEMPTED

    @property
    def is_terminal(self) -> bool:
        return self.phase in (VerificationPhase.SUCCESS, VerificationPhase.FAILED)

    def _ensure_open(self, target: VerificationPhase) -> None:
        if self.is_terminal:
            raise InvalidTransition(f"Cannot move from {self.phase.value} to {target.value}")

    def mark_success(self, view: PaymentIntentView) -> None:
        self._ensure_open(VerificationPhase.SUCCESS)
        self.phase = VerificationPhase.SUCCESS
        self.payment_view = view
        self.error_message = None
        self.failure_kind = None

    def mark_processing(self, view: PaymentIntentView) -> None:
        self._ensure_open(VerificationPhase.PROCESSING)
        self.phase = VerificationPhase.PROCESSING
        self.payment_view = view
        self.error_message = None
        self.failure_kind = None

    def mark_failed(self, message: str, kind: FailureKind) -> None:
        self._ensure_open(VerificationPhase.FAILED)
        self.phase = VerificationPhase.FAILED
        self.error_message = message
        self.failure_kind = kind
        self.payment_view = None

    def record_reconciliation(self, outcome: ReconciliationOutcome) -> None:
        self.reconciliation = outcome
