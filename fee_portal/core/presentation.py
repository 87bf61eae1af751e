"""
Page model for the payment confirmation view.

The page is a pure function of the verification state (and the render
date): each phase maps to a fixed title, description, icon and accent, and
the success phase adds the payment details.
"""
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, NamedTuple, Optional

from pydantic import BaseModel

from .models import PaymentIntentView, VerificationPhase, VerificationState

CURRENCY_SYMBOLS: Dict[str, str] = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "AED": "AED ",
    "NGN": "₦",
    "JPY": "¥",
}

# Currencies displayed without a fractional part.
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND", "CLP", "ISK", "UGX"})

PAYMENT_METHOD_LABELS: Dict[str, str] = {
    "card": "Credit/Debit Card",
}

FAILED_FALLBACK_DESCRIPTION = "There was an error processing your payment."


class PhaseContent(NamedTuple):
    title: str
    description: str
    icon: str
    accent: str


PHASE_CONTENT: Dict[VerificationPhase, PhaseContent] = {
    VerificationPhase.SUCCESS: PhaseContent(
        "Payment Successful!",
        "Your payment has been processed successfully.",
        "check-circle",
        "green",
    ),
    VerificationPhase.PROCESSING: PhaseContent(
        "Processing Payment",
        "Your payment is being processed. Please wait...",
        "spinner",
        "blue",
    ),
    VerificationPhase.FAILED: PhaseContent(
        "Payment Failed",
        FAILED_FALLBACK_DESCRIPTION,
        "x-circle",
        "red",
    ),
    VerificationPhase.VERIFYING: PhaseContent(
        "Verifying Payment",
        "Please wait while we verify your payment...",
        "question-circle",
        "gray",
    ),
}


class PageAction(BaseModel):
    """A call-to-action button."""

    label: str
    kind: str  # "navigate" or "history_back"
    target: Optional[str] = None


class PaymentDetails(BaseModel):
    """Details block shown on a successful payment."""

    amount: str
    payment_method: str
    date: str
    reference: str
    payment_intent_id: str


class PaymentPage(BaseModel):
    """Everything the confirmation view renders."""

    phase: VerificationPhase
    title: str
    description: str
    icon: str
    accent: str
    error_message: Optional[str] = None
    details: Optional[PaymentDetails] = None
    actions: List[PageAction]


def _group_digits(integer_part: str, indian: bool) -> str:
    if not indian or len(integer_part) <= 3:
        return f"{int(integer_part):,}"
    head, tail = integer_part[:-3], integer_part[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_amount(amount_minor: int, currency: str, locale: str = "en-IN") -> str:
    """
    Format a minor-unit amount as locale currency.

    ``en-IN`` uses lakh grouping (1,50,000.00); other locales group by
    thousands. Zero-decimal currencies (JPY, KRW, ...) are rounded to whole
    units. Unknown currencies are prefixed with their code.
    """
    code = currency.upper()
    places = 0 if code in ZERO_DECIMAL_CURRENCIES else 2
    amount = (Decimal(amount_minor) / 100).quantize(Decimal(1).scaleb(-places), ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    integer_part, _, fraction = f"{abs(amount):.{places}f}".partition(".")
    grouped = _group_digits(integer_part, indian=locale.lower() == "en-in")
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    if fraction:
        grouped = f"{grouped}.{fraction}"
    return f"{sign}{symbol}{grouped}"


def payment_method_label(kind: str) -> str:
    return PAYMENT_METHOD_LABELS.get(kind, kind)


def format_long_date(day: date) -> str:
    """Long US-style date, e.g. October 19, 2026."""
    return f"{day:%B} {day.day}, {day.year}"


def page_actions(phase: VerificationPhase, dashboard_path: str = "/fees") -> List[PageAction]:
    """Dashboard action for every phase; failed adds a history-back retry."""
    label = "View Dashboard" if phase is VerificationPhase.SUCCESS else "Go to Dashboard"
    actions = [PageAction(label=label, kind="navigate", target=dashboard_path)]
    if phase is VerificationPhase.FAILED:
        actions.append(PageAction(label="Try Again", kind="history_back"))
    return actions


def payment_details(
    view: PaymentIntentView, today: date, locale: str = "en-IN"
) -> PaymentDetails:
    return PaymentDetails(
        amount=format_amount(view.amount_minor, view.currency, locale),
        payment_method=payment_method_label(view.payment_method_kind),
        date=format_long_date(today),
        reference=view.reference,
        payment_intent_id=view.id,
    )


def render_page(
    state: VerificationState,
    today: Optional[date] = None,
    locale: str = "en-IN",
    dashboard_path: str = "/fees",
) -> PaymentPage:
    """
    Render the confirmation page for a verification state.

    Args:
        state: Verification state to render
        today: Date shown on a successful payment (defaults to today)
        locale: Locale used for the amount
        dashboard_path: Route of the dashboard action

    Returns:
        PaymentPage: Page model
    """
    content = PHASE_CONTENT[state.phase]
    description = content.description
    if state.phase is VerificationPhase.FAILED and state.error_message:
        description = state.error_message

    details = None
    if state.phase is VerificationPhase.SUCCESS and state.payment_view is not None:
        details = payment_details(state.payment_view, today or date.today(), locale)

    return PaymentPage(
        phase=state.phase,
        title=content.title,
        description=description,
        icon=content.icon,
        accent=content.accent,
        error_message=state.error_message,
        details=details,
        actions=page_actions(state.phase, dashboard_path),
    )
