"""Tests for the confirmation page model."""
from datetime import date

import pytest

from fee_portal.core.models import (
    FailureKind,
    IntentStatus,
    PaymentIntentView,
    VerificationState,
)
from fee_portal.core.presentation import (
    FAILED_FALLBACK_DESCRIPTION,
    format_amount,
    format_long_date,
    payment_method_label,
    render_page,
)


def view(**overrides) -> PaymentIntentView:
    fields = dict(
        id="pi_abc123456789",
        amount_minor=150000,
        currency="inr",
        status=IntentStatus.SUCCEEDED,
        raw_status="succeeded",
    )
    fields.update(overrides)
    return PaymentIntentView(**fields)


class TestFormatAmount:
    @pytest.mark.parametrize(
        "amount_minor,currency,locale,expected",
        [
            (150000, "inr", "en-IN", "₹1,500.00"),
            (15000000, "INR", "en-IN", "₹1,50,000.00"),
            (1234567890, "INR", "en-IN", "₹1,23,45,678.90"),
            (15000000, "INR", "en-US", "₹150,000.00"),
            (1234, "usd", "en-IN", "$12.34"),
            (5, "inr", "en-IN", "₹0.05"),
            (1000, "chf", "en-IN", "CHF 10.00"),
            (1500, "jpy", "en-IN", "¥15"),
            (150050, "JPY", "en-US", "¥1,501"),
            (1234567, "krw", "en-IN", "KRW 12,346"),
        ],
    )
    def test_format(self, amount_minor, currency, locale, expected):
        assert format_amount(amount_minor, currency, locale) == expected


def test_payment_method_label():
    assert payment_method_label("card") == "Credit/Debit Card"
    assert payment_method_label("upi") == "upi"


def test_format_long_date():
    assert format_long_date(date(2026, 10, 19)) == "October 19, 2026"


class TestRenderPage:
    def test_verifying(self):
        page = render_page(VerificationState())
        assert page.title == "Verifying Payment"
        assert page.accent == "gray"
        assert page.details is None
        assert [a.label for a in page.actions] == ["Go to Dashboard"]

    def test_success(self):
        state = VerificationState()
        state.mark_success(view())
        page = render_page(state, today=date(2026, 10, 19))

        assert page.title == "Payment Successful!"
        assert page.icon == "check-circle"
        assert page.accent == "green"
        assert page.details.amount == "₹1,500.00"
        assert page.details.date == "October 19, 2026"
        assert page.details.payment_intent_id == "pi_abc123456789"
        assert len(page.actions) == 1
        assert page.actions[0].label == "View Dashboard"
        assert page.actions[0].target == "/fees"

    def test_processing_has_no_details(self):
        state = VerificationState()
        state.mark_processing(view(status=IntentStatus.PROCESSING, raw_status="processing"))
        page = render_page(state)

        assert page.title == "Processing Payment"
        assert page.accent == "blue"
        assert page.details is None
        assert [a.kind for a in page.actions] == ["navigate"]

    def test_failed_shows_error_and_retry(self):
        state = VerificationState()
        state.mark_failed("Something went wrong with your payment.", FailureKind.GATEWAY_TERMINAL_STATUS)
        page = render_page(state, dashboard_path="/student/fees")

        assert page.title == "Payment Failed"
        assert page.accent == "red"
        assert page.description == "Something went wrong with your payment."
        assert page.error_message == "Something went wrong with your payment."
        assert [(a.label, a.kind) for a in page.actions] == [
            ("Go to Dashboard", "navigate"),
            ("Try Again", "history_back"),
        ]
        assert page.actions[0].target == "/student/fees"

    def test_failed_without_message_uses_fallback(self):
        state = VerificationState()
        state.mark_failed("", FailureKind.GATEWAY_TERMINAL_STATUS)
        assert render_page(state).description == FAILED_FALLBACK_DESCRIPTION
