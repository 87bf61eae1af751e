"""
Pytest configuration and fixtures for payment confirmation tests.
"""
from typing import Any, List, Optional, Union
from unittest.mock import AsyncMock

import pytest

from fee_portal.config import Settings
from fee_portal.core.models import IntentStatus, PaymentIntentView
from fee_portal.core.notifications import CollectingNotifier
from fee_portal.integrations import BackendClient


def make_view(
    status: str = "succeeded",
    amount_minor: int = 150000,
    currency: str = "inr",
    intent_id: str = "pi_abc123456789",
    method: str = "card",
) -> PaymentIntentView:
    """Build a PaymentIntentView the way the gateway would."""
    return PaymentIntentView(
        id=intent_id,
        amount_minor=amount_minor,
        currency=currency,
        status=IntentStatus(status),
        raw_status=status,
        payment_method_kind=method,
    )


class FakeGateway:
    """Scripted gateway: each retrieval pops the next view or raises the next error."""

    def __init__(self, *responses: Union[PaymentIntentView, Exception]) -> None:
        self.responses: List[Union[PaymentIntentView, Exception]] = list(responses)
        self.calls: List[str] = []
        self.ping_error: Optional[Exception] = None

    async def retrieve_intent(self, client_secret: str) -> PaymentIntentView:
        self.calls.append(client_secret)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

    async def ping(self) -> None:
        if self.ping_error is not None:
            raise self.ping_error


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings."""
    return Settings(
        _env_file=None,
        stripe_secret_key="sk_test_fake_key_for_testing",
        stripe_publishable_key="pk_test_fake_key_for_testing",
        backend_api_base_url="http://backend.test/api",
        app_name="fee-portal-test",
        app_env="test",
        log_level="DEBUG",
        debug=True,
    )


@pytest.fixture
def backend() -> Any:
    """Backend client double; every call succeeds unless told otherwise."""
    mock_backend = AsyncMock(spec=BackendClient)
    mock_backend.manual_update.return_value = {"message": "Payment updated"}
    mock_backend.update_emi_payment.return_value = {"message": "EMI updated"}
    mock_backend.ping.return_value = 200
    return mock_backend


@pytest.fixture
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture
def view_factory() -> Any:
    return make_view


@pytest.fixture
def gateway_factory() -> Any:
    return FakeGateway
