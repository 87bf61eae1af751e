"""
Integration tests for the HTTP API.
"""
from typing import Any

import httpx
import pytest
import pytest_asyncio

from fee_portal.api.main import create_app
from fee_portal.core.verification import MISSING_INFORMATION_MESSAGE

CLIENT_SECRET = "pi_abc123456789_secret_xyz"


@pytest.fixture
def gateway(gateway_factory: Any, view_factory: Any) -> Any:
    return gateway_factory(view_factory())


@pytest.fixture
def app(test_settings: Any, gateway: Any, backend: Any) -> Any:
    return create_app(settings=test_settings, gateway=gateway, backend=backend)


@pytest_asyncio.fixture
async def client(app: Any) -> Any:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.mark.integration
class TestPaymentSuccessEndpoint:
    """Test GET /payments/success."""

    @pytest.mark.asyncio
    async def test_succeeded_payment(self, client: Any, gateway: Any, backend: Any) -> None:
        """Test a succeeded intent renders the success page and reconciles."""
        response = await client.get(
            "/payments/success",
            params={"payment_intent_client_secret": CLIENT_SECRET, "paymentId": "pay_42"},
        )

        assert response.status_code == 200
        assert "X-Request-ID" in response.headers
        body = response.json()
        assert body["phase"] == "success"
        assert body["title"] == "Payment Successful!"
        assert body["details"]["amount"] == "₹1,500.00"
        assert body["details"]["reference"] == "23456789"
        assert body["reconciliation"] == "succeeded"
        assert len(body["notifications"]) == 1
        assert body["notifications"][0]["severity"] == "success"
        assert gateway.calls == [CLIENT_SECRET]
        backend.manual_update.assert_awaited_once_with("pay_42", "pi_abc123456789")

    @pytest.mark.asyncio
    async def test_client_secret_alias(self, client: Any, backend: Any) -> None:
        """Test the clientSecret alias without a paymentId skips reconciliation."""
        response = await client.get("/payments/success", params={"clientSecret": CLIENT_SECRET})

        body = response.json()
        assert body["phase"] == "success"
        assert body["reconciliation"] == "skipped"
        backend.manual_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_parameters(self, client: Any, gateway: Any) -> None:
        """Test a visit without a client secret renders the failed page."""
        response = await client.get("/payments/success")

        assert response.status_code == 200
        body = response.json()
        assert body["phase"] == "failed"
        assert body["error_message"] == MISSING_INFORMATION_MESSAGE
        assert body["details"] is None
        assert [action["label"] for action in body["actions"]] == [
            "Go to Dashboard",
            "Try Again",
        ]
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_processing_payment(
        self, client: Any, gateway: Any, view_factory: Any, backend: Any
    ) -> None:
        gateway.responses = [view_factory(status="processing")]

        response = await client.get("/payments/success", params={"clientSecret": CLIENT_SECRET})

        body = response.json()
        assert body["phase"] == "processing"
        assert body["accent"] == "blue"
        assert body["reconciliation"] == "not_attempted"
        backend.manual_update.assert_not_awaited()


@pytest.mark.integration
class TestMonitoringEndpoints:
    """Test health and metrics endpoints."""

    @pytest.mark.asyncio
    async def test_root(self, client: Any) -> None:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    @pytest.mark.asyncio
    async def test_liveness(self, client: Any) -> None:
        response = await client.get("/health/live")
        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    @pytest.mark.asyncio
    async def test_health_all_healthy(self, client: Any) -> None:
        response = await client.get("/health")
        body = response.json()
        assert body["status"] == "healthy"
        assert set(body["checks"]) == {"stripe", "backend"}

    @pytest.mark.asyncio
    async def test_readiness_fails_when_stripe_is_down(self, client: Any, gateway: Any) -> None:
        """Test readiness answers 503 when a dependency is unhealthy."""
        gateway.ping_error = RuntimeError("stripe unreachable")

        response = await client.get("/health/ready")

        assert response.status_code == 503
        detail = response.json()["detail"]
        assert detail["checks"]["stripe"]["status"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_readiness_fails_on_backend_5xx(self, client: Any, backend: Any) -> None:
        backend.ping.return_value = 502

        response = await client.get("/health/ready")

        assert response.status_code == 503

    @pytest.mark.asyncio
    async def test_metrics(self, client: Any) -> None:
        await client.get("/payments/success")

        response = await client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "payment_verification_outcomes_total" in response.text
