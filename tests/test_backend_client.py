"""Tests for the institute backend client."""
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from fee_portal.integrations.backend_client import (
    BackendClient,
    ReconciliationError,
    iso_timestamp,
)


def make_client(test_settings, handler):
    return BackendClient.from_settings(test_settings, transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestManualUpdate:
    """Test the manual-update reconciliation call."""

    @pytest.mark.asyncio
    async def test_posts_payment_and_intent_ids(self, test_settings):
        """Test the request path and body."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True})

        client = make_client(test_settings, handler)
        try:
            body = await client.manual_update("pay_42", "pi_abc123456789")
        finally:
            await client.aclose()

        assert body == {"success": True}
        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/api/stripe/manual-update"
        assert json.loads(request.content) == {
            "paymentId": "pay_42",
            "paymentIntentId": "pi_abc123456789",
        }

    @pytest.mark.asyncio
    async def test_server_error_raises(self, test_settings):
        """Test a non-2xx response becomes ReconciliationError."""
        client = make_client(test_settings, lambda request: httpx.Response(500))
        try:
            with pytest.raises(ReconciliationError) as exc_info:
                await client.manual_update("pay_42", "pi_abc123456789")
        finally:
            await client.aclose()

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, test_settings):
        """Test an unreachable backend becomes ReconciliationError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(test_settings, handler)
        try:
            with pytest.raises(ReconciliationError) as exc_info:
                await client.manual_update("pay_42", "pi_abc123456789")
        finally:
            await client.aclose()

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_empty_and_non_json_bodies(self, test_settings):
        responses = [httpx.Response(204), httpx.Response(200, text="ok")]
        client = make_client(test_settings, lambda request: responses.pop(0))
        try:
            assert await client.manual_update("pay_42", "pi_1") == {}
            assert await client.manual_update("pay_42", "pi_1") == {"raw": "ok"}
        finally:
            await client.aclose()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_emi_update_payload(test_settings):
    """Test the EMI update path and body."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "paid"})

    paid_at = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
    client = make_client(test_settings, handler)
    try:
        await client.update_emi_payment("emi_7", "pi_abc123456789", paid_at=paid_at)
    finally:
        await client.aclose()

    request = seen[0]
    assert request.url.path == "/api/payments/emi/emi_7/update"
    assert json.loads(request.content) == {
        "status": "paid",
        "paidDate": "2026-10-19T09:30:00.000Z",
        "paymentMethod": "online",
        "paymentIntentId": "pi_abc123456789",
        "transactionId": "pi_abc123456789",
    }


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ping_returns_status_code(test_settings):
    client = make_client(test_settings, lambda request: httpx.Response(404))
    try:
        assert await client.ping() == 404
    finally:
        await client.aclose()


class TestIsoTimestamp:
    """Timestamps sent to the backend use the JavaScript ISO form."""

    def test_utc_gets_z_suffix_and_milliseconds(self):
        moment = datetime(2026, 10, 19, 9, 30, 5, 123456, tzinfo=timezone.utc)
        assert iso_timestamp(moment) == "2026-10-19T09:30:05.123Z"

    def test_offset_is_converted_to_utc(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        assert iso_timestamp(datetime(2026, 10, 19, 15, 0, tzinfo=ist)) == "2026-10-19T09:30:00.000Z"

    def test_naive_is_taken_as_utc(self):
        assert iso_timestamp(datetime(2026, 10, 19, 9, 30)) == "2026-10-19T09:30:00.000Z"
