"""
Client for the institute REST API reconciliation endpoints.

Built explicitly from settings and handed to whoever needs it; the owner is
responsible for closing it.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
import structlog

from fee_portal.config import Settings

logger = structlog.get_logger(__name__)

MANUAL_UPDATE_PATH = "/stripe/manual-update"
EMI_UPDATE_PATH = "/payments/emi/{payment_id}/update"


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix, e.g. 2026-10-19T09:30:00.000Z."""
    utc = moment.astimezone(timezone.utc) if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ReconciliationError(Exception):
    """Raised when the backend payment record could not be updated."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackendClient:
    """Async wrapper around the institute backend."""

    def __init__(self, http_client: httpx.AsyncClient) -> None:
        self._http = http_client

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "BackendClient":
        """Create a client with its own connection pool."""
        http_client = httpx.AsyncClient(
            base_url=settings.backend_api_base_url,
            timeout=settings.backend_timeout_seconds,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        return cls(http_client)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._http.post(path, json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ReconciliationError(
                f"Backend rejected update: HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ReconciliationError(f"Backend unreachable: {e}") from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {"raw": response.text}

    async def manual_update(self, payment_id: str, payment_intent_id: str) -> Dict[str, Any]:
        """
        Mark a fee payment as paid after the gateway confirmed it.

        Args:
            payment_id: Backend payment record id
            payment_intent_id: Gateway PaymentIntent id

        Returns:
            Dict[str, Any]: Backend response body

        Raises:
            ReconciliationError: On transport errors or non-2xx responses
        """
        logger.info(
            "manual_update_requested",
            payment_id=payment_id,
            payment_intent_id=payment_intent_id,
        )
        return await self._post(
            MANUAL_UPDATE_PATH,
            {"paymentId": payment_id, "paymentIntentId": payment_intent_id},
        )

    async def update_emi_payment(
        self,
        payment_id: str,
        payment_intent_id: str,
        paid_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Mark an instalment (EMI) payment as paid online.

        Raises:
            ReconciliationError: On transport errors or non-2xx responses
        """
        paid_at = paid_at or datetime.now(timezone.utc)
        logger.info(
            "emi_update_requested",
            payment_id=payment_id,
            payment_intent_id=payment_intent_id,
        )
        return await self._post(
            EMI_UPDATE_PATH.format(payment_id=payment_id),
            {
                "status": "paid",
                "paidDate": iso_timestamp(paid_at),
                "paymentMethod": "online",
                "paymentIntentId": payment_intent_id,
                "transactionId": payment_intent_id,
            },
        )

    async def ping(self) -> int:
        """Return the status code of a GET on the API root."""
        response = await self._http.get("/")
        return response.status_code
