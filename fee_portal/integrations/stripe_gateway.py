"""
Stripe gateway client for confirming payments.

Retrieves a PaymentIntent authorised by its client secret and converts it
into a validated PaymentIntentView. Stripe errors are classified so callers
and metrics can tell transient failures from permanent ones.
"""
import asyncio
import functools
import time
from enum import Enum
from typing import Any, Optional

import stripe
import structlog

from fee_portal.config import Settings
from fee_portal.core.models import PaymentIntentView
from fee_portal.monitoring.metrics import metrics

logger = structlog.get_logger(__name__)

CLIENT_SECRET_SEPARATOR = "_secret_"


class GatewayErrorType(Enum):
    """Classification of gateway errors."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    RATE_LIMIT = "rate_limit"


class GatewayQueryError(Exception):
    """Raised when a PaymentIntent cannot be retrieved or trusted."""

    def __init__(
        self,
        message: str,
        error_type: GatewayErrorType,
        original_error: Optional[Exception] = None,
    ):
        """
        Initialize gateway error.

        Args:
            message: Error message
            error_type: Classification of error
            original_error: Original Stripe exception
        """
        super().__init__(message)
        self.error_type = error_type
        self.original_error = original_error


def intent_id_from_client_secret(client_secret: str) -> str:
    """
    Extract the PaymentIntent id from a client secret.

    Client secrets have the form ``pi_<id>_secret_<token>``.

    Raises:
        GatewayQueryError: If the secret is malformed
    """
    intent_id, separator, token = client_secret.partition(CLIENT_SECRET_SEPARATOR)
    if not separator or not token or not intent_id.startswith("pi_"):
        raise GatewayQueryError("Malformed client secret", GatewayErrorType.PERMANENT)
    return intent_id


class StripeGateway:
    """
    Read-only Stripe wrapper used by the confirmation flow.

    The API key is passed per request; nothing is written to the module-level
    ``stripe.api_key``.
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Stripe gateway."""
        self._api_key = settings.stripe_secret_key
        self._api_version = settings.stripe_api_version

        logger.info(
            "stripe_gateway_initialized",
            api_version=self._api_version,
            test_mode=settings.is_test_mode,
        )

    @staticmethod
    def _classify_error(error: stripe.StripeError) -> GatewayErrorType:
        """Classify a Stripe error."""
        if isinstance(error, stripe.RateLimitError):
            return GatewayErrorType.RATE_LIMIT
        elif isinstance(error, (stripe.APIConnectionError, stripe.APIError)):
            return GatewayErrorType.TRANSIENT
        elif isinstance(
            error,
            (
                stripe.CardError,
                stripe.InvalidRequestError,
                stripe.AuthenticationError,
            ),
        ):
            return GatewayErrorType.PERMANENT
        else:
            # Unknown errors are treated as transient
            return GatewayErrorType.TRANSIENT

    def _handle_stripe_error(self, error: stripe.StripeError) -> None:
        """
        Log, count and re-raise a Stripe error as GatewayQueryError.

        Raises:
            GatewayQueryError: Classified error
        """
        error_type = self._classify_error(error)

        logger.error(
            "stripe_api_error",
            error_type=error_type.value,
            error_code=getattr(error, "code", None),
            error_message=str(error),
        )
        metrics.record_gateway_error(error_type.value)

        raise GatewayQueryError(
            message=str(error),
            error_type=error_type,
            original_error=error,
        ) from error

    def _retrieve(self, intent_id: str) -> Any:
        return stripe.PaymentIntent.retrieve(
            intent_id,
            api_key=self._api_key,
            stripe_version=self._api_version,
        )

    async def retrieve_intent(self, client_secret: str) -> PaymentIntentView:
        """
        Retrieve the PaymentIntent a client secret belongs to.

        Args:
            client_secret: PaymentIntent client secret from the return URL

        Returns:
            PaymentIntentView: Validated view of the intent

        Raises:
            GatewayQueryError: If the secret is malformed, Stripe fails, or the
                retrieved intent does not carry this client secret
        """
        intent_id = intent_id_from_client_secret(client_secret)
        logger.info("retrieving_payment_intent", payment_intent_id=intent_id)

        start_time = time.time()
        loop = asyncio.get_running_loop()
        try:
            intent = await loop.run_in_executor(
                None, functools.partial(self._retrieve, intent_id)
            )
        except stripe.StripeError as e:
            self._handle_stripe_error(e)
            raise  # For type checker

        if getattr(intent, "client_secret", None) != client_secret:
            logger.warning("client_secret_mismatch", payment_intent_id=intent_id)
            metrics.record_gateway_error(GatewayErrorType.PERMANENT.value)
            raise GatewayQueryError(
                "Client secret does not match the payment intent",
                GatewayErrorType.PERMANENT,
            )

        view = PaymentIntentView.from_gateway(intent)
        duration = time.time() - start_time
        metrics.record_gateway_query(view.status.value, duration)

        logger.info(
            "payment_intent_retrieved",
            payment_intent_id=view.id,
            status=view.raw_status,
            amount_minor=view.amount_minor,
            currency=view.currency,
            duration_seconds=duration,
        )
        return view

    async def ping(self) -> None:
        """Cheap authenticated call used by health checks."""
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            None,
            functools.partial(
                stripe.PaymentIntent.list,
                limit=1,
                api_key=self._api_key,
                stripe_version=self._api_version,
            ),
        )
