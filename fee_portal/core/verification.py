"""
Payment confirmation flow.

Runs once when a payer lands on the confirmation page after the gateway
redirect:

1. read the client secret (and optional local payment id) from the query
2. ask the gateway for the authoritative intent status
3. map the status to a verification phase
4. reconcile the backend record in the background when the payment succeeded
5. emit exactly one notification

The gateway decides what the payer sees. The backend write is secondary: its
failure is logged and only softens the notification text.
"""
import asyncio
from typing import Mapping, Protocol, Union

import structlog
from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_fixed

from fee_portal.config import Settings
from fee_portal.monitoring.metrics import metrics

from . import notifications
from .models import (
    FailureKind,
    IntentStatus,
    PaymentIntentView,
    ReconciliationOutcome,
    VerificationRequest,
    VerificationState,
)
from .notifications import Notifier

logger = structlog.get_logger(__name__)

MISSING_INFORMATION_MESSAGE = "Payment verification failed. Missing payment information."
VERIFICATION_FAILED_MESSAGE = "Failed to verify payment status."
REQUIRES_PAYMENT_METHOD_MESSAGE = "Payment failed. Please try another payment method."
GENERIC_FAILURE_MESSAGE = "Something went wrong with your payment."

# Reconciliation writes in flight; they outlive a cancelled page request.
_background_writes: "set[asyncio.Task[ReconciliationOutcome]]" = set()


class IntentGateway(Protocol):
    async def retrieve_intent(self, client_secret: str) -> PaymentIntentView:
        ...


class PaymentRecordBackend(Protocol):
    async def manual_update(self, payment_id: str, payment_intent_id: str) -> dict:
        ...

    async def update_emi_payment(self, payment_id: str, payment_intent_id: str) -> dict:
        ...


class FlowAlreadyStarted(RuntimeError):
    """Raised when run() is called twice on the same flow."""


class PaymentVerificationFlow:
    """
    Verification state machine for one confirmation page visit.

    A flow instance owns its VerificationState and can run only once.
    """

    def __init__(
        self,
        gateway: IntentGateway,
        backend: PaymentRecordBackend,
        notifier: Notifier,
        processing_poll_attempts: int = 0,
        processing_poll_interval: float = 2.0,
    ) -> None:
        """
        Initialize the flow.

        Args:
            gateway: Retrieves intents by client secret
            backend: Institute API used for reconciliation writes
            notifier: Receives the single terminal notification
            processing_poll_attempts: Extra gateway queries while the intent is
                still processing (0 keeps the single-query behaviour)
            processing_poll_interval: Seconds between those queries
        """
        self.gateway = gateway
        self.backend = backend
        self.notifier = notifier
        self.processing_poll_attempts = processing_poll_attempts
        self.processing_poll_interval = processing_poll_interval
        self.state = VerificationState()
        self._started = False

    async def run(
        self, params: Union[VerificationRequest, Mapping[str, str]]
    ) -> VerificationState:
        """
        Verify the payment described by the navigation parameters.

        Never raises for collaborator failures; the outcome is always
        expressed through ``self.state`` and one notification.
        """
        if self._started:
            raise FlowAlreadyStarted("Verification flow already ran")
        self._started = True

        request = (
            params
            if isinstance(params, VerificationRequest)
            else VerificationRequest.from_query(params)
        )

        if not request.client_secret:
            logger.warning("payment_verification_missing_client_secret")
            self._fail(MISSING_INFORMATION_MESSAGE, FailureKind.MISSING_PARAMETER)
            self.notifier.notify(notifications.verification_failed(MISSING_INFORMATION_MESSAGE))
            return self.state

        try:
            view = await self._query_gateway(request.client_secret)
        except Exception as e:
            logger.error(
                "payment_verification_gateway_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            self._fail(VERIFICATION_FAILED_MESSAGE, FailureKind.GATEWAY_QUERY_FAILURE)
            self.notifier.notify(notifications.verification_failed(VERIFICATION_FAILED_MESSAGE))
            return self.state

        logger.info(
            "payment_verification_intent_status",
            payment_intent_id=view.id,
            status=view.raw_status,
            payment_id=request.payment_id,
        )

        if view.status is IntentStatus.SUCCEEDED:
            await self._handle_succeeded(view, request)
        elif view.status is IntentStatus.PROCESSING:
            self.state.mark_processing(view)
            self.notifier.notify(notifications.PAYMENT_PROCESSING)
        elif view.status is IntentStatus.REQUIRES_PAYMENT_METHOD:
            self._fail(REQUIRES_PAYMENT_METHOD_MESSAGE, FailureKind.GATEWAY_TERMINAL_STATUS)
            self.notifier.notify(notifications.PAYMENT_FAILED)
        else:
            self._fail(GENERIC_FAILURE_MESSAGE, FailureKind.GATEWAY_TERMINAL_STATUS)
            self.notifier.notify(notifications.PAYMENT_ERROR)

        return self.state

    def _fail(self, message: str, kind: FailureKind) -> None:
        self.state.mark_failed(message, kind)
        logger.info("payment_verification_failed", failure_kind=kind.value)

    async def _query_gateway(self, client_secret: str) -> PaymentIntentView:
        view = await self.gateway.retrieve_intent(client_secret)
        if view.status is not IntentStatus.PROCESSING or self.processing_poll_attempts <= 0:
            return view
        return await self._poll_while_processing(client_secret, view)

    async def _poll_while_processing(
        self, client_secret: str, first: PaymentIntentView
    ) -> PaymentIntentView:
        """Re-query a processing intent a bounded number of times."""
        latest = first

        async def poll() -> PaymentIntentView:
            nonlocal latest
            latest = await self.gateway.retrieve_intent(client_secret)
            return latest

        retrying = AsyncRetrying(
            retry=retry_if_result(lambda v: v.status is IntentStatus.PROCESSING),
            stop=stop_after_attempt(self.processing_poll_attempts),
            wait=wait_fixed(self.processing_poll_interval),
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
        )
        try:
            await asyncio.sleep(self.processing_poll_interval)
            return await retrying(poll)
        except Exception as e:
            # Keep the last processing answer.
            logger.warning("payment_verification_repoll_failed", error=str(e))
            return latest

    async def _handle_succeeded(
        self, view: PaymentIntentView, request: VerificationRequest
    ) -> None:
        self.state.mark_success(view)

        if not request.payment_id:
            self.state.record_reconciliation(ReconciliationOutcome.SKIPPED)
            self.notifier.notify(notifications.PAYMENT_SUCCESSFUL)
            return

        task = asyncio.create_task(
            self._reconcile(request.payment_id, view.id, request.is_emi),
            name=f"reconcile-{request.payment_id}",
        )
        _background_writes.add(task)
        task.add_done_callback(_background_writes.discard)
        outcome = await asyncio.shield(task)
        self.state.record_reconciliation(outcome)

        if outcome is ReconciliationOutcome.SUCCEEDED:
            self.notifier.notify(notifications.PAYMENT_SUCCESSFUL)
        else:
            self.notifier.notify(notifications.PAYMENT_SUCCESSFUL_RECORDS_PENDING)

    async def _reconcile(
        self, payment_id: str, payment_intent_id: str, is_emi: bool
    ) -> ReconciliationOutcome:
        """Background reconciliation write; failures end here."""
        target = "emi" if is_emi else "manual_update"
        log = logger.bind(
            payment_id=payment_id,
            payment_intent_id=payment_intent_id,
            target=target,
        )
        try:
            if is_emi:
                await self.backend.update_emi_payment(payment_id, payment_intent_id)
            else:
                await self.backend.manual_update(payment_id, payment_intent_id)
        except Exception as e:
            log.error("reconciliation_failed", error=str(e), error_type=type(e).__name__)
            metrics.record_reconciliation(target, "failed")
            return ReconciliationOutcome.FAILED

        log.info("reconciliation_succeeded")
        metrics.record_reconciliation(target, "succeeded")
        return ReconciliationOutcome.SUCCEEDED


def build_flow(
    gateway: IntentGateway,
    backend: PaymentRecordBackend,
    notifier: Notifier,
    settings: Settings,
) -> PaymentVerificationFlow:
    """Create a flow configured from settings."""
    return PaymentVerificationFlow(
        gateway,
        backend,
        notifier,
        processing_poll_attempts=settings.processing_poll_attempts,
        processing_poll_interval=settings.processing_poll_interval_seconds,
    )
