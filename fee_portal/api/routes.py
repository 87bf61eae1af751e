"""
API routes for payment confirmation.
"""
import time
from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from fee_portal.config import Settings
from fee_portal.core import CollectingNotifier, build_flow, render_page
from fee_portal.integrations import BackendClient, StripeGateway
from fee_portal.monitoring.health import HealthCheck
from fee_portal.monitoring.metrics import metrics

from .dependencies import get_app_settings, get_backend, get_gateway, get_health_check
from .schemas import HealthCheckResponse, PaymentPageResponse

logger = structlog.get_logger(__name__)

payment_router = APIRouter(prefix="/payments", tags=["payments"])
monitoring_router = APIRouter(tags=["monitoring"])


@payment_router.get(
    "/success",
    response_model=PaymentPageResponse,
    summary="Payment confirmation page",
    description=(
        "Verify the payment the gateway redirected back with and return the "
        "confirmation page model"
    ),
)
async def payment_success(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    gateway: StripeGateway = Depends(get_gateway),
    backend: BackendClient = Depends(get_backend),
) -> PaymentPageResponse:
    """
    Run the verification flow once for this visit.

    Always answers 200: failures are part of the rendered page.
    """
    start_time = time.time()
    notifier = CollectingNotifier()
    flow = build_flow(gateway, backend, notifier, settings)

    state = await flow.run(request.query_params)

    failure_kind = state.failure_kind.value if state.failure_kind else None
    metrics.record_verification(state.phase.value, failure_kind)

    page = render_page(
        state,
        locale=settings.display_locale,
        dashboard_path=settings.dashboard_path,
    )

    logger.info(
        "api_payment_success_rendered",
        phase=state.phase.value,
        failure_kind=failure_kind,
        reconciliation=state.reconciliation.value,
        duration_seconds=time.time() - start_time,
    )

    return PaymentPageResponse(
        **page.model_dump(),
        notifications=notifier.notifications,
        reconciliation=state.reconciliation,
    )


@monitoring_router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Dependency report",
    description="Stripe and institute backend reachability",
)
async def health(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    """Always 200; the body says whether each dependency is up."""
    return await health_check.check_all()


@monitoring_router.get("/health/live", response_model=HealthCheckResponse, summary="Liveness probe")
async def liveness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    return await health_check.liveness()


@monitoring_router.get(
    "/health/ready",
    response_model=HealthCheckResponse,
    summary="Readiness probe",
    responses={503: {"description": "A dependency is unhealthy"}},
)
async def readiness(health_check: HealthCheck = Depends(get_health_check)) -> Dict[str, Any]:
    report = await health_check.readiness()
    if report["status"] != "healthy":
        logger.warning("readiness_failed", checks=list(report["checks"]))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=report)
    return report


@monitoring_router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
