"""FastAPI dependencies resolving the collaborators stored on app.state."""
from fastapi import Request

from fee_portal.config import Settings
from fee_portal.integrations import BackendClient, StripeGateway
from fee_portal.monitoring.health import HealthCheck


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_health_check(request: Request) -> HealthCheck:
    return request.app.state.health_check
