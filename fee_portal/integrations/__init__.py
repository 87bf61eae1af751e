"""External integrations for payment confirmation."""
from .backend_client import BackendClient, ReconciliationError
from .stripe_gateway import GatewayErrorType, GatewayQueryError, StripeGateway

__all__ = [
    "BackendClient",
    "ReconciliationError",
    "StripeGateway",
    "GatewayErrorType",
    "GatewayQueryError",
]
