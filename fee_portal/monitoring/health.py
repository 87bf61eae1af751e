"""
Dependency probes behind /health, /health/live and /health/ready.

The confirmation page needs two upstreams: the Stripe API (to read intents)
and the institute backend (to reconcile records). Liveness ignores both.
"""
from typing import Any, Awaitable, Callable, Dict, Protocol

import structlog

logger = structlog.get_logger(__name__)

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


class HealthCheckError(Exception):
    """A dependency probe failed."""


class _Pingable(Protocol):
    async def ping(self) -> Any:
        ...


class HealthCheck:
    """Probes the gateway and backend collaborators of a running app."""

    def __init__(self, gateway: _Pingable, backend: _Pingable, test_mode: bool = True) -> None:
        self.gateway = gateway
        self.backend = backend
        self.test_mode = test_mode

    async def check_stripe(self) -> Dict[str, Any]:
        """
        Make one authenticated Stripe call.

        Raises:
            HealthCheckError: If the call fails
        """
        try:
            await self.gateway.ping()
        except Exception as e:
            logger.error("stripe_probe_failed", error=str(e))
            raise HealthCheckError(f"Stripe unreachable: {e}") from e
        return {"status": HEALTHY, "service": "stripe", "test_mode": self.test_mode}

    async def check_backend(self) -> Dict[str, Any]:
        """
        GET the backend API root; anything below 500 counts as up.

        Raises:
            HealthCheckError: If the backend is unreachable or answers 5xx
        """
        try:
            status_code = await self.backend.ping()
        except Exception as e:
            logger.error("backend_probe_failed", error=str(e))
            raise HealthCheckError(f"Backend unreachable: {e}") from e

        if status_code >= 500:
            logger.error("backend_probe_failed", status_code=status_code)
            raise HealthCheckError(f"Backend answered HTTP {status_code}")
        return {"status": HEALTHY, "service": "backend", "status_code": status_code}

    def _probes(self) -> Dict[str, Callable[[], Awaitable[Dict[str, Any]]]]:
        return {"stripe": self.check_stripe, "backend": self.check_backend}

    async def check_all(self) -> Dict[str, Any]:
        """Run every probe; one failure makes the whole report unhealthy."""
        checks: Dict[str, Any] = {}
        for name, probe in self._probes().items():
            try:
                checks[name] = await probe()
            except HealthCheckError as e:
                checks[name] = {"status": UNHEALTHY, "service": name, "error": str(e)}

        healthy = all(check["status"] == HEALTHY for check in checks.values())
        return {"status": HEALTHY if healthy else UNHEALTHY, "checks": checks}

    async def liveness(self) -> Dict[str, Any]:
        return {"status": "alive", "message": "Process is serving requests"}

    async def readiness(self) -> Dict[str, Any]:
        return await self.check_all()
