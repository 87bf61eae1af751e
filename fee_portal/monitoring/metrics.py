"""
Prometheus metrics for payment confirmation monitoring.

Tracks:
- Verification outcomes by phase and failure kind
- Gateway queries, errors and latency
- Reconciliation writes by target and result
"""
from prometheus_client import Counter, Histogram

verification_outcomes_total = Counter(
    "payment_verification_outcomes_total",
    "Completed payment verifications",
    ["phase", "failure_kind"],
)

gateway_queries_total = Counter(
    "payment_gateway_queries_total",
    "PaymentIntent retrievals by resulting status",
    ["status"],
)

gateway_errors_total = Counter(
    "payment_gateway_errors_total",
    "PaymentIntent retrieval errors",
    ["error_type"],  # transient, permanent, rate_limit
)

gateway_query_duration_seconds = Histogram(
    "payment_gateway_query_duration_seconds",
    "PaymentIntent retrieval duration in seconds",
    buckets=(0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0, 10.0),
)

reconciliation_attempts_total = Counter(
    "payment_reconciliation_attempts_total",
    "Backend reconciliation writes",
    ["target", "result"],  # target: manual_update, emi; result: succeeded, failed
)


class MetricsCollector:
    """Helper class for collecting metrics."""

    @staticmethod
    def record_verification(phase: str, failure_kind: str | None = None) -> None:
        """Record the phase a verification ended in."""
        verification_outcomes_total.labels(
            phase=phase, failure_kind=failure_kind or "none"
        ).inc()

    @staticmethod
    def record_gateway_query(status: str, duration_seconds: float) -> None:
        """Record a successful gateway query."""
        gateway_queries_total.labels(status=status).inc()
        gateway_query_duration_seconds.observe(duration_seconds)

    @staticmethod
    def record_gateway_error(error_type: str) -> None:
        """Record a gateway query error."""
        gateway_errors_total.labels(error_type=error_type).inc()

    @staticmethod
    def record_reconciliation(target: str, result: str) -> None:
        """Record a reconciliation write."""
        reconciliation_attempts_total.labels(target=target, result=result).inc()


metrics = MetricsCollector()
