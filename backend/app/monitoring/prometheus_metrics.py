"""
Prometheus metrics module for CoachLane.

Service timings come from the @measure_operation decorator. Domain counters
track booking-request outcomes, sweeper runs and swallowed side-effect failures.
"""

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Create a custom registry to avoid conflicts with default metrics
REGISTRY = CollectorRegistry()

service_operation_duration_seconds = Histogram(
    "coachlane_service_operation_duration_seconds",
    "Service operation duration in seconds",
    ["service", "operation"],
    registry=REGISTRY,
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
)

service_operations_total = Counter(
    "coachlane_service_operations_total",
    "Total number of service operations",
    ["service", "operation", "status"],
    registry=REGISTRY,
)

errors_total = Counter(
    "coachlane_errors_total",
    "Total number of errors",
    ["service", "operation", "error_type"],
    registry=REGISTRY,
)

booking_request_accept_total = Counter(
    "coachlane_booking_request_accept_total",
    "Booking request accept attempts by outcome",
    ["outcome"],  # success | requires_action | failure | already_processed | capture_without_booking
    registry=REGISTRY,
)

booking_requests_expired_total = Counter(
    "coachlane_booking_requests_expired_total",
    "Booking requests processed by the expiration sweeper",
    ["result"],  # expired | error | skipped
    registry=REGISTRY,
)

side_effect_failures_total = Counter(
    "coachlane_side_effect_failures_total",
    "Best-effort side effects that failed and were swallowed",
    ["effect"],
    registry=REGISTRY,
)

meeting_provision_total = Counter(
    "coachlane_meeting_provision_total",
    "Video meeting provisioning attempts",
    ["status"],  # created | skipped | error
    registry=REGISTRY,
)


class PrometheusMetrics:
    """Manages Prometheus metrics collection and exposure."""

    @staticmethod
    def record_service_operation(
        service: str,
        operation: str,
        duration: float,
        status: str = "success",
        error_type: Optional[str] = None,
    ) -> None:
        """
        Record service operation metrics from @measure_operation decorator.

        Args:
            service: Service name (e.g., 'BookingRequestService')
            operation: Operation/method name (e.g., 'accept_request')
            duration: Operation duration in seconds
            status: Operation status ('success' or 'error')
            error_type: Type of error if status is 'error'
        """
        service_operation_duration_seconds.labels(service=service, operation=operation).observe(
            duration
        )
        service_operations_total.labels(service=service, operation=operation, status=status).inc()
        if status == "error" and error_type:
            errors_total.labels(service=service, operation=operation, error_type=error_type).inc()

    @staticmethod
    def inc_accept_outcome(outcome: str) -> None:
        booking_request_accept_total.labels(outcome=outcome).inc()

    @staticmethod
    def inc_sweep_result(result: str, amount: int = 1) -> None:
        if amount:
            booking_requests_expired_total.labels(result=result).inc(amount)

    @staticmethod
    def inc_side_effect_failure(effect: str) -> None:
        side_effect_failures_total.labels(effect=effect).inc()

    @staticmethod
    def inc_meeting_provision(status: str) -> None:
        meeting_provision_total.labels(status=status).inc()

    @staticmethod
    def get_metrics() -> bytes:
        return generate_latest(REGISTRY)

    @staticmethod
    def get_content_type() -> str:
        return CONTENT_TYPE_LATEST


prometheus_metrics = PrometheusMetrics()
