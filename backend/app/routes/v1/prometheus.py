"""
Prometheus metrics endpoint.

Public, unauthenticated, following standard Prometheus practice. Exposes the
counters and histograms registered in ``app.monitoring.prometheus_metrics``.
"""

from fastapi import APIRouter, Response

from app.monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/metrics", include_in_schema=False)
def get_prometheus_metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
    )
