# backend/trim_booking/routes/prometheus.py
"""
Prometheus metrics endpoint.

Public and tenant-agnostic, following standard Prometheus practice. The
payload is cached briefly inside PrometheusMetrics.get_metrics().
"""

from fastapi import APIRouter, Response

from ..monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/metrics", include_in_schema=False)
def metrics_endpoint() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(),
        media_type=prometheus_metrics.get_content_type(),
        headers={"Cache-Control": "no-store"},
    )
