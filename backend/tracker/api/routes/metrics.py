"""Prometheus exposition of the autosave and sync series."""

from fastapi import APIRouter, Query, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics(names: list[str] = Query(default=[], alias="name[]")) -> Response:
    """Render registered metrics in the Prometheus text format.

    Series of interest:
    - autosave_flush_latency_ms{outcome}
    - sync_attempts_total{outcome}
    - sync_conflicts_total{source}

    Repeated `name[]` parameters restrict the output to those sample names,
    the same filter prometheus_client's own exporter accepts.
    """
    registry = REGISTRY.restricted_registry(names) if names else REGISTRY
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
