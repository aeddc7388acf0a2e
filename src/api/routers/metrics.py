from __future__ import annotations

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["system"])


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus exposition of request, tool call and authorization metrics.
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
