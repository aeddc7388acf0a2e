from __future__ import annotations

import time
from typing import Any

from prometheus_client import Counter, Histogram

# Label hygiene: keep labels low-cardinality (endpoint, method, status)
REQUEST_COUNT = Counter(
    "request_count", "Total HTTP requests", labelnames=("endpoint", "method", "status")
)

REQUEST_LATENCY_SECONDS = Histogram(
    "request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("endpoint", "method"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)

# Tool metrics are labelled with registered tool names only (bounded set)
TOOL_CALL_COUNT = Counter(
    "tool_call_count", "Total tool invocations after authorization", labelnames=("tool_name",)
)
TOOL_LATENCY_SECONDS = Histogram(
    "tool_latency_seconds",
    "Tool call latency in seconds",
    labelnames=("tool_name",),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0),
)
# Deny reasons stay in the audit trail; /metrics is readable without a token
AUTHZ_DECISION_COUNT = Counter(
    "authz_decision_count",
    "Authorization gate decisions",
    labelnames=("decision",),
)


def _extract_endpoint(scope: dict[str, Any]) -> str:
    # Prefer route path template if available; fallback to raw path
    route = scope.get("route")
    path = getattr(route, "path", None) if route is not None else None
    if isinstance(path, str) and path:
        return path
    path = scope.get("path") or scope.get("raw_path")
    if isinstance(path, bytes):
        path = path.decode("utf-8", errors="ignore")
    if not isinstance(path, str):
        return "/unknown"
    return path.rstrip("/") or "/"


class MetricsMiddleware:
    """
    ASGI middleware that records request counts and latencies.

    - Avoids recording bodies/headers (bearer tokens never reach labels).
    - Labels: endpoint (route template, e.g. /tools/{name}/call), method, status code.
      Unrouted 404s share one "/unmatched" label.
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        method = (scope.get("method") or "GET").upper()
        start = time.monotonic()

        status_code_holder: dict[str, int | None] = {"status": None}

        async def send_wrapper(message: dict[str, Any]):
            if message.get("type") == "http.response.start":
                status = message.get("status")
                status_code_holder["status"] = int(status) if status is not None else None
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration = max(0.0, time.monotonic() - start)
            # Resolved after routing so the path template is available
            endpoint = _extract_endpoint(scope)
            if status_code_holder["status"] == 404 and scope.get("route") is None:
                endpoint = "/unmatched"
            REQUEST_LATENCY_SECONDS.labels(endpoint=endpoint, method=method).observe(duration)
            status_label = str(status_code_holder["status"] or 0)
            REQUEST_COUNT.labels(endpoint=endpoint, method=method, status=status_label).inc()
