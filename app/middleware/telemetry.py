"""Per-request Prometheus instrumentation."""

from __future__ import annotations

import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app.telemetry import observe_request

UNMATCHED_ROUTE = "unmatched"


def route_label(scope: dict) -> str:
    """Return a bounded route label for a request scope that has been routed.

    API routes report their template (``/stats/{contributor_id}``), mounted
    apps such as the uploaded-audio static files report their mount prefix,
    and anything the router rejected collapses into one label.
    """

    route = scope.get("route")
    path = getattr(route, "path", None)
    if path:
        return path

    mount_root = scope.get("root_path") or ""
    if scope.get("endpoint") is not None and mount_root:
        return f"{mount_root}/{{path}}"
    return UNMATCHED_ROUTE


class TelemetryMiddleware(BaseHTTPMiddleware):
    """Collect request metrics for Prometheus."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:  # pragma: no cover
            observe_request(
                request.method,
                route_label(request.scope),
                500,
                time.perf_counter() - start_time,
            )
            raise

        # Routing mutates the shared scope, so the route is known only now.
        observe_request(
            request.method,
            route_label(request.scope),
            response.status_code,
            time.perf_counter() - start_time,
        )
        return response
