from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from taskhouse.core.metrics import request_metrics
from taskhouse.core.request_context import clear_request_context, set_request_context

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class ObservabilityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        set_request_context(request_id=request_id)

        status_code = 500
        response = None
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            tenant_id = _extract_tenant_id(request)
            route = request.scope.get("route")
            # Template da rota agrupa /api/tasks/1 e /api/tasks/2 na mesma métrica.
            endpoint = getattr(route, "path", None) or request.url.path
            duration_ms = round((time.perf_counter() - start) * 1000, 2)

            set_request_context(tenant_id=tenant_id)
            request_metrics.observe(
                endpoint=endpoint,
                method=request.method,
                status_code=status_code,
                duration_ms=duration_ms,
                tenant_id=tenant_id,
            )

            logger.info(
                "request completed",
                extra={
                    "request_id": request_id,
                    "tenant_id": tenant_id,
                    "endpoint": endpoint,
                    "method": request.method,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )

            if response is not None:
                response.headers[REQUEST_ID_HEADER] = request_id

            clear_request_context()


def _extract_tenant_id(request: Request) -> str | None:
    tenant = request.path_params.get("tenant_id") or request.query_params.get("tenant_id")
    if tenant:
        return str(tenant)
    return None
