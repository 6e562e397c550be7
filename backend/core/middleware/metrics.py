from starlette.middleware.base import BaseHTTPMiddleware

from backend.core.metrics import http_requests_total, normalize_path


# Scrapes of the metrics endpoint itself are not counted
UNCOUNTED_PATHS = {"/metrics"}


class MetricsMiddleware(BaseHTTPMiddleware):
    """Count requests per method, normalized path and status."""

    async def dispatch(self, request, call_next):
        try:
            response = await call_next(request)
        except Exception:
            _count(request, 500)
            raise
        _count(request, response.status_code)
        return response


def _count(request, status: int) -> None:
    path = normalize_path(request.url.path)
    if path in UNCOUNTED_PATHS:
        return
    http_requests_total.inc(labels={
        "method": request.method.upper(),
        "path": path,
        "status": str(status),
    })
