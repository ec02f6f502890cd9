import re
import time
import uuid
import logging
from typing import Dict, Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from backend.app.core.logging import correlation_id_ctx, event_id_ctx

logger = logging.getLogger(__name__)

# /incidents/{id}..., /briefings/{id}... and /access/<plural>/{id}/verify
_RESOURCE_PATH = re.compile(r"/(incidents|briefings)/(?!markdown(?:/|$))([^/]+)")
_RESOURCE_TYPES = {"incidents": "incident", "briefings": "briefing"}


def resource_from_path(path: str) -> Dict[str, Optional[str]]:
    """The incident or briefing a request path addresses, if any."""
    match = _RESOURCE_PATH.search(path)
    if not match:
        return {}
    return {"resource_type": _RESOURCE_TYPES[match.group(1)], "resource_id": match.group(2)}


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Sets the correlation and event ids for every request, echoes them in the
    response headers and writes one log line per request.

    Only the method, path and resource ids are logged. Cookies carry access
    grants and bodies carry passwords, so neither is ever read here.
    """
    async def dispatch(self, request: Request, call_next):
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        event_id = str(uuid.uuid4())
        correlation_id_ctx.set(correlation_id)
        event_id_ctx.set(event_id)

        fields = {"method": request.method, "path": request.url.path}
        fields.update(resource_from_path(request.url.path))
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            fields.update(status_code=500, duration_ms=round((time.perf_counter() - start_time) * 1000, 2), error=str(e))
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={"extra_data": fields},
                exc_info=True,
            )
            raise

        fields.update(
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            client_ip=request.client.host if request.client else None,
        )
        logger.info(f"{request.method} {request.url.path} -> {response.status_code}", extra={"extra_data": fields})

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Event-ID"] = event_id
        return response
