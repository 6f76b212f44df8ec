"""Middleware: one structured log line per API request."""
import json
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from apps.backend.middleware.trace_id import HEADER, ensure_trace_id

logger = logging.getLogger("uvicorn.error")

_SECRET_KEYS = ("token", "password", "secret", "authorization")


def mask_payload(value):
    """Mask sensitive fields recursively for log-safe diagnostics."""
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            kl = str(k).lower()
            if any(s in kl for s in _SECRET_KEYS):
                out[k] = "[MASKED]" if v else None
            else:
                out[k] = mask_payload(v)
        return out
    if isinstance(value, list):
        return [mask_payload(v) for v in value]
    return value


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        trace_id = ensure_trace_id(request.scope)
        request.state.trace_id = trace_id
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            _log_request(request, trace_id, 500, start)
            raise
        response.headers[HEADER] = trace_id
        _log_request(request, trace_id, response.status_code, start)
        return response


def _log_request(request: Request, trace_id: str, status: int, start: float) -> None:
    if not request.url.path.startswith("/api"):
        return
    entry = {
        "type": "api_request",
        "trace_id": trace_id,
        "method": request.method,
        "path": request.url.path,
        "query": mask_payload(dict(request.query_params)),
        "status": status,
        "latency_ms": int((time.perf_counter() - start) * 1000),
        "origin": (request.headers.get("origin", "") or "")[:128],
        "user_agent": (request.headers.get("user-agent", "") or "")[:128],
    }
    level = logging.WARNING if status >= 500 else logging.INFO
    logger.log(level, json.dumps(entry, ensure_ascii=False))
