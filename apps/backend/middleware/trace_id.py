"""Single source for request trace_id. Use scope for ASGI, request.scope for Starlette."""
import uuid

SCOPE_KEY = "trace_id"
HEADER = "X-Trace-Id"


def ensure_trace_id(scope: dict) -> str:
    """Get or set trace_id on ASGI scope. Reuses an inbound X-Trace-Id header when present."""
    tid = scope.get(SCOPE_KEY)
    if tid and isinstance(tid, str):
        return tid
    for name, value in scope.get("headers") or []:
        if name.decode("latin-1").lower() == HEADER.lower():
            tid = value.decode("latin-1").strip()[:64]
            break
    if not tid:
        tid = str(uuid.uuid4())[:16]
    scope[SCOPE_KEY] = tid
    return tid
