"""FastAPI entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apps.backend.config import get_settings
from apps.backend.middleware.request_log import RequestLogMiddleware
from apps.backend.middleware.trace_id import HEADER, ensure_trace_id
from apps.backend.routers import auth, cookies, health, users, website_cookies
from apps.backend.utils.api_errors import ApiError, error_body

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.getLogger("apps").setLevel(get_settings().log_level.upper())
    yield
    # shutdown


app = FastAPI(
    title="Cookie Vault",
    description="Cookie sharing backend for the browser extension",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Plan-Expiry-Warning", "X-Plan-Expiry-Date", HEADER],
)

app.include_router(health.router, tags=["System"])
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(cookies.router, prefix="/api/cookies", tags=["Cookies"])
app.include_router(website_cookies.router, prefix="/api/website-cookies", tags=["Website Cookies"])
app.include_router(users.router, prefix="/api/users", tags=["Users"])


def _with_trace(request: Request, resp: JSONResponse) -> JSONResponse:
    resp.headers[HEADER] = ensure_trace_id(request.scope)
    return resp


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return _with_trace(request, JSONResponse(content=exc.body(), status_code=exc.status_code))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"Invalid {field}: {first.get('msg')}" if field else "Invalid request"
    return _with_trace(request, JSONResponse(content=error_body(message), status_code=400))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if not isinstance(detail, str):
        detail = str(detail) if detail else "Request failed"
    return _with_trace(request, JSONResponse(content=error_body(detail), status_code=exc.status_code))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Unhandled errors become 500 {message}; the error text is exposed only in debug."""
    trace_id = ensure_trace_id(request.scope)
    logger.exception("Unhandled exception trace_id=%s path=%s", trace_id, request.url.path)
    extra = {"error": str(exc)[:200]} if get_settings().debug else {}
    return _with_trace(request, JSONResponse(content=error_body("Internal server error", **extra), status_code=500))
