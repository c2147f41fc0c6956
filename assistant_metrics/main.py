"""
Assistant Metrics — dashboard + metrics API

FastAPI application serving the landing page, the session-gated dashboard,
and the metrics ingestion/query API at /api/metrics.
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from assistant_metrics.config import settings
from assistant_metrics.routers import auth as auth_router
from assistant_metrics.routers import metrics, pages
from assistant_metrics.routers.pages import STATIC_DIR
from assistant_metrics.services.auth import verify_session_token

# =============================================================================
# LOGGING
# =============================================================================

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


# =============================================================================
# LIFESPAN
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[no-untyped-def]
    """Application lifespan handler."""
    logger.info("Starting %s in %s mode", settings.app_name, settings.environment)
    yield
    logger.info("Shutting down %s", settings.app_name)
    from assistant_metrics.services.supabase import close_supabase

    await close_supabase()


# =============================================================================
# APP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Assistant Metrics — KPI dashboard and metrics API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# =============================================================================
# MIDDLEWARE — Session gate
# =============================================================================
# /dashboard* requires a session; signed-in visitors skip the landing page.


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Redirect between landing page and dashboard based on the session cookie.

    /dashboard* without a valid session → /
    /            with a valid session    → /dashboard
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[no-untyped-def, override]
        path = request.url.path

        if path == "/" or path.startswith("/dashboard"):
            token = request.cookies.get(settings.session_cookie_name)
            # JWKS lookup blocks on the network
            user_id = await run_in_threadpool(verify_session_token, token)

            if path.startswith("/dashboard") and user_id is None:
                return RedirectResponse(url="/", status_code=307)
            if path == "/" and user_id is not None:
                return RedirectResponse(url="/dashboard", status_code=307)

        return await call_next(request)


app.add_middleware(SessionGateMiddleware)


@app.middleware("http")
async def log_requests(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Log all requests for debugging."""
    logger.debug("%s %s", request.method, request.url.path)
    response = await call_next(request)
    return response


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================
# Every error body is {"success": false, "error": <message>}.


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTP errors in the API envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and query params are client errors (400)."""
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400, content={"success": False, "error": "Invalid request"}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500, content={"success": False, "error": "Internal server error"}
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(metrics.router, prefix="/api", tags=["Metrics"])
app.include_router(auth_router.router, prefix="/auth", tags=["Auth"])
app.include_router(pages.router, tags=["Pages"])

app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


# =============================================================================
# HEALTH
# =============================================================================


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check."""
    return {"status": "healthy", "service": settings.app_name}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    uvicorn.run(
        "assistant_metrics.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
