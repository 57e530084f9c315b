"""
Main FastAPI application: the webhook server ("webhooky").
"""
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from cio.api.v1.api import api_router
from cio.clients.base import APIConnectionError, APIError
from cio.core.config import settings
from cio.core.database import init_db
from cio.core.exceptions import (
    APITokenNotFoundError,
    CIOException,
    CompanyNotFoundError,
    FunctionNotFoundError,
    RecordNotFoundError,
    UnauthorizedError,
    UnknownJobError,
    ValidationError,
    WebhookVerificationError,
)
from cio.core.http_client import close_http_client
from cio.core.logging_config import log_error, log_info, log_warning, setup_logging
from cio.middleware.request_logging import RequestLoggingMiddleware, request_id_ctx

# -----------------------------------------------------------------------------
# Startup / Shutdown
# -----------------------------------------------------------------------------
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    log_info("Starting up CIO webhook server...")
    try:
        init_db()
        log_info("Database initialization completed!")
    except Exception as exc:
        log_error(exc)
        raise
    yield
    log_info("Shutting down CIO webhook server...")
    try:
        await close_http_client()
    except Exception as exc:
        log_warning(f"Failed to close HTTP client: {exc}")


# -----------------------------------------------------------------------------
# App Initialization
# -----------------------------------------------------------------------------
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Webhooks and sync jobs that keep business tools and Airtable in step",
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# -----------------------------------------------------------------------------
# Middleware Configuration
# -----------------------------------------------------------------------------
# CORS
cors_origins = settings.cors_origins or []
if settings.enable_cors:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "X-Requested-With"],
        max_age=3600,
    )
    log_info(f"CORS enabled for origins: {cors_origins}")

# GZip Middleware.
app.add_middleware(GZipMiddleware, minimum_size=1024)

# Logging Middleware
app.add_middleware(RequestLoggingMiddleware)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add X-Process-Time header."""
    start_time = time.time()
    response = await call_next(request)
    response.headers["X-Process-Time"] = str(time.time() - start_time)
    return response


# -----------------------------------------------------------------------------
# Exception Handlers
# -----------------------------------------------------------------------------
def _error_response(status_code: int, error: str, message) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "request_id": request_id_ctx.get()},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with detailed logging."""
    errors = [
        {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    log_warning(
        "Request validation failed",
        request_id=request_id_ctx.get(),
        path=request.url.path,
        method=request.method,
        errors=errors,
    )
    return _error_response(422, "validation_error", errors)


@app.exception_handler(CIOException)
async def cio_exception_handler(request: Request, exc: CIOException):
    request_id = request_id_ctx.get()
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    if isinstance(exc, (CompanyNotFoundError, RecordNotFoundError, FunctionNotFoundError, APITokenNotFoundError)):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (UnauthorizedError, WebhookVerificationError)):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(exc, (ValidationError, UnknownJobError)):
        status_code = status.HTTP_400_BAD_REQUEST

    if status_code == status.HTTP_500_INTERNAL_SERVER_ERROR:
        log_error(exc, request_id=request_id)
    else:
        log_warning(f"{type(exc).__name__}: {exc}", request_id=request_id, path=request.url.path)

    message = (
        "An unexpected internal error occurred."
        if settings.environment == "production" and status_code == 500
        else str(exc)
    )
    return _error_response(status_code, type(exc).__name__, message)


@app.exception_handler(APIError)
async def upstream_api_error_handler(request: Request, exc: APIError):
    log_error(exc, request_id=request_id_ctx.get(), status_code=exc.status_code)
    return _error_response(status.HTTP_502_BAD_GATEWAY, "upstream_error", f"Upstream API returned {exc.status_code}")


@app.exception_handler(APIConnectionError)
async def upstream_connection_error_handler(request: Request, exc: APIConnectionError):
    log_error(exc, request_id=request_id_ctx.get())
    return _error_response(status.HTTP_502_BAD_GATEWAY, "upstream_unreachable", str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    log_error(exc, request_id=request_id_ctx.get())
    msg = (
        "An unexpected error occurred. Please try again later."
        if settings.environment == "production"
        else str(exc)
    )
    return _error_response(500, "internal_server_error", msg)


# -----------------------------------------------------------------------------
# Routes
# -----------------------------------------------------------------------------
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    return {"service": settings.app_name, "version": settings.app_version}
