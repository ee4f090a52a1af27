"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import dashboard, health, links, users
from core.config import get_settings
from db.session import engine
from services.exceptions import (
    ConflictError,
    ExpiredError,
    ForbiddenError,
    IdentityProviderUnavailableError,
    InternalError,
    NotFoundError,
    PasswordError,
    ShortLinkError,
    UnauthenticatedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[ShortLinkError], int] = {
    ValidationError: 400,
    ConflictError: 400,
    UnauthenticatedError: 401,
    PasswordError: 401,
    ForbiddenError: 403,
    NotFoundError: 404,
    ExpiredError: 410,
    InternalError: 500,
    IdentityProviderUnavailableError: 503,
}


def status_code_for(exc: ShortLinkError) -> int:
    """Find the status code for an error, falling back through its base classes."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    logger.info("Short links API starting")
    yield
    await engine.dispose()


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Short Links API",
    description="Shorten URLs with optional passwords and expiration, and track clicks.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ShortLinkError)
async def short_link_exception_handler(
    _request: Request, exc: ShortLinkError,
) -> JSONResponse:
    """Map domain errors to status codes with an {"error": message} body."""
    status_code = status_code_for(exc)
    content: dict[str, object] = {"error": exc.message}
    if isinstance(exc, PasswordError):
        content["isPasswordProtected"] = True
    if status_code >= 500:
        logger.error("Request failed: %s", exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed request bodies as 400 validation errors."""
    messages = []
    for err in exc.errors():
        loc = err.get("loc") or ("unknown",)
        messages.append(f"{loc[-1]}: {err.get('msg', 'invalid')}")
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(messages) if messages else "Validation error"},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected failures and hide their details from the client."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Server error"})


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(links.router)
app.include_router(dashboard.router)
