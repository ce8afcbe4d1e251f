"""FastAPI application factory and configuration.

This is the AUTH SERVER. It handles:
- Email verification (/auth/send-code, /auth/verify-code)
- Session-authenticated identity lookup (/auth/me)
- Users and sessions in MongoDB
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from auth.database import AuthDatabase
from auth.email_service import EmailService
from auth.exceptions import AuthError, ErrorCode
from auth.middleware import AuthGate
from auth.orchestrator import (
    VerificationOrchestrator,
    fixed_code_generator,
    generate_verification_code,
)
from auth.protocols import DeliveryChannel, IdentityStore
from auth.sessions import SessionService
from auth.verification_store import VerificationStore
from config.settings import Settings, get_settings
from .auth_routes import MISSING_FIELD_MESSAGES, router as auth_router
from .responses import error_response

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware to add request ID for log correlation."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def validation_message(exc: RequestValidationError) -> str:
    """First human-readable message from a request validation failure."""
    errors = exc.errors()
    if not errors:
        return "Invalid request."

    error = errors[0]
    loc = tuple(error.get("loc", ()))
    if error.get("type") == "missing" and len(loc) > 1:
        field = str(loc[-1])
        return MISSING_FIELD_MESSAGES.get(field, f"{field.capitalize()} is required.")
    if loc == ("body",):
        return "Request body must be an object."

    cause = error.get("ctx", {}).get("error")
    if isinstance(cause, ValueError):
        return str(cause)
    return error.get("msg", "Invalid request.")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting Auth Server...")

    database: Optional[AuthDatabase] = app.state.owned_database
    if database:
        try:
            await database.connect()
            logger.info("MongoDB connected")
        except Exception as e:
            logger.error(f"Failed to initialize: {e}")
            raise

    yield

    # Cleanup
    await app.state.sessions.wait_for_pending()
    if database:
        await database.close()
    logger.info("Auth server shutting down...")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[IdentityStore] = None,
    delivery: Optional[DeliveryChannel] = None,
) -> FastAPI:
    """
    Create the auth server application.

    Components are wired eagerly; only the MongoDB connection waits for
    startup. Passing a store skips MongoDB entirely.
    """
    settings = settings or get_settings()

    owned_database = None
    if store is None:
        owned_database = AuthDatabase(settings.mongodb_uri, settings.mongodb_database)
        store = owned_database

    if delivery is None:
        delivery = EmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_user=settings.smtp_user,
            smtp_password=settings.smtp_password,
            smtp_from_email=settings.smtp_from_email,
            code_ttl_minutes=max(1, settings.verification_code_ttl_seconds // 60),
        )
        if delivery.is_configured:
            logger.info("Email service configured with SMTP")
        else:
            logger.info("Email service using console fallback")

    code_generator = generate_verification_code
    if settings.verification_code_override:
        logger.warning("Verification code override is set; every code is fixed")
        code_generator = fixed_code_generator(settings.verification_code_override)

    verifications = VerificationStore(
        ttl=timedelta(seconds=settings.verification_code_ttl_seconds),
        max_attempts=settings.verification_max_attempts,
    )
    sessions = SessionService(store, ttl=timedelta(days=settings.session_ttl_days))

    app = FastAPI(
        title="mailpass Auth Server",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Store in app state
    app.state.settings = settings
    app.state.owned_database = owned_database
    app.state.store = store
    app.state.verifications = verifications
    app.state.sessions = sessions
    app.state.auth_gate = AuthGate(sessions, store)
    app.state.orchestrator = VerificationOrchestrator(
        verifications,
        sessions,
        store,
        delivery=delivery,
        code_generator=code_generator,
    )

    # Add request ID middleware for log correlation
    app.add_middleware(RequestIDMiddleware)

    # Register routes
    app.include_router(auth_router)

    # Health check
    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    # Exception handlers
    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError):
        """Map typed auth failures to their status and result envelope."""
        logger.info(f"{exc.code.value}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_result())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(ErrorCode.VALIDATION_ERROR, validation_message(exc), 400)

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        """Handle general errors without leaking details."""
        logger.exception(f"General Error: {exc}")
        return error_response(
            ErrorCode.INTERNAL_SERVER_ERROR,
            "An unexpected error occurred.",
            500,
        )

    return app
