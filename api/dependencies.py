"""Dependency injection for FastAPI."""

from fastapi import Request

from auth.models import SessionMetadata
from auth.orchestrator import VerificationOrchestrator


def get_orchestrator(request: Request) -> VerificationOrchestrator:
    """Get the orchestrator built by the application factory."""
    return request.app.state.orchestrator


def get_session_metadata(request: Request) -> SessionMetadata:
    """User agent and client address of the current request."""
    return SessionMetadata(
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.client.host if request.client else None,
    )
