"""
FastAPI dependencies for Siren.
Provides dependency injection for settings, the engine and services.
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from siren.core.settings import Settings
from siren.domain.engine import EscalationEngine
from siren.services.sessions import SessionService


def get_settings(request: Request) -> Settings:
    """
    Get application settings from request state.

    Args:
        request: FastAPI request object.

    Returns:
        Settings instance the app was created with.
    """
    return request.app.state.settings


def get_engine(request: Request) -> EscalationEngine:
    """Get the escalation engine from application state."""
    return request.app.state.engine


def get_session_service(request: Request) -> SessionService:
    """
    Get the session service from application state.

    The service owns per-session trigger adapters, so one instance lives
    for the whole application.
    """
    return request.app.state.session_service


def get_bearer_token(authorization: Annotated[str | None, Header()] = None) -> str | None:
    """Extract the bearer token forwarded to the contacts backend, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


# Type aliases for cleaner code
SettingsDep = Annotated[Settings, Depends(get_settings)]
EngineDep = Annotated[EscalationEngine, Depends(get_engine)]
SessionServiceDep = Annotated[SessionService, Depends(get_session_service)]
TokenDep = Annotated[str | None, Depends(get_bearer_token)]
