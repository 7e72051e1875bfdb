"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from housekeeping.domain.models import SystemRole
from housekeeping.services.auth_service import (
    AuthService,
    InvalidTokenError,
    PermissionDeniedError,
    TokenNotConfiguredError,
)
from housekeeping.services.auto_assignment_service import AutoAssignmentService
from housekeeping.services.roster_service import RosterService
from housekeeping.utils.config import Settings, get_settings


bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_settings())
        request.app.state.auth_service = service
    return service


def get_roster_service(request: Request) -> RosterService:
    service = getattr(request.app.state, "roster_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Roster service is not initialized",
        )
    return service


def get_assignment_service(request: Request) -> AutoAssignmentService:
    service = getattr(request.app.state, "assignment_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Auto-assignment service is not initialized",
        )
    return service


def require_permission(permission: str) -> Callable[..., Optional[SystemRole]]:
    """Build a dependency that rejects sessions whose role lacks `permission`."""

    async def dependency(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> Optional[SystemRole]:
        token = credentials.credentials if credentials is not None else None
        try:
            return auth_service.authorize(token, permission)
        except (TokenNotConfiguredError, InvalidTokenError) as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=str(exc),
            ) from exc
        except PermissionDeniedError as exc:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=str(exc),
            ) from exc

    return dependency


def get_app_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()
