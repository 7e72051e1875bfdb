"""Token login and role-based permission checks."""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from threading import RLock
from typing import Optional

from housekeeping.domain.models import SystemRole
from housekeeping.utils.config import Settings, get_settings


class AuthenticationError(Exception):
    """Base authentication failure."""


class TokenNotConfiguredError(AuthenticationError):
    """Raised when no login token is configured."""


class InvalidTokenError(AuthenticationError):
    """Raised when provided token is invalid."""


class PermissionDeniedError(AuthenticationError):
    """Raised when a session's role lacks the requested permission."""


@dataclass(frozen=True)
class RolePermissions:
    can_view_all_shifts: bool = False
    can_assign_shifts: bool = False
    can_edit_shifts: bool = False
    can_delete_shifts: bool = False
    can_view_all_staff: bool = False
    can_manage_staff: bool = False
    can_manage_rooms: bool = False


ROLE_PERMISSIONS: dict[SystemRole, RolePermissions] = {
    SystemRole.ADMIN: RolePermissions(
        can_view_all_shifts=True,
        can_assign_shifts=True,
        can_edit_shifts=True,
        can_delete_shifts=True,
        can_view_all_staff=True,
        can_manage_staff=True,
        can_manage_rooms=True,
    ),
    SystemRole.MANAGER: RolePermissions(
        can_view_all_shifts=True,
        can_assign_shifts=True,
        can_edit_shifts=True,
        can_view_all_staff=True,
        can_manage_staff=True,
        can_manage_rooms=True,
    ),
    SystemRole.STAFF: RolePermissions(),
}


def get_role_permissions(role: SystemRole) -> RolePermissions:
    return ROLE_PERMISSIONS.get(role, RolePermissions())


class AuthService:
    """Exchanges configured admin/manager tokens for session bearer tokens."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._sessions: dict[str, SystemRole] = {}
        self._lock = RLock()

    @property
    def auth_enabled(self) -> bool:
        return bool(self._settings.admin_token or self._settings.manager_token)

    def _configured_tokens(self) -> list[tuple[str, SystemRole]]:
        tokens: list[tuple[str, SystemRole]] = []
        if self._settings.admin_token:
            tokens.append((self._settings.admin_token, SystemRole.ADMIN))
        if self._settings.manager_token:
            tokens.append((self._settings.manager_token, SystemRole.MANAGER))
        if not tokens:
            raise TokenNotConfiguredError(
                "No login token is configured. Set ADMIN_TOKEN or MANAGER_TOKEN."
            )
        return tokens

    def login(self, provided_token: str) -> tuple[str, SystemRole]:
        for expected, role in self._configured_tokens():
            if secrets.compare_digest(provided_token, expected):
                session_token = secrets.token_urlsafe(32)
                with self._lock:
                    self._sessions[session_token] = role
                return session_token, role
        raise InvalidTokenError("Invalid login token")

    def resolve_role(self, bearer_token: str) -> SystemRole:
        with self._lock:
            for session_token, role in self._sessions.items():
                if secrets.compare_digest(bearer_token, session_token):
                    return role
        raise InvalidTokenError("Invalid bearer token")

    def authorize(self, bearer_token: Optional[str], permission: str) -> Optional[SystemRole]:
        """Check a bearer token against a permission flag; no-op when auth is off."""
        if not self.auth_enabled:
            return None
        if not bearer_token:
            raise InvalidTokenError("Authorization header with Bearer token is required")
        role = self.resolve_role(bearer_token)
        if not getattr(get_role_permissions(role), permission, False):
            raise PermissionDeniedError(f"Role '{role.value}' may not perform '{permission}'")
        return role
