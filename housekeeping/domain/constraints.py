"""Domain-level eligibility and validation rules for auto-assignment."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from housekeeping.domain.models import (
    Availability,
    AutoAssignmentConfig,
    Room,
    StaffMember,
    SystemRole,
)


class AssignmentValidationError(ValueError):
    """Raised when an auto-assignment request is malformed."""


def is_eligible_staff(staff: StaffMember) -> bool:
    return (
        not staff.archived
        and staff.availability == Availability.AVAILABLE
        and staff.system_role == SystemRole.STAFF
    )


def is_assignable_room(room: Room, assignable_statuses: Iterable[str]) -> bool:
    """A room with no status, or a status in the whitelist, still needs housekeeping."""
    status = (room.status or "").strip().lower()
    if not status:
        return True
    return status in {item.strip().lower() for item in assignable_statuses}


def validate_date(value: str) -> None:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError as exc:
        raise AssignmentValidationError("date must follow YYYY-MM-DD format") from exc


def validate_auto_assignment_config(config: AutoAssignmentConfig) -> None:
    validate_date(config.date)
    if not config.shift_type or not config.shift_type.strip():
        raise AssignmentValidationError("shift_type must be non-empty")
    cap = config.max_assignments_per_staff
    if cap is not None and cap <= 0:
        raise AssignmentValidationError("max_assignments_per_staff must be > 0")
