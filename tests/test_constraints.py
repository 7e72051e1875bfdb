"""Tests for eligibility rules and auto-assignment config validation."""

from __future__ import annotations

import pytest

from housekeeping.domain.constraints import (
    AssignmentValidationError,
    is_assignable_room,
    is_eligible_staff,
    validate_auto_assignment_config,
)
from housekeeping.domain.models import (
    Availability,
    AutoAssignmentConfig,
    Room,
    StaffMember,
    SystemRole,
)


ASSIGNABLE = ("maintenance", "available", "cleaning", "")


def staff(**overrides) -> StaffMember:
    """Return an eligible staff member, optionally overriding fields."""
    defaults = {
        "staff_id": 1,
        "name": "Jane Smith",
        "availability": Availability.AVAILABLE,
        "system_role": SystemRole.STAFF,
    }
    defaults.update(overrides)
    return StaffMember(**defaults)


# --- Staff eligibility ---

def test_available_front_line_staff_is_eligible() -> None:
    assert is_eligible_staff(staff())


@pytest.mark.parametrize(
    "availability",
    [Availability.ON_BREAK, Availability.BUSY, Availability.OFF_DUTY],
)
def test_unavailable_staff_is_not_eligible(availability: Availability) -> None:
    assert not is_eligible_staff(staff(availability=availability))


@pytest.mark.parametrize("role", [SystemRole.ADMIN, SystemRole.MANAGER])
def test_supervisory_roles_are_not_eligible(role: SystemRole) -> None:
    assert not is_eligible_staff(staff(system_role=role))


def test_archived_staff_is_not_eligible() -> None:
    assert not is_eligible_staff(staff(archived=True))


# --- Room status ---

@pytest.mark.parametrize(
    "status", [None, "", "   ", "cleaning", " Cleaning ", "MAINTENANCE", "available"]
)
def test_rooms_needing_housekeeping_are_assignable(status) -> None:
    assert is_assignable_room(Room(room_id=1, number="101", status=status), ASSIGNABLE)


@pytest.mark.parametrize("status", ["occupied", "Occupied", "out of order"])
def test_other_statuses_are_not_assignable(status: str) -> None:
    assert not is_assignable_room(Room(room_id=1, number="101", status=status), ASSIGNABLE)


# --- Config validation ---

def test_valid_config_passes() -> None:
    validate_auto_assignment_config(AutoAssignmentConfig(date="2026-03-01", shift_type="Morning"))


def test_bad_date_raises() -> None:
    with pytest.raises(AssignmentValidationError):
        validate_auto_assignment_config(AutoAssignmentConfig(date="01/03/2026", shift_type="Morning"))


def test_blank_shift_type_raises() -> None:
    with pytest.raises(AssignmentValidationError):
        validate_auto_assignment_config(AutoAssignmentConfig(date="2026-03-01", shift_type="  "))


@pytest.mark.parametrize("cap", [0, -2])
def test_non_positive_cap_raises(cap: int) -> None:
    with pytest.raises(AssignmentValidationError):
        validate_auto_assignment_config(
            AutoAssignmentConfig(date="2026-03-01", shift_type="Morning", max_assignments_per_staff=cap)
        )


def test_free_text_shift_type_is_accepted() -> None:
    """Shift labels are free text; Night is not in the default list but is allowed."""
    validate_auto_assignment_config(AutoAssignmentConfig(date="2026-03-01", shift_type="Night"))


def test_status_whitelist_is_configurable() -> None:
    room = Room(room_id=1, number="101", status="Inspected")
    assert not is_assignable_room(room, ASSIGNABLE)
    assert is_assignable_room(room, ("inspected",))
