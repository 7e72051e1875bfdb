"""Workload-aware round-robin allocation of rooms to housekeeping staff."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from housekeeping.domain.models import Room, Shift, ShiftAssignment, StaffMember
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class AutoAssignmentError(Exception):
    """Base exception for auto-assignment failures."""


class InputError(AutoAssignmentError):
    """Raised when there is nobody to assign or nothing to assign."""


class CapacityExceededError(AutoAssignmentError):
    """Raised when a room cannot be placed because every candidate is at the cap."""

    def __init__(self, room_number: str, capacity_cap: int) -> None:
        super().__init__(
            f"Unable to assign room {room_number} - "
            f"all staff at maximum capacity ({capacity_cap})"
        )
        self.room_number = room_number
        self.capacity_cap = capacity_cap


def shift_room_load(shift: Shift) -> int:
    """Rooms a shift counts for; a shift with no rooms still counts as one."""
    return len(shift.room_refs) or 1


def calculate_staff_workload(
    eligible_staff: Sequence[StaffMember],
    existing_shifts: Sequence[Shift],
) -> dict[int, int]:
    workload = {staff.staff_id: 0 for staff in eligible_staff}
    for shift in existing_shifts:
        if shift.staff_id is None or shift.staff_id not in workload:
            continue
        workload[shift.staff_id] += shift_room_load(shift)
    return workload


def default_capacity_cap(
    staff_count: int,
    room_count: int,
    existing_shifts: Sequence[Shift],
) -> int:
    """Fair-share ceiling over the new rooms plus every room already on shift."""
    existing_rooms = sum(shift_room_load(shift) for shift in existing_shifts)
    return math.ceil((room_count + existing_rooms) / staff_count)


def compute_assignments(
    eligible_staff: Sequence[StaffMember],
    assignable_rooms: Sequence[Room],
    existing_shifts: Sequence[Shift],
    capacity_cap: Optional[int] = None,
) -> list[ShiftAssignment]:
    """Distribute rooms over staff, lowest workload first, round-robin on ties.

    Rooms are placed one at a time in the order given. For each room the
    candidates are the staff whose workload equals the current level and is
    still below ``capacity_cap``; ties rotate through a cursor kept per level.
    When a level has no candidate the next level up is tried, at most
    ``len(eligible_staff) + 1`` times. After each placement the level drops
    back to the lowest workload in the pool.

    Raises:
        InputError: no staff or no rooms were supplied.
        CapacityExceededError: a room could not be placed under the cap.
    """
    if not eligible_staff:
        raise InputError("No available staff members found")
    if not assignable_rooms:
        raise InputError("No rooms requiring assignment found")

    workload = calculate_staff_workload(eligible_staff, existing_shifts)
    cap = capacity_cap or default_capacity_cap(
        staff_count=len(eligible_staff),
        room_count=len(assignable_rooms),
        existing_shifts=existing_shifts,
    )
    max_attempts = len(eligible_staff) + 1

    assignments: dict[int, ShiftAssignment] = {}
    rotation: dict[int, int] = {}
    level = min(workload.values())

    for room in assignable_rooms:
        selected: Optional[StaffMember] = None
        for _ in range(max_attempts):
            candidates = [
                staff
                for staff in eligible_staff
                if workload[staff.staff_id] == level and workload[staff.staff_id] < cap
            ]
            if candidates:
                cursor = rotation.get(level, 0)
                selected = candidates[cursor % len(candidates)]
                rotation[level] = cursor + 1
                break
            level += 1

        if selected is None:
            logger.warning(
                "Allocation stopped | room=%s | capacity_cap=%s",
                room.number,
                cap,
            )
            raise CapacityExceededError(room_number=room.number, capacity_cap=cap)

        assignment = assignments.get(selected.staff_id)
        if assignment is None:
            assignment = ShiftAssignment(staff_id=selected.staff_id, staff_name=selected.name)
            assignments[selected.staff_id] = assignment
        assignment.add_room(room)
        workload[selected.staff_id] += 1

        level = min(workload.values())

    logger.info(
        "Allocation completed | rooms=%s | staff=%s | assigned_staff=%s | capacity_cap=%s",
        len(assignable_rooms),
        len(eligible_staff),
        len(assignments),
        cap,
    )
    return list(assignments.values())
