"""Domain models for staff, rooms, shifts and auto-assignment runs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Availability(str, Enum):
    AVAILABLE = "Available"
    ON_BREAK = "On Break"
    BUSY = "Busy"
    OFF_DUTY = "Off Duty"


class SystemRole(str, Enum):
    """Access role of a person; only ``STAFF`` members clean rooms."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


@dataclass(frozen=True)
class StaffMember:
    staff_id: int
    name: str
    availability: Availability
    system_role: SystemRole
    role: Optional[str] = None
    phone: Optional[str] = None
    archived: bool = False


@dataclass(frozen=True)
class Room:
    room_id: int
    number: str
    room_type: Optional[str] = None
    status: Optional[str] = None


@dataclass(frozen=True)
class RoomRef:
    """A room as listed on a shift: id and display number travel together."""

    room_id: int
    room_number: str


@dataclass(frozen=True)
class Shift:
    shift_id: int
    date: str
    shift: str
    staff_id: Optional[int]
    staff_name: str
    room_refs: tuple[RoomRef, ...]
    notes: str
    created_at: str

    @property
    def room_ids(self) -> list[int]:
        return [ref.room_id for ref in self.room_refs]

    @property
    def rooms(self) -> list[str]:
        return [ref.room_number for ref in self.room_refs]


@dataclass
class ShiftAssignment:
    """Rooms handed to one staff member by a single allocation pass."""

    staff_id: int
    staff_name: str
    room_refs: list[RoomRef] = field(default_factory=list)

    def add_room(self, room: Room) -> None:
        self.room_refs.append(RoomRef(room_id=room.room_id, room_number=room.number))

    @property
    def room_ids(self) -> list[int]:
        return [ref.room_id for ref in self.room_refs]

    @property
    def rooms(self) -> list[str]:
        return [ref.room_number for ref in self.room_refs]


@dataclass(frozen=True)
class AutoAssignmentConfig:
    date: str
    shift_type: str
    max_assignments_per_staff: Optional[int] = None


@dataclass
class AutoAssignmentResult:
    success: bool
    success_count: int = 0
    failure_count: int = 0
    assignments: list[ShiftAssignment] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def refresh_required(self) -> bool:
        """True when at least one shift was written and cached lists are stale."""
        return self.success_count > 0

    @classmethod
    def failed(cls, message: str) -> "AutoAssignmentResult":
        return cls(success=False, errors=[message])
