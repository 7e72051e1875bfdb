"""Staff, room and manual shift management."""

from __future__ import annotations

import csv
import io
from typing import Any, Optional, Sequence

from housekeeping.domain.constraints import AssignmentValidationError, validate_date
from housekeeping.domain.models import (
    Availability,
    Room,
    RoomRef,
    Shift,
    StaffMember,
    SystemRole,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

_NUMBER_HEADERS = {"number", "room number", "room"}
_TYPE_HEADERS = {"type", "room type"}
_STATUS_HEADERS = {"status"}


class RosterValidationError(Exception):
    """Raised when roster input cannot be accepted."""


def parse_rooms_csv(csv_text: str) -> list[tuple[str, Optional[str], Optional[str]]]:
    """Parse room rows from CSV text with a header line.

    Headers are matched case-insensitively (``Number``/``Room Number``/``Room``,
    ``Type``/``Room Type``, ``Status``). Rows without a room number are skipped.
    """
    reader = csv.reader(io.StringIO(csv_text.strip()))
    try:
        headers = [header.strip().lower() for header in next(reader)]
    except StopIteration:
        return []

    rooms: list[tuple[str, Optional[str], Optional[str]]] = []
    for values in reader:
        number = room_type = status = None
        for header, raw in zip(headers, values):
            value = raw.strip()
            if not value:
                continue
            if header in _NUMBER_HEADERS:
                number = value
            elif header in _TYPE_HEADERS:
                room_type = value
            elif header in _STATUS_HEADERS:
                status = value
        if number:
            rooms.append((number, room_type, status))
    return rooms


class RosterService:
    """Thin business layer over the repository for the management screens."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    # Staff

    def list_staff(self, include_archived: bool = False) -> list[StaffMember]:
        return self._repository.list_staff(include_archived=include_archived)

    def add_staff(
        self,
        *,
        name: str,
        availability: Availability = Availability.AVAILABLE,
        system_role: SystemRole = SystemRole.STAFF,
        role: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> StaffMember:
        if not name.strip():
            raise RosterValidationError("Staff name must be non-empty")
        staff = self._repository.create_staff(
            name=name.strip(),
            availability=availability,
            system_role=system_role,
            role=role,
            phone=phone,
        )
        logger.info("Staff created | staff_id=%s", staff.staff_id)
        return staff

    def update_staff(self, staff_id: int, changes: dict[str, Any]) -> StaffMember:
        return self._repository.update_staff(staff_id, **changes)

    def archive_staff(self, staff_id: int) -> None:
        self._repository.archive_staff(staff_id)
        logger.info("Staff archived | staff_id=%s", staff_id)

    # Rooms

    def list_rooms(self) -> list[Room]:
        return self._repository.list_rooms()

    def add_room(
        self,
        *,
        number: str,
        room_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Room:
        if not number.strip():
            raise RosterValidationError("Room number must be non-empty")
        return self._repository.create_room(number.strip(), room_type, status)

    def import_rooms_csv(self, csv_text: str) -> list[Room]:
        parsed = parse_rooms_csv(csv_text)
        if not parsed:
            raise RosterValidationError("No valid room data found in CSV")
        rooms = self._repository.create_rooms(parsed)
        logger.info("Rooms imported | count=%s", len(rooms))
        return rooms

    def update_room(self, room_id: int, changes: dict[str, Any]) -> Room:
        return self._repository.update_room(room_id, **changes)

    def delete_room(self, room_id: int) -> int:
        return self._repository.delete_room(room_id)

    # Shifts

    def list_shifts(self, date: Optional[str] = None, shift: Optional[str] = None) -> list[Shift]:
        return self._repository.list_shifts(date=date, shift=shift)

    def create_shift(
        self,
        *,
        date: str,
        shift: str,
        staff_id: int,
        room_ids: Sequence[int],
        notes: str = "",
    ) -> Shift:
        """Create a shift by hand, looking up display names for staff and rooms."""
        self._validate_date(date)
        if not shift.strip():
            raise RosterValidationError("shift must be non-empty")

        staff = self._repository.get_staff(staff_id)
        room_refs = self._resolve_rooms(room_ids)
        created = self._repository.create_shift(
            date=date,
            shift=shift,
            staff_id=staff.staff_id,
            staff_name=staff.name,
            room_refs=room_refs,
            notes=notes,
        )
        logger.info(
            "Shift created | shift_id=%s | staff_id=%s | rooms=%s",
            created.shift_id,
            staff.staff_id,
            len(room_refs),
        )
        return created

    def update_shift(self, shift_id: int, changes: dict[str, Any]) -> Shift:
        """Edit date, shift type, staff member, rooms or notes of an existing shift.

        A new ``staff_id`` refreshes the stored staff name and new ``room_ids``
        replace the whole room list, keeping ids and numbers aligned.
        """
        unknown = set(changes) - {"date", "shift", "staff_id", "room_ids", "notes"}
        if unknown:
            raise RosterValidationError(f"Unsupported shift fields: {sorted(unknown)}")

        updates: dict[str, Any] = {}
        if changes.get("date") is not None:
            self._validate_date(changes["date"])
            updates["date"] = changes["date"]
        if changes.get("shift") is not None:
            if not changes["shift"].strip():
                raise RosterValidationError("shift must be non-empty")
            updates["shift"] = changes["shift"]
        if changes.get("staff_id") is not None:
            staff = self._repository.get_staff(changes["staff_id"])
            updates["staff_id"] = staff.staff_id
            updates["staff_name"] = staff.name
        if changes.get("room_ids") is not None:
            updates["room_refs"] = self._resolve_rooms(changes["room_ids"])
        if changes.get("notes") is not None:
            updates["notes"] = changes["notes"]

        updated = self._repository.update_shift(shift_id, **updates)
        logger.info("Shift updated | shift_id=%s | fields=%s", shift_id, sorted(updates))
        return updated

    def delete_shift(self, shift_id: int) -> None:
        self._repository.delete_shift(shift_id)

    @staticmethod
    def _validate_date(value: str) -> None:
        try:
            validate_date(value)
        except AssignmentValidationError as exc:
            raise RosterValidationError(str(exc)) from exc

    def _resolve_rooms(self, room_ids: Sequence[int]) -> list[RoomRef]:
        if len(set(room_ids)) != len(room_ids):
            raise RosterValidationError("room_ids must not contain duplicates")
        return [
            RoomRef(room_id=room.room_id, room_number=room.number)
            for room in (self._repository.get_room(room_id) for room_id in room_ids)
        ]
