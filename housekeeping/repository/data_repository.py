"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from housekeeping.domain.constraints import is_assignable_room, is_eligible_staff
from housekeeping.domain.models import (
    Availability,
    Room,
    RoomRef,
    Shift,
    StaffMember,
    SystemRole,
)
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class RepositoryError(Exception):
    """Raised when the underlying store rejects an operation."""


class RecordNotFoundError(RepositoryError):
    """Raised when a referenced row does not exist."""


class DuplicateRecordError(RepositoryError):
    """Raised when a unique key (e.g. room number) is already taken."""


_STAFF_COLUMNS = "id, name, availability, system_role, role, phone, archived"
_ROOM_COLUMNS = "id, number, room_type, status"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _staff_from_row(row: sqlite3.Row) -> StaffMember:
    return StaffMember(
        staff_id=int(row["id"]),
        name=str(row["name"]),
        availability=Availability(row["availability"]),
        system_role=SystemRole(row["system_role"]),
        role=row["role"],
        phone=row["phone"],
        archived=bool(row["archived"]),
    )


def _room_from_row(row: sqlite3.Row) -> Room:
    return Room(
        room_id=int(row["id"]),
        number=str(row["number"]),
        room_type=row["room_type"],
        status=row["status"],
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Staff (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        availability TEXT NOT NULL DEFAULT 'Available',
                        system_role TEXT NOT NULL DEFAULT 'staff',
                        role TEXT,
                        phone TEXT,
                        archived INTEGER NOT NULL DEFAULT 0 CHECK (archived IN (0,1)),
                        created_at TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Rooms (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        number TEXT NOT NULL UNIQUE,
                        room_type TEXT,
                        status TEXT,
                        created_at TEXT NOT NULL
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Shifts (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        date TEXT NOT NULL,
                        shift TEXT NOT NULL,
                        staff_id INTEGER,
                        staff_name TEXT NOT NULL,
                        notes TEXT NOT NULL DEFAULT '',
                        created_at TEXT NOT NULL,
                        FOREIGN KEY (staff_id) REFERENCES Staff(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ShiftRooms (
                        shift_id INTEGER NOT NULL,
                        position INTEGER NOT NULL,
                        room_id INTEGER NOT NULL,
                        room_number TEXT NOT NULL,
                        PRIMARY KEY (shift_id, position),
                        FOREIGN KEY (shift_id) REFERENCES Shifts(id) ON DELETE CASCADE,
                        FOREIGN KEY (room_id) REFERENCES Rooms(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_shifts_date_shift
                    ON Shifts(date, shift);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_shift_rooms_room
                    ON ShiftRooms(room_id);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> int:
        """Seed a small staff roster and room list only when both tables are empty."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT (SELECT COUNT(*) FROM Staff) + (SELECT COUNT(*) FROM Rooms) AS count;"
                )
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return 0

                now = _utc_now()
                staff_rows = [
                    ("John Doe", "Available", "staff", "Housekeeper", None, 0, now, now),
                    ("Jane Smith", "Available", "staff", "Housekeeper", None, 0, now, now),
                    ("Mike Johnson", "Available", "staff", "Housekeeper", None, 0, now, now),
                    ("Sarah Williams", "On Break", "staff", "Housekeeper", None, 0, now, now),
                    ("David Brown", "Available", "manager", "Floor Supervisor", None, 0, now, now),
                    ("Lisa Davis", "Off Duty", "staff", "Housekeeper", None, 0, now, now),
                ]
                cursor.executemany(
                    """
                    INSERT INTO Staff (
                        name, availability, system_role, role, phone, archived,
                        created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    staff_rows,
                )

                room_rows = []
                for floor in (1, 2, 3):
                    for index in range(1, 6):
                        status = "occupied" if index == 5 else "cleaning"
                        room_rows.append((f"Room {floor}0{index}", "Standard", status, now))
                cursor.executemany(
                    """
                    INSERT INTO Rooms (number, room_type, status, created_at)
                    VALUES (?, ?, ?, ?);
                    """,
                    room_rows,
                )
                conn.commit()
            seeded = len(staff_rows) + len(room_rows)
            logger.info("Demo seed completed with %s records", seeded)
            return seeded
        except sqlite3.Error as exc:
            raise RepositoryError(f"Demo data seeding failed: {exc}") from exc

    # --- Staff ---

    def create_staff(
        self,
        name: str,
        availability: Availability = Availability.AVAILABLE,
        system_role: SystemRole = SystemRole.STAFF,
        role: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> StaffMember:
        now = _utc_now()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO Staff (
                        name, availability, system_role, role, phone, created_at, updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?);
                    """,
                    (name, availability.value, system_role.value, role, phone, now, now),
                )
                conn.commit()
                staff_id = int(cursor.lastrowid)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to create staff member: {exc}") from exc
        return self.get_staff(staff_id)

    def get_staff(self, staff_id: int) -> StaffMember:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_STAFF_COLUMNS} FROM Staff WHERE id = ?;",
                (staff_id,),
            )
            row = cursor.fetchone()
        if row is None:
            raise RecordNotFoundError(f"Staff member {staff_id} not found")
        return _staff_from_row(row)

    def list_staff(self, include_archived: bool = False) -> list[StaffMember]:
        query = f"SELECT {_STAFF_COLUMNS} FROM Staff"
        if not include_archived:
            query += " WHERE archived = 0"
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query + " ORDER BY id ASC;")
            return [_staff_from_row(row) for row in cursor.fetchall()]

    def list_eligible_staff(self) -> list[StaffMember]:
        """Return available front-line staff who can receive rooms."""
        return [member for member in self.list_staff() if is_eligible_staff(member)]

    def update_staff(self, staff_id: int, **changes: Any) -> StaffMember:
        """Apply a partial update; enum values are stored by their string value."""
        allowed = {"name", "availability", "system_role", "role", "phone"}
        unknown = set(changes) - allowed
        if unknown:
            raise RepositoryError(f"Unsupported staff fields: {sorted(unknown)}")
        required = sorted(
            key for key in ("name", "availability", "system_role") if key in changes and not changes[key]
        )
        if required:
            raise RepositoryError(f"Staff fields may not be empty: {required}")
        if not changes:
            return self.get_staff(staff_id)

        values = {
            key: value.value if isinstance(value, (Availability, SystemRole)) else value
            for key, value in changes.items()
        }
        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE Staff SET {assignments}, updated_at = ? WHERE id = ?;",
                    (*values.values(), _utc_now(), staff_id),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Staff member {staff_id} not found")
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to update staff member {staff_id}: {exc}") from exc
        return self.get_staff(staff_id)

    def archive_staff(self, staff_id: int) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "UPDATE Staff SET archived = 1, updated_at = ? WHERE id = ?;",
                    (_utc_now(), staff_id),
                )
                conn.commit()
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Staff member {staff_id} not found")
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to archive staff member {staff_id}: {exc}") from exc

    # --- Rooms ---

    def create_room(
        self,
        number: str,
        room_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Room:
        rooms = self.create_rooms([(number, room_type, status)])
        return rooms[0]

    def create_rooms(
        self,
        rooms: Iterable[tuple[str, Optional[str], Optional[str]]],
    ) -> list[Room]:
        """Insert rooms in one transaction; a duplicate number rolls back the batch."""
        room_rows = list(rooms)
        if not room_rows:
            return []
        now = _utc_now()
        created_ids: list[int] = []
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                for number, room_type, status in room_rows:
                    cursor.execute(
                        """
                        INSERT INTO Rooms (number, room_type, status, created_at)
                        VALUES (?, ?, ?, ?);
                        """,
                        (number, room_type or None, status or None, now),
                    )
                    created_ids.append(int(cursor.lastrowid))
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"Room number already exists: {exc}") from exc
        return [self.get_room(room_id) for room_id in created_ids]

    def get_room(self, room_id: int) -> Room:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_ROOM_COLUMNS} FROM Rooms WHERE id = ?;",
                (room_id,),
            )
            row = cursor.fetchone()
        if row is None:
            raise RecordNotFoundError(f"Room {room_id} not found")
        return _room_from_row(row)

    def list_rooms(self) -> list[Room]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT {_ROOM_COLUMNS} FROM Rooms ORDER BY number ASC;")
            return [_room_from_row(row) for row in cursor.fetchall()]

    def list_assignable_rooms(
        self,
        assignable_statuses: Optional[Sequence[str]] = None,
    ) -> list[Room]:
        """Return rooms with no status or a status that still needs housekeeping."""
        statuses = assignable_statuses or self._settings.assignable_room_statuses
        return [room for room in self.list_rooms() if is_assignable_room(room, statuses)]

    def update_room(self, room_id: int, **changes: Any) -> Room:
        allowed = {"number", "room_type", "status"}
        unknown = set(changes) - allowed
        if unknown:
            raise RepositoryError(f"Unsupported room fields: {sorted(unknown)}")
        if not changes:
            return self.get_room(room_id)
        if "number" in changes and not changes["number"]:
            raise RepositoryError("Room number must be non-empty")

        # Blank optional fields are cleared rather than stored as empty strings.
        values = {
            key: (value or None) if key != "number" else value
            for key, value in changes.items()
        }
        assignments = ", ".join(f"{column} = ?" for column in values)
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE Rooms SET {assignments} WHERE id = ?;",
                    (*values.values(), room_id),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Room {room_id} not found")
                if "number" in values:
                    cursor.execute(
                        "UPDATE ShiftRooms SET room_number = ? WHERE room_id = ?;",
                        (values["number"], room_id),
                    )
                conn.commit()
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecordError(f"Room number already exists: {exc}") from exc
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to update room {room_id}: {exc}") from exc
        return self.get_room(room_id)

    def delete_room(self, room_id: int) -> int:
        """Delete a room and drop it from every shift that lists it.

        Remaining rooms on each affected shift are re-numbered so positions
        stay contiguous. Returns the number of shifts that were touched.
        """
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT DISTINCT shift_id FROM ShiftRooms WHERE room_id = ?;",
                    (room_id,),
                )
                affected_shift_ids = [int(row["shift_id"]) for row in cursor.fetchall()]

                cursor.execute("DELETE FROM Rooms WHERE id = ?;", (room_id,))
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Room {room_id} not found")

                for shift_id in affected_shift_ids:
                    self._repack_positions(cursor, shift_id)
                conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to delete room {room_id}: {exc}") from exc

        logger.info(
            "Room deleted | room_id=%s | shifts_updated=%s",
            room_id,
            len(affected_shift_ids),
        )
        return len(affected_shift_ids)

    @staticmethod
    def _repack_positions(cursor: sqlite3.Cursor, shift_id: int) -> None:
        cursor.execute(
            """
            SELECT position FROM ShiftRooms
            WHERE shift_id = ?
            ORDER BY position ASC;
            """,
            (shift_id,),
        )
        positions = [int(row["position"]) for row in cursor.fetchall()]
        for new_position, old_position in enumerate(positions):
            if new_position == old_position:
                continue
            cursor.execute(
                """
                UPDATE ShiftRooms SET position = ?
                WHERE shift_id = ? AND position = ?;
                """,
                (new_position, shift_id, old_position),
            )

    # --- Shifts ---

    def create_shift(
        self,
        *,
        date: str,
        shift: str,
        staff_id: Optional[int],
        staff_name: str,
        room_refs: Sequence[RoomRef],
        notes: str = "",
        created_at: Optional[str] = None,
    ) -> Shift:
        """Insert a shift and its ordered room list in a single transaction."""
        created = created_at or _utc_now()
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO Shifts (date, shift, staff_id, staff_name, notes, created_at)
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    (date, shift, staff_id, staff_name, notes, created),
                )
                shift_id = int(cursor.lastrowid)
                cursor.executemany(
                    """
                    INSERT INTO ShiftRooms (shift_id, position, room_id, room_number)
                    VALUES (?, ?, ?, ?);
                    """,
                    [
                        (shift_id, position, ref.room_id, ref.room_number)
                        for position, ref in enumerate(room_refs)
                    ],
                )
                conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to create shift: {exc}") from exc
        return self.get_shift(shift_id)

    def get_shift(self, shift_id: int) -> Shift:
        shifts = self._query_shifts("WHERE s.id = ?", (shift_id,))
        if not shifts:
            raise RecordNotFoundError(f"Shift {shift_id} not found")
        return shifts[0]

    def list_shifts(
        self,
        date: Optional[str] = None,
        shift: Optional[str] = None,
    ) -> list[Shift]:
        """Return shifts, newest first, optionally filtered by exact date and type."""
        clauses: list[str] = []
        params: list[Any] = []
        if date is not None:
            clauses.append("s.date = ?")
            params.append(date)
        if shift is not None:
            clauses.append("s.shift = ?")
            params.append(shift)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return self._query_shifts(where, tuple(params))

    def update_shift(
        self,
        shift_id: int,
        *,
        date: Optional[str] = None,
        shift: Optional[str] = None,
        staff_id: Optional[int] = None,
        staff_name: Optional[str] = None,
        room_refs: Optional[Sequence[RoomRef]] = None,
        notes: Optional[str] = None,
    ) -> Shift:
        """Apply a partial update; a new room list replaces the old one in the same transaction."""
        values: dict[str, Any] = {
            key: value
            for key, value in (
                ("date", date),
                ("shift", shift),
                ("staff_id", staff_id),
                ("staff_name", staff_name),
                ("notes", notes),
            )
            if value is not None
        }
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT id FROM Shifts WHERE id = ?;", (shift_id,))
                if cursor.fetchone() is None:
                    raise RecordNotFoundError(f"Shift {shift_id} not found")

                if values:
                    assignments = ", ".join(f"{column} = ?" for column in values)
                    cursor.execute(
                        f"UPDATE Shifts SET {assignments} WHERE id = ?;",
                        (*values.values(), shift_id),
                    )
                if room_refs is not None:
                    cursor.execute("DELETE FROM ShiftRooms WHERE shift_id = ?;", (shift_id,))
                    cursor.executemany(
                        """
                        INSERT INTO ShiftRooms (shift_id, position, room_id, room_number)
                        VALUES (?, ?, ?, ?);
                        """,
                        [
                            (shift_id, position, ref.room_id, ref.room_number)
                            for position, ref in enumerate(room_refs)
                        ],
                    )
                conn.commit()
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to update shift {shift_id}: {exc}") from exc
        return self.get_shift(shift_id)

    def delete_shift(self, shift_id: int) -> None:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM Shifts WHERE id = ?;", (shift_id,))
                conn.commit()
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Shift {shift_id} not found")
        except sqlite3.Error as exc:
            raise RepositoryError(f"Failed to delete shift {shift_id}: {exc}") from exc

    def count_shifts(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM Shifts;")
            return int(cursor.fetchone()["count"])

    def _query_shifts(self, where: str, params: tuple[Any, ...]) -> list[Shift]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT s.id, s.date, s.shift, s.staff_id, s.staff_name, s.notes, s.created_at
                FROM Shifts AS s
                {where}
                ORDER BY s.created_at DESC, s.id DESC;
                """,
                params,
            )
            shift_rows = cursor.fetchall()
            if not shift_rows:
                return []

            shift_ids = [int(row["id"]) for row in shift_rows]
            placeholders = ",".join("?" for _ in shift_ids)
            cursor.execute(
                f"""
                SELECT shift_id, room_id, room_number
                FROM ShiftRooms
                WHERE shift_id IN ({placeholders})
                ORDER BY shift_id ASC, position ASC;
                """,
                tuple(shift_ids),
            )
            refs_by_shift: dict[int, list[RoomRef]] = {shift_id: [] for shift_id in shift_ids}
            for row in cursor.fetchall():
                refs_by_shift[int(row["shift_id"])].append(
                    RoomRef(room_id=int(row["room_id"]), room_number=str(row["room_number"]))
                )

        return [
            Shift(
                shift_id=int(row["id"]),
                date=str(row["date"]),
                shift=str(row["shift"]),
                staff_id=int(row["staff_id"]) if row["staff_id"] is not None else None,
                staff_name=str(row["staff_name"]),
                room_refs=tuple(refs_by_shift[int(row["id"])]),
                notes=str(row["notes"]),
                created_at=str(row["created_at"]),
            )
            for row in shift_rows
        ]
