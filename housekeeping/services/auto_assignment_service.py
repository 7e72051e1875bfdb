"""Auto-assignment orchestration: snapshot -> allocate -> persist."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from threading import RLock
from typing import Any, Callable, Optional, Sequence

from housekeeping.domain.constraints import (
    AssignmentValidationError,
    validate_auto_assignment_config,
)
from housekeeping.domain.models import (
    AutoAssignmentConfig,
    AutoAssignmentResult,
    Room,
    Shift,
    ShiftAssignment,
    StaffMember,
)
from housekeeping.repository.data_repository import DataRepository
from housekeeping.services.allocation_service import (
    AutoAssignmentError,
    compute_assignments,
)
from housekeeping.utils.config import Settings, get_settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)


class FetchError(AutoAssignmentError):
    """Raised when one of the snapshot queries fails."""


class PersistError(AutoAssignmentError):
    """Raised when a single shift write fails."""


@dataclass(frozen=True)
class AssignmentSnapshot:
    eligible_staff: list[StaffMember]
    assignable_rooms: list[Room]
    existing_shifts: list[Shift]


def assignment_notes(assignment: ShiftAssignment) -> str:
    return f"Auto-assigned {len(assignment.room_refs)} room(s)"


class AutoAssignmentService:
    """Runs one auto-assignment pass per (date, shift type) at a time."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._lock = RLock()
        self._active_runs: set[tuple[str, str]] = set()

    async def _fetch(self, label: str, query: Callable[..., Any], *args: Any) -> Any:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(query, *args),
                timeout=self._settings.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise FetchError(f"Timed out fetching {label}") from exc
        except Exception as exc:
            logger.error("Snapshot fetch failed | query=%s | error=%s", label, exc)
            raise FetchError(f"Failed to fetch {label}") from exc

    async def fetch_snapshot(self, date: str, shift_type: str) -> AssignmentSnapshot:
        """Load staff, rooms and matching shifts concurrently; any failure aborts."""
        eligible_staff, assignable_rooms, existing_shifts = await asyncio.gather(
            self._fetch("available staff", self._repository.list_eligible_staff),
            self._fetch(
                "assignable rooms",
                self._repository.list_assignable_rooms,
                self._settings.assignable_room_statuses,
            ),
            self._fetch("existing shifts", self._repository.list_shifts, date, shift_type),
        )
        logger.info(
            "Snapshot loaded | date=%s | shift=%s | staff=%s | rooms=%s | shifts=%s",
            date,
            shift_type,
            len(eligible_staff),
            len(assignable_rooms),
            len(existing_shifts),
        )
        return AssignmentSnapshot(
            eligible_staff=eligible_staff,
            assignable_rooms=assignable_rooms,
            existing_shifts=existing_shifts,
        )

    def _persist_one(
        self,
        assignment: ShiftAssignment,
        config: AutoAssignmentConfig,
        created_at: str,
    ) -> Shift:
        try:
            return self._repository.create_shift(
                date=config.date,
                shift=config.shift_type,
                staff_id=assignment.staff_id,
                staff_name=assignment.staff_name,
                room_refs=assignment.room_refs,
                notes=assignment_notes(assignment),
                created_at=created_at,
            )
        except Exception as exc:
            raise PersistError(f"Failed to assign {assignment.staff_name}: {exc}") from exc

    async def persist_assignments(
        self,
        assignments: Sequence[ShiftAssignment],
        config: AutoAssignmentConfig,
    ) -> AutoAssignmentResult:
        """Write each assignment as its own shift; failures do not stop the others."""
        created_at = datetime.now(timezone.utc).isoformat(timespec="seconds")
        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self._persist_one, assignment, config, created_at)
                for assignment in assignments
            ),
            return_exceptions=True,
        )

        result = AutoAssignmentResult(success=True)
        for assignment, outcome in zip(assignments, outcomes):
            if isinstance(outcome, PersistError):
                logger.error("Shift write failed | staff_id=%s | %s", assignment.staff_id, outcome)
                result.failure_count += 1
                result.errors.append(str(outcome))
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            result.success_count += 1
            result.assignments.append(assignment)

        result.success = result.failure_count == 0
        return result

    def preview(
        self,
        snapshot: AssignmentSnapshot,
        config: AutoAssignmentConfig,
    ) -> list[ShiftAssignment]:
        return compute_assignments(
            snapshot.eligible_staff,
            snapshot.assignable_rooms,
            snapshot.existing_shifts,
            config.max_assignments_per_staff,
        )

    def _claim_run(self, key: tuple[str, str]) -> bool:
        with self._lock:
            if key in self._active_runs:
                return False
            self._active_runs.add(key)
            return True

    def _release_run(self, key: tuple[str, str]) -> None:
        with self._lock:
            self._active_runs.discard(key)

    async def run_auto_assignment(self, config: AutoAssignmentConfig) -> AutoAssignmentResult:
        """Entry point for the application; always returns a result, never raises."""
        key = (config.date, config.shift_type)
        if not self._claim_run(key):
            logger.warning("Auto-assignment rejected | date=%s | shift=%s | reason=in_progress", *key)
            return AutoAssignmentResult.failed(
                f"Auto-assignment already running for {config.date} {config.shift_type}"
            )

        try:
            validate_auto_assignment_config(config)
            snapshot = await self.fetch_snapshot(config.date, config.shift_type)
            assignments = self.preview(snapshot, config)
            result = await self.persist_assignments(assignments, config)
        except (AssignmentValidationError, AutoAssignmentError) as exc:
            logger.warning(
                "Auto-assignment failed | date=%s | shift=%s | error=%s",
                config.date,
                config.shift_type,
                exc,
            )
            return AutoAssignmentResult.failed(str(exc))
        except Exception as exc:
            logger.exception("Unexpected auto-assignment failure")
            return AutoAssignmentResult.failed(str(exc) or "Unknown error occurred")
        finally:
            self._release_run(key)

        logger.info(
            "Auto-assignment completed | date=%s | shift=%s | success=%s | failures=%s",
            config.date,
            config.shift_type,
            result.success_count,
            result.failure_count,
        )
        return result
