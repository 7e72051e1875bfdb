from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import replace

from housekeeping.domain.models import Availability, AutoAssignmentConfig, SystemRole
from housekeeping.repository.data_repository import DataRepository, RepositoryError
from housekeeping.services.auto_assignment_service import AutoAssignmentService
from housekeeping.utils.config import get_settings


TARGET_DATE = "2026-03-05"


def _build_service(tmp_path, filename: str) -> tuple[AutoAssignmentService, DataRepository]:
    settings = replace(get_settings(), database_path=tmp_path / filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    return AutoAssignmentService(repository=repository, settings=settings), repository


def _seed_roster(repository: DataRepository, room_count: int = 5) -> dict[str, int]:
    staff_ids = {
        name: repository.create_staff(name).staff_id
        for name in ("A", "B", "C")
    }
    repository.create_staff("On Break", availability=Availability.ON_BREAK)
    repository.create_staff("Supervisor", system_role=SystemRole.MANAGER)
    repository.create_rooms(
        [(f"R{index}", None, "cleaning") for index in range(1, room_count + 1)]
        + [("R9", None, "occupied")]
    )
    return staff_ids


def _run(service: AutoAssignmentService, **overrides):
    config = AutoAssignmentConfig(
        date=overrides.pop("date", TARGET_DATE),
        shift_type=overrides.pop("shift_type", "Morning"),
        **overrides,
    )
    return asyncio.run(service.run_auto_assignment(config))


def test_run_persists_one_shift_per_assigned_staff(tmp_path):
    service, repository = _build_service(tmp_path, "run.db")
    _seed_roster(repository)

    result = _run(service)

    assert result.success is True
    assert result.success_count == 3
    assert result.failure_count == 0
    assert result.errors == []
    assert result.refresh_required is True

    shifts = repository.list_shifts(date=TARGET_DATE, shift="Morning")
    rooms_by_staff = {shift.staff_name: shift.rooms for shift in shifts}
    assert rooms_by_staff == {"A": ["R1", "R4"], "B": ["R3"], "C": ["R2", "R5"]}
    notes = {shift.staff_name: shift.notes for shift in shifts}
    assert notes["A"] == "Auto-assigned 2 room(s)"
    assert notes["B"] == "Auto-assigned 1 room(s)"
    assert all("R9" not in shift.rooms for shift in shifts)


def test_second_run_accounts_for_existing_workload(tmp_path):
    service, repository = _build_service(tmp_path, "rerun.db")
    _seed_roster(repository)

    first = _run(service)
    second = _run(service)

    assert first.success and second.success
    totals: dict[str, int] = {}
    for shift in repository.list_shifts(date=TARGET_DATE, shift="Morning"):
        totals[shift.staff_name] = totals.get(shift.staff_name, 0) + len(shift.rooms)
    assert sum(totals.values()) == 10
    assert max(totals.values()) - min(totals.values()) <= 1


def test_partial_persistence_failure_is_reported_per_assignment(tmp_path, monkeypatch):
    service, repository = _build_service(tmp_path, "partial.db")
    staff_ids = _seed_roster(repository)
    original_create_shift = repository.create_shift

    def flaky_create_shift(**kwargs):
        if kwargs["staff_id"] == staff_ids["C"]:
            raise RepositoryError("simulated store outage")
        return original_create_shift(**kwargs)

    monkeypatch.setattr(repository, "create_shift", flaky_create_shift)

    result = _run(service)

    assert result.success is False
    assert result.success_count == 2
    assert result.failure_count == 1
    assert result.errors == ["Failed to assign C: simulated store outage"]
    assert [item.staff_name for item in result.assignments] == ["A", "B"]
    stored = repository.list_shifts(date=TARGET_DATE, shift="Morning")
    assert sorted(shift.staff_name for shift in stored) == ["A", "B"]


def test_capacity_exceeded_persists_nothing(tmp_path):
    service, repository = _build_service(tmp_path, "capacity.db")
    repository.create_staff("A")
    repository.create_staff("B")
    repository.create_rooms([(f"R{index}", None, None) for index in range(1, 4)])

    result = _run(service, max_assignments_per_staff=1)

    assert result.success is False
    assert result.success_count == 0
    assert result.failure_count == 0
    assert len(result.errors) == 1
    assert "R3" in result.errors[0]
    assert "maximum capacity (1)" in result.errors[0]
    assert repository.count_shifts() == 0


def test_empty_inputs_become_failed_results(tmp_path):
    service, repository = _build_service(tmp_path, "empty.db")

    no_staff = _run(service)
    repository.create_staff("A")
    no_rooms = _run(service)

    assert no_staff.success is False
    assert no_staff.errors == ["No available staff members found"]
    assert no_rooms.errors == ["No rooms requiring assignment found"]


def test_fetch_failure_aborts_before_allocation(tmp_path, monkeypatch):
    service, repository = _build_service(tmp_path, "fetch.db")
    _seed_roster(repository)

    def broken_query():
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(repository, "list_eligible_staff", broken_query)

    result = _run(service)

    assert result.success is False
    assert result.errors == ["Failed to fetch available staff"]
    assert repository.count_shifts() == 0


def test_invalid_config_is_reported_not_raised(tmp_path):
    service, _ = _build_service(tmp_path, "invalid.db")

    result = _run(service, date="March 5th")

    assert result.success is False
    assert result.errors == ["date must follow YYYY-MM-DD format"]


def test_concurrent_run_for_same_window_is_rejected(tmp_path):
    service, repository = _build_service(tmp_path, "concurrent.db")
    _seed_roster(repository)
    config = AutoAssignmentConfig(date=TARGET_DATE, shift_type="Morning")

    async def run_twice():
        return await asyncio.gather(
            service.run_auto_assignment(config),
            service.run_auto_assignment(config),
        )

    first, second = asyncio.run(run_twice())

    assert first.success is True
    assert second.success is False
    assert second.errors == [f"Auto-assignment already running for {TARGET_DATE} Morning"]
    assert repository.count_shifts() == 3

    # The guard is released once the run finishes.
    assert _run(service).success is True


def test_runs_for_different_windows_do_not_block_each_other(tmp_path):
    service, repository = _build_service(tmp_path, "windows.db")
    _seed_roster(repository)

    async def run_both():
        return await asyncio.gather(
            service.run_auto_assignment(AutoAssignmentConfig(date=TARGET_DATE, shift_type="Morning")),
            service.run_auto_assignment(AutoAssignmentConfig(date=TARGET_DATE, shift_type="Evening")),
        )

    morning, evening = asyncio.run(run_both())

    assert morning.success and evening.success
    assert len(repository.list_shifts(date=TARGET_DATE, shift="Evening")) == 3
