"""Controller layer for login, staff, room and shift management endpoints."""

from __future__ import annotations

from datetime import date as date_type
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator

from housekeeping.controllers.dependencies import (
    get_app_settings,
    get_auth_service,
    get_roster_service,
    require_permission,
)
from housekeeping.domain.models import Availability, Room, Shift, StaffMember, SystemRole
from housekeeping.repository.data_repository import (
    DuplicateRecordError,
    RecordNotFoundError,
    RepositoryError,
)
from housekeeping.services.auth_service import (
    AuthService,
    InvalidTokenError,
    TokenNotConfiguredError,
)
from housekeeping.services.roster_service import RosterService, RosterValidationError
from housekeeping.utils.config import Settings
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["roster"])


class LoginRequest(BaseModel):
    token: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: SystemRole


class ConfigResponse(BaseModel):
    shift_types: list[str]


class StaffCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    availability: Availability = Availability.AVAILABLE
    system_role: SystemRole = SystemRole.STAFF
    role: Optional[str] = None
    phone: Optional[str] = None


class StaffUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    availability: Optional[Availability] = None
    system_role: Optional[SystemRole] = None
    role: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("name", "availability", "system_role")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class StaffResponse(BaseModel):
    id: int
    name: str
    availability: Availability
    system_role: SystemRole
    role: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_staff(cls, staff: StaffMember) -> "StaffResponse":
        return cls(
            id=staff.staff_id,
            name=staff.name,
            availability=staff.availability,
            system_role=staff.system_role,
            role=staff.role,
            phone=staff.phone,
        )


class RoomCreateRequest(BaseModel):
    number: str = Field(min_length=1)
    type: Optional[str] = None
    status: Optional[str] = None


class RoomUpdateRequest(BaseModel):
    number: Optional[str] = Field(default=None, min_length=1)
    type: Optional[str] = None
    status: Optional[str] = None

    @field_validator("number")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class RoomImportRequest(BaseModel):
    csv: str = Field(min_length=1)


class RoomResponse(BaseModel):
    id: int
    number: str
    type: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_room(cls, room: Room) -> "RoomResponse":
        return cls(id=room.room_id, number=room.number, type=room.room_type, status=room.status)


class ShiftCreateRequest(BaseModel):
    date: date_type
    shift: str = Field(min_length=1)
    staff_id: int = Field(gt=0)
    room_ids: list[int] = Field(default_factory=list)
    notes: str = ""


class ShiftUpdateRequest(BaseModel):
    date: Optional[date_type] = None
    shift: Optional[str] = Field(default=None, min_length=1)
    staff_id: Optional[int] = Field(default=None, gt=0)
    room_ids: Optional[list[int]] = None
    notes: Optional[str] = None

    @field_validator("date", "shift", "staff_id", "room_ids", "notes")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class ShiftResponse(BaseModel):
    id: int
    date: str
    shift: str
    staff_id: Optional[int]
    staff_name: str
    room_ids: list[int]
    rooms: list[str]
    notes: str
    created_at: str

    @classmethod
    def from_shift(cls, shift: Shift) -> "ShiftResponse":
        return cls(
            id=shift.shift_id,
            date=shift.date,
            shift=shift.shift,
            staff_id=shift.staff_id,
            staff_name=shift.staff_name,
            room_ids=shift.room_ids,
            rooms=shift.rooms,
            notes=shift.notes,
            created_at=shift.created_at,
        )


class DeleteRoomResponse(BaseModel):
    deleted: bool
    shifts_updated: int = Field(ge=0)


def _http_error(exc: Exception, action: str) -> HTTPException:
    """Translate a roster failure into the matching HTTP status."""
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, DuplicateRecordError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, (RosterValidationError, RepositoryError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    logger.exception("Unexpected failure | action=%s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict[str, str]:
    return {"status": "healthy", "service": "housekeeping"}


@router.get("/config", response_model=ConfigResponse)
async def client_config(settings: Settings = Depends(get_app_settings)) -> ConfigResponse:
    """Values the dashboard needs to build its forms."""
    return ConfigResponse(shift_types=list(settings.shift_types))


@router.post("/login", response_model=LoginResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    try:
        bearer, role = auth_service.login(payload.token)
        return LoginResponse(access_token=bearer, role=role)
    except (TokenNotConfiguredError, InvalidTokenError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        raise _http_error(exc, "login") from exc


# --- Staff ---


@router.get(
    "/staff",
    response_model=list[StaffResponse],
    dependencies=[Depends(require_permission("can_view_all_staff"))],
)
async def list_staff(
    include_archived: bool = False,
    service: RosterService = Depends(get_roster_service),
) -> list[StaffResponse]:
    try:
        members = service.list_staff(include_archived)
    except Exception as exc:
        raise _http_error(exc, "list staff") from exc
    return [StaffResponse.from_staff(item) for item in members]


@router.post(
    "/staff",
    response_model=StaffResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("can_manage_staff"))],
)
async def create_staff(
    payload: StaffCreateRequest,
    service: RosterService = Depends(get_roster_service),
) -> StaffResponse:
    try:
        staff = service.add_staff(**payload.model_dump())
    except Exception as exc:
        raise _http_error(exc, "create staff member") from exc
    return StaffResponse.from_staff(staff)


@router.patch(
    "/staff/{staff_id}",
    response_model=StaffResponse,
    dependencies=[Depends(require_permission("can_manage_staff"))],
)
async def update_staff(
    staff_id: int,
    payload: StaffUpdateRequest,
    service: RosterService = Depends(get_roster_service),
) -> StaffResponse:
    try:
        staff = service.update_staff(staff_id, payload.model_dump(exclude_unset=True))
    except Exception as exc:
        raise _http_error(exc, "update staff member") from exc
    return StaffResponse.from_staff(staff)


@router.delete(
    "/staff/{staff_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission("can_manage_staff"))],
)
async def archive_staff(
    staff_id: int,
    service: RosterService = Depends(get_roster_service),
) -> None:
    try:
        service.archive_staff(staff_id)
    except Exception as exc:
        raise _http_error(exc, "archive staff member") from exc


# --- Rooms ---


@router.get("/rooms", response_model=list[RoomResponse])
async def list_rooms(
    service: RosterService = Depends(get_roster_service),
) -> list[RoomResponse]:
    try:
        rooms = service.list_rooms()
    except Exception as exc:
        raise _http_error(exc, "list rooms") from exc
    return [RoomResponse.from_room(room) for room in rooms]


@router.post(
    "/rooms",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("can_manage_rooms"))],
)
async def create_room(
    payload: RoomCreateRequest,
    service: RosterService = Depends(get_roster_service),
) -> RoomResponse:
    try:
        room = service.add_room(
            number=payload.number,
            room_type=payload.type,
            status=payload.status,
        )
    except Exception as exc:
        raise _http_error(exc, "create room") from exc
    return RoomResponse.from_room(room)


@router.post(
    "/rooms/import",
    response_model=list[RoomResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("can_manage_rooms"))],
)
async def import_rooms(
    payload: RoomImportRequest,
    service: RosterService = Depends(get_roster_service),
) -> list[RoomResponse]:
    try:
        rooms = service.import_rooms_csv(payload.csv)
    except Exception as exc:
        raise _http_error(exc, "import rooms") from exc
    return [RoomResponse.from_room(room) for room in rooms]


@router.patch(
    "/rooms/{room_id}",
    response_model=RoomResponse,
    dependencies=[Depends(require_permission("can_manage_rooms"))],
)
async def update_room(
    room_id: int,
    payload: RoomUpdateRequest,
    service: RosterService = Depends(get_roster_service),
) -> RoomResponse:
    changes = payload.model_dump(exclude_unset=True)
    if "type" in changes:
        changes["room_type"] = changes.pop("type")
    try:
        room = service.update_room(room_id, changes)
    except Exception as exc:
        raise _http_error(exc, "update room") from exc
    return RoomResponse.from_room(room)


@router.delete(
    "/rooms/{room_id}",
    response_model=DeleteRoomResponse,
    dependencies=[Depends(require_permission("can_manage_rooms"))],
)
async def delete_room(
    room_id: int,
    service: RosterService = Depends(get_roster_service),
) -> DeleteRoomResponse:
    try:
        updated = service.delete_room(room_id)
    except Exception as exc:
        raise _http_error(exc, "delete room") from exc
    return DeleteRoomResponse(deleted=True, shifts_updated=updated)


# --- Shifts ---


@router.get(
    "/shifts",
    response_model=list[ShiftResponse],
    dependencies=[Depends(require_permission("can_view_all_shifts"))],
)
async def list_shifts(
    date: Optional[date_type] = Query(default=None),
    shift: Optional[str] = Query(default=None),
    service: RosterService = Depends(get_roster_service),
) -> list[ShiftResponse]:
    try:
        shifts = service.list_shifts(
            date=date.isoformat() if date is not None else None,
            shift=shift,
        )
    except Exception as exc:
        raise _http_error(exc, "list shifts") from exc
    return [ShiftResponse.from_shift(item) for item in shifts]


@router.post(
    "/shifts",
    response_model=ShiftResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission("can_assign_shifts"))],
)
async def create_shift(
    payload: ShiftCreateRequest,
    service: RosterService = Depends(get_roster_service),
) -> ShiftResponse:
    try:
        shift = service.create_shift(
            date=payload.date.isoformat(),
            shift=payload.shift,
            staff_id=payload.staff_id,
            room_ids=payload.room_ids,
            notes=payload.notes,
        )
    except Exception as exc:
        raise _http_error(exc, "create shift") from exc
    return ShiftResponse.from_shift(shift)


@router.patch(
    "/shifts/{shift_id}",
    response_model=ShiftResponse,
    dependencies=[Depends(require_permission("can_edit_shifts"))],
)
async def update_shift(
    shift_id: int,
    payload: ShiftUpdateRequest,
    service: RosterService = Depends(get_roster_service),
) -> ShiftResponse:
    changes = payload.model_dump(exclude_unset=True)
    if "date" in changes:
        changes["date"] = changes["date"].isoformat()
    try:
        shift = service.update_shift(shift_id, changes)
    except Exception as exc:
        raise _http_error(exc, "update shift") from exc
    return ShiftResponse.from_shift(shift)


@router.delete(
    "/shifts/{shift_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission("can_delete_shifts"))],
)
async def delete_shift(
    shift_id: int,
    service: RosterService = Depends(get_roster_service),
) -> None:
    try:
        service.delete_shift(shift_id)
    except Exception as exc:
        raise _http_error(exc, "delete shift") from exc
