"""HTTP controller layer for automatic shift assignment."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from housekeeping.controllers.dependencies import get_assignment_service, require_permission
from housekeeping.domain.constraints import AssignmentValidationError, validate_auto_assignment_config
from housekeeping.domain.models import AutoAssignmentConfig, ShiftAssignment
from housekeeping.services.allocation_service import CapacityExceededError, InputError
from housekeeping.services.auto_assignment_service import AutoAssignmentService, FetchError
from housekeeping.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["auto-assignment"])


class AutoAssignRequest(BaseModel):
    date: date
    shift_type: str = Field(min_length=1)
    max_assignments_per_staff: int | None = Field(default=None, gt=0)

    @field_validator("shift_type")
    @classmethod
    def strip_shift_type(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("shift_type must be non-empty")
        return value

    def to_config(self) -> AutoAssignmentConfig:
        return AutoAssignmentConfig(
            date=self.date.isoformat(),
            shift_type=self.shift_type,
            max_assignments_per_staff=self.max_assignments_per_staff,
        )


class ShiftAssignmentResponse(BaseModel):
    staff_id: int
    staff_name: str
    room_ids: list[int]
    rooms: list[str]

    @classmethod
    def from_assignment(cls, assignment: ShiftAssignment) -> "ShiftAssignmentResponse":
        return cls(
            staff_id=assignment.staff_id,
            staff_name=assignment.staff_name,
            room_ids=assignment.room_ids,
            rooms=assignment.rooms,
        )


class AutoAssignResponse(BaseModel):
    success: bool
    success_count: int = Field(ge=0)
    failure_count: int = Field(ge=0)
    assignments: list[ShiftAssignmentResponse]
    errors: list[str]
    refresh_required: bool


class PreviewResponse(BaseModel):
    assignments: list[ShiftAssignmentResponse]


@router.post(
    "/auto_assign",
    response_model=AutoAssignResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_permission("can_assign_shifts"))],
)
async def auto_assign(
    payload: AutoAssignRequest,
    service: AutoAssignmentService = Depends(get_assignment_service),
) -> AutoAssignResponse:
    """Allocate and persist shifts; failures are reported in the body, not as errors."""
    result = await service.run_auto_assignment(payload.to_config())
    return AutoAssignResponse(
        success=result.success,
        success_count=result.success_count,
        failure_count=result.failure_count,
        assignments=[
            ShiftAssignmentResponse.from_assignment(item) for item in result.assignments
        ],
        errors=result.errors,
        refresh_required=result.refresh_required,
    )


@router.post(
    "/auto_assign/preview",
    response_model=PreviewResponse,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_permission("can_assign_shifts"))],
)
async def preview_auto_assign(
    payload: AutoAssignRequest,
    service: AutoAssignmentService = Depends(get_assignment_service),
) -> PreviewResponse:
    """Compute assignments against the current data without writing anything."""
    config = payload.to_config()
    try:
        validate_auto_assignment_config(config)
        snapshot = await service.fetch_snapshot(config.date, config.shift_type)
        assignments = service.preview(snapshot, config)
        return PreviewResponse(
            assignments=[ShiftAssignmentResponse.from_assignment(item) for item in assignments]
        )
    except (AssignmentValidationError, InputError, CapacityExceededError) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except FetchError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    except Exception as exc:  # pragma: no cover
        logger.exception("Unexpected auto-assignment preview failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to preview auto-assignment",
        ) from exc
