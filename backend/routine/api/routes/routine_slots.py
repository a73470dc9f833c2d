from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from routine.api.deps import get_routine_slot_service, get_span_coordinator
from routine.schemas.conflict import ConflictReport
from routine.schemas.routine import (
    RoutineSlotCreateRequest,
    RoutineSlotUpdateRequest,
    ScheduledClass,
    SpanCommitRequest,
    SpanCommitResult,
)
from routine.services.routine_slots import RoutineSlotService
from routine.services.span_coordinator import SpanCoordinator

router = APIRouter()

CONFLICT_RESPONSES = {status.HTTP_409_CONFLICT: {"model": ConflictReport}}


def _conflict_response(report: ConflictReport) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=report.model_dump(mode="json", by_alias=True),
    )


@router.get("/", response_model=list[ScheduledClass])
def list_routine_slots(
    academic_year_id: str = Query(alias="academicYearId", min_length=1, max_length=36),
    program_id: str | None = Query(default=None, alias="programId", max_length=36),
    semester: int | None = Query(default=None, ge=1, le=12),
    section: str | None = Query(default=None, max_length=20),
    teacher_id: str | None = Query(default=None, alias="teacherId", max_length=36),
    room_id: str | None = Query(default=None, alias="roomId", max_length=36),
    day_index: int | None = Query(default=None, alias="dayIndex", ge=0, le=6),
    week_number: int | None = Query(default=None, alias="weekNumber", ge=1, le=16),
    service: RoutineSlotService = Depends(get_routine_slot_service),
) -> list[ScheduledClass]:
    return service.list_slots(
        academic_year_id,
        program_id=program_id,
        semester=semester,
        section=section,
        teacher_id=teacher_id,
        room_id=room_id,
        day_index=day_index,
        week_number=week_number,
    )


@router.post(
    "/",
    response_model=ScheduledClass,
    status_code=status.HTTP_201_CREATED,
    responses=CONFLICT_RESPONSES,
)
def create_routine_slot(
    payload: RoutineSlotCreateRequest,
    service: RoutineSlotService = Depends(get_routine_slot_service),
):
    result = service.create(payload.slot, payload.academic_year_id)
    if isinstance(result, ConflictReport):
        return _conflict_response(result)
    return result


@router.post(
    "/spans",
    response_model=SpanCommitResult,
    status_code=status.HTTP_201_CREATED,
    responses=CONFLICT_RESPONSES,
)
def commit_span(
    payload: SpanCommitRequest,
    coordinator: SpanCoordinator = Depends(get_span_coordinator),
):
    result = coordinator.validate_and_commit(payload.slots, payload.academic_year_id)
    if isinstance(result, ConflictReport):
        return _conflict_response(result)
    return result


@router.delete("/spans/{span_id}")
def cancel_span(
    span_id: str,
    service: RoutineSlotService = Depends(get_routine_slot_service),
) -> dict:
    return {"success": True, "cancelled": service.cancel_span(span_id)}


@router.put("/{slot_id}", response_model=ScheduledClass, responses=CONFLICT_RESPONSES)
def update_routine_slot(
    slot_id: str,
    payload: RoutineSlotUpdateRequest,
    service: RoutineSlotService = Depends(get_routine_slot_service),
):
    result = service.update(slot_id, payload.changes, payload.academic_year_id)
    if isinstance(result, ConflictReport):
        return _conflict_response(result)
    return result


@router.delete("/{slot_id}")
def cancel_routine_slot(
    slot_id: str,
    service: RoutineSlotService = Depends(get_routine_slot_service),
) -> dict:
    return {"success": True, "cancelled": service.cancel(slot_id)}
