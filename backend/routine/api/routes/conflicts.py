from fastapi import APIRouter, Depends

from routine.api.deps import get_conflict_service
from routine.schemas.conflict import ConflictReport
from routine.schemas.routine import ValidationRequest
from routine.services.conflict_service import ConflictService

router = APIRouter()


@router.post("/validate", response_model=ConflictReport)
def validate_slot(
    payload: ValidationRequest,
    service: ConflictService = Depends(get_conflict_service),
) -> ConflictReport:
    return service.validate(payload.slot, payload.academic_year_id, exclude_ids=payload.exclude_ids)


@router.post("/validate-elective", response_model=ConflictReport)
def validate_elective_slot(
    payload: ValidationRequest,
    service: ConflictService = Depends(get_conflict_service),
) -> ConflictReport:
    return service.validate_elective(payload.slot, payload.academic_year_id, exclude_ids=payload.exclude_ids)
