from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from routine.api.deps import get_availability_finder, get_db
from routine.models.teacher import Teacher
from routine.schemas.availability import AvailabilityConstraints, AvailabilityReport, MeetingSlotsRequest
from routine.schemas.teacher import TeacherCreate, TeacherOut, TeacherUpdate
from routine.services.availability import AvailabilityFinder

router = APIRouter()


@router.get("/", response_model=list[TeacherOut])
def list_teachers(include_inactive: bool = False, db: Session = Depends(get_db)) -> list[TeacherOut]:
    query = select(Teacher).order_by(Teacher.short_name)
    if not include_inactive:
        query = query.where(Teacher.is_active.is_(True))
    return list(db.execute(query).scalars())


@router.post("/", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)) -> TeacherOut:
    existing = db.execute(select(Teacher).where(Teacher.email == payload.email)).scalar_one_or_none()
    if existing:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.post("/meeting-slots", response_model=AvailabilityReport)
def find_meeting_slots(
    payload: MeetingSlotsRequest,
    finder: AvailabilityFinder = Depends(get_availability_finder),
) -> AvailabilityReport:
    constraints = AvailabilityConstraints(
        min_duration=payload.min_duration,
        exclude_days=payload.exclude_days,
        semester_group=payload.semester_group,
    )
    return finder.find_common_free_slots(payload.teacher_ids, constraints, payload.academic_year_id)


@router.get("/{teacher_id}", response_model=TeacherOut)
def get_teacher(teacher_id: str, db: Session = Depends(get_db)) -> TeacherOut:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    return teacher


@router.put("/{teacher_id}", response_model=TeacherOut)
def update_teacher(teacher_id: str, payload: TeacherUpdate, db: Session = Depends(get_db)) -> TeacherOut:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")

    data = payload.model_dump(exclude_unset=True)
    if "email" in data:
        existing = db.execute(
            select(Teacher).where(Teacher.email == data["email"], Teacher.id != teacher_id)
        ).scalar_one_or_none()
        if existing:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher email already exists")

    for key, value in data.items():
        setattr(teacher, key, value)
    db.commit()
    db.refresh(teacher)
    return teacher


@router.delete("/{teacher_id}")
def deactivate_teacher(teacher_id: str, db: Session = Depends(get_db)) -> dict:
    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Teacher not found")
    teacher.is_active = False
    db.commit()
    return {"success": True}
