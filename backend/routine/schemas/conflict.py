from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

ConflictType = Literal[
    "teacher_unavailable_day",
    "teacher_unavailable_slot",
    "teacher_schedule_conflict",
    "room_conflict",
    "section_conflict",
    "elective_core_conflict",
    "elective_overlap_conflict",
]


class _ConflictBase(BaseModel):
    message: str
    existing_commitment_id: Optional[str] = Field(default=None, alias="existingCommitmentId")

    model_config = {"populate_by_name": True}


class TeacherUnavailableDay(_ConflictBase):
    type: Literal["teacher_unavailable_day"] = "teacher_unavailable_day"
    teacher_id: str = Field(alias="teacherId")
    day_index: int = Field(alias="dayIndex")


class TeacherUnavailableSlot(_ConflictBase):
    type: Literal["teacher_unavailable_slot"] = "teacher_unavailable_slot"
    teacher_id: str = Field(alias="teacherId")
    day_index: int = Field(alias="dayIndex")
    slot_index: int = Field(alias="slotIndex")
    reason: str


class TeacherScheduleConflict(_ConflictBase):
    type: Literal["teacher_schedule_conflict"] = "teacher_schedule_conflict"
    teacher_id: str = Field(alias="teacherId")
    semester_group: Literal["odd", "even"] = Field(alias="semesterGroup")


class RoomConflict(_ConflictBase):
    type: Literal["room_conflict"] = "room_conflict"
    room_id: str = Field(alias="roomId")
    semester_group: Literal["odd", "even"] = Field(alias="semesterGroup")


class SectionConflict(_ConflictBase):
    type: Literal["section_conflict"] = "section_conflict"
    section: str


class ElectiveCoreConflict(_ConflictBase):
    type: Literal["elective_core_conflict"] = "elective_core_conflict"
    section: str
    subject_code: Optional[str] = Field(default=None, alias="subjectCode")


class ElectiveOverlapConflict(_ConflictBase):
    type: Literal["elective_overlap_conflict"] = "elective_overlap_conflict"
    section: str
    conflicting_elective: str = Field(alias="conflictingElective")


ConflictRecord = Annotated[
    Union[
        TeacherUnavailableDay,
        TeacherUnavailableSlot,
        TeacherScheduleConflict,
        RoomConflict,
        SectionConflict,
        ElectiveCoreConflict,
        ElectiveOverlapConflict,
    ],
    Field(discriminator="type"),
]


class ConflictReport(BaseModel):
    has_conflicts: bool = Field(default=False, alias="hasConflicts")
    conflicts: List[ConflictRecord] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @model_validator(mode="after")
    def sync_has_conflicts(self) -> "ConflictReport":
        self.has_conflicts = bool(self.conflicts)
        return self
