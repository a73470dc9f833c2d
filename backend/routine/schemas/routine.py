from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator

from routine.models.routine_slot import ClassCategory, ClassType, RecurrenceType, WeekParity

TERM_WEEKS = 16
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def _normalize_sections(values: list[str]) -> list[str]:
    seen: set[str] = set()
    cleaned: list[str] = []
    for item in values:
        section = item.strip().upper()
        if not section:
            raise ValueError("Section names cannot be empty")
        if section in seen:
            continue
        seen.add(section)
        cleaned.append(section)
    return cleaned


class RecurrencePattern(BaseModel):
    type: RecurrenceType = RecurrenceType.weekly
    pattern: WeekParity | None = None
    custom_weeks: list[int] = Field(default_factory=list, alias="customWeeks", max_length=TERM_WEEKS)
    description: str | None = Field(default=None, max_length=100)

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }

    @field_validator("custom_weeks")
    @classmethod
    def validate_custom_weeks(cls, value: list[int]) -> list[int]:
        invalid = [week for week in value if week < 1 or week > TERM_WEEKS]
        if invalid:
            raise ValueError(f"Custom weeks must be between 1 and {TERM_WEEKS}, got {invalid}")
        return sorted(set(value))

    @model_validator(mode="after")
    def validate_shape(self) -> "RecurrencePattern":
        if self.type == RecurrenceType.alternate:
            if self.pattern is None:
                raise ValueError("Alternate recurrence requires pattern 'odd' or 'even'")
            self.custom_weeks = []
        elif self.type == RecurrenceType.custom:
            if not self.custom_weeks:
                raise ValueError("Custom recurrence requires at least one week")
            self.pattern = None
        else:
            self.pattern = None
            self.custom_weeks = []
        return self


class ScheduledClass(BaseModel):
    """A committed or proposed occupancy of one (day, slot) cell of a section's routine."""

    id: str | None = Field(default=None, max_length=36)
    program_id: str = Field(alias="programId", min_length=1, max_length=36)
    semester: int = Field(ge=1, le=12)
    section: str = Field(min_length=1, max_length=20)
    day_index: int = Field(alias="dayIndex", ge=0, le=6)
    slot_index: int = Field(alias="slotIndex", ge=0, le=50)
    class_type: ClassType = Field(default=ClassType.lecture, alias="classType")
    class_category: ClassCategory = Field(default=ClassCategory.core, alias="classCategory")
    recurrence: RecurrencePattern = Field(default_factory=RecurrencePattern)
    teacher_ids: list[str] = Field(default_factory=list, alias="teacherIds", max_length=10)
    room_id: str | None = Field(default=None, alias="roomId", max_length=36)

    subject_id: str | None = Field(default=None, alias="subjectId", max_length=36)
    subject_code: str | None = Field(default=None, alias="subjectCode", max_length=20)
    subject_name: str | None = Field(default=None, alias="subjectName", max_length=200)

    elective_group_id: str | None = Field(default=None, alias="electiveGroupId", max_length=36)
    elective_group_name: str | None = Field(default=None, alias="electiveGroupName", max_length=100)
    target_sections: list[str] = Field(default_factory=list, alias="targetSections", max_length=10)

    span_id: str | None = Field(default=None, alias="spanId", max_length=36)
    span_master: bool = Field(default=False, alias="spanMaster")
    span_position: int | None = Field(default=None, alias="spanPosition", ge=1)
    span_total: int | None = Field(default=None, alias="spanTotal", ge=1)

    notes: str | None = Field(default=None, max_length=500)
    is_active: bool = Field(default=True, alias="isActive")

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }

    @field_validator("section")
    @classmethod
    def normalize_section(cls, value: str) -> str:
        section = value.strip().upper()
        if not section:
            raise ValueError("Section cannot be empty")
        return section

    @field_validator("target_sections")
    @classmethod
    def normalize_target_sections(cls, value: list[str]) -> list[str]:
        return _normalize_sections(value)

    @field_validator("teacher_ids")
    @classmethod
    def normalize_teacher_ids(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        cleaned: list[str] = []
        for item in value:
            teacher_id = item.strip()
            if not teacher_id:
                raise ValueError("Teacher id cannot be empty")
            if teacher_id in seen:
                continue
            seen.add(teacher_id)
            cleaned.append(teacher_id)
        return cleaned

    @field_validator("subject_code")
    @classmethod
    def normalize_subject_code(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().upper() or None

    @model_validator(mode="after")
    def validate_assignment(self) -> "ScheduledClass":
        if self.class_type != ClassType.break_:
            if not self.teacher_ids:
                raise ValueError("At least one teacher is required for non-break classes")
            if not self.room_id:
                raise ValueError("A room is required for non-break classes")
        if self.class_category == ClassCategory.elective and not self.elective_group_id:
            raise ValueError("Elective classes require electiveGroupId")
        if self.class_category != ClassCategory.elective and self.elective_group_id:
            raise ValueError("electiveGroupId is only allowed on elective classes")
        return self

    @property
    def visible_sections(self) -> list[str]:
        return _normalize_sections([self.section, *self.target_sections])

    @property
    def is_elective(self) -> bool:
        return self.class_category == ClassCategory.elective


SCHEDULE_FIELDS = ("day_index", "slot_index", "teacher_ids", "room_id", "recurrence")


class RoutineSlotUpdate(BaseModel):
    day_index: int | None = Field(default=None, alias="dayIndex", ge=0, le=6)
    slot_index: int | None = Field(default=None, alias="slotIndex", ge=0, le=50)
    class_type: ClassType | None = Field(default=None, alias="classType")
    recurrence: RecurrencePattern | None = None
    teacher_ids: list[str] | None = Field(default=None, alias="teacherIds", max_length=10)
    room_id: str | None = Field(default=None, alias="roomId", max_length=36)
    subject_id: str | None = Field(default=None, alias="subjectId", max_length=36)
    subject_code: str | None = Field(default=None, alias="subjectCode", max_length=20)
    subject_name: str | None = Field(default=None, alias="subjectName", max_length=200)
    target_sections: list[str] | None = Field(default=None, alias="targetSections", max_length=10)
    notes: str | None = Field(default=None, max_length=500)

    model_config = {"populate_by_name": True}


class ValidationRequest(BaseModel):
    academic_year_id: str = Field(alias="academicYearId", min_length=1, max_length=36)
    slot: ScheduledClass
    exclude_ids: list[str] = Field(default_factory=list, alias="excludeIds", max_length=50)

    model_config = {"populate_by_name": True}


class RoutineSlotCreateRequest(BaseModel):
    academic_year_id: str = Field(alias="academicYearId", min_length=1, max_length=36)
    slot: ScheduledClass

    model_config = {"populate_by_name": True}


class RoutineSlotUpdateRequest(BaseModel):
    academic_year_id: str = Field(alias="academicYearId", min_length=1, max_length=36)
    changes: RoutineSlotUpdate

    model_config = {"populate_by_name": True}


class SpanCommitRequest(BaseModel):
    academic_year_id: str = Field(alias="academicYearId", min_length=1, max_length=36)
    slots: list[ScheduledClass] = Field(min_length=1, max_length=8)

    model_config = {"populate_by_name": True}


class SpanCommitResult(BaseModel):
    span_id: str = Field(alias="spanId")
    created: list[str]

    model_config = {"populate_by_name": True}
