from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from routine.models.routine_slot import ClassType


class AvailabilityConstraints(BaseModel):
    min_duration: int = Field(default=1, alias="minDuration", ge=1, le=50)
    exclude_days: List[int] = Field(default_factory=list, alias="excludeDays", max_length=7)
    semester_group: Literal["odd", "even", "all"] = Field(default="all", alias="semesterGroup")

    model_config = {"populate_by_name": True}

    @field_validator("exclude_days")
    @classmethod
    def validate_exclude_days(cls, value: List[int]) -> List[int]:
        invalid = [day for day in value if day < 0 or day > 6]
        if invalid:
            raise ValueError(f"Day indexes must be between 0 and 6, got {invalid}")
        return sorted(set(value))


class MeetingSlotsRequest(AvailabilityConstraints):
    academic_year_id: str = Field(alias="academicYearId", min_length=1, max_length=36)
    teacher_ids: List[str] = Field(alias="teacherIds", min_length=1, max_length=50)


class CommitmentSummary(BaseModel):
    id: str
    subject_code: Optional[str] = Field(default=None, alias="subjectCode")
    subject_name: Optional[str] = Field(default=None, alias="subjectName")
    room_id: Optional[str] = Field(default=None, alias="roomId")
    room_name: Optional[str] = Field(default=None, alias="roomName")
    program_id: str = Field(alias="programId")
    semester: int
    section: str
    class_type: ClassType = Field(alias="classType")

    model_config = {"populate_by_name": True}


class BusyTeacher(BaseModel):
    teacher_id: str = Field(alias="teacherId")
    teacher_name: str = Field(alias="teacherName")
    reason: str
    commitment: CommitmentSummary
    commitments: List[CommitmentSummary] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class AvailableTeacher(BaseModel):
    teacher_id: str = Field(alias="teacherId")
    teacher_name: str = Field(alias="teacherName")
    teacher_short_name: str = Field(alias="teacherShortName")

    model_config = {"populate_by_name": True}


class AvailabilityCell(BaseModel):
    day: int
    day_name: str = Field(alias="dayName")
    slot: int
    is_common_free: bool = Field(alias="isCommonFree")
    conflict_level: Literal["none", "partial", "full"] = Field(alias="conflictLevel")
    busy_teachers: List[BusyTeacher] = Field(default_factory=list, alias="busyTeachers")
    available_teachers: List[AvailableTeacher] = Field(default_factory=list, alias="availableTeachers")

    model_config = {"populate_by_name": True}


class CommonFreeSlot(BaseModel):
    """A run of adjacent common-free cells on one day, starting at `slot`."""

    day: int
    day_name: str = Field(alias="dayName")
    slot: int
    duration: int
    slot_indexes: List[int] = Field(alias="slotIndexes")

    model_config = {"populate_by_name": True}


class BusySlot(BaseModel):
    day: int
    day_name: str = Field(alias="dayName")
    slot: int
    busy_teachers: List[BusyTeacher] = Field(alias="busyTeachers")

    model_config = {"populate_by_name": True}


class AvailabilityStatistics(BaseModel):
    total_slots: int = Field(alias="totalSlots")
    available_slots: int = Field(alias="availableSlots")
    unavailable_slots: int = Field(alias="unavailableSlots")
    availability_percentage: float = Field(alias="availabilityPercentage")
    partially_available_slots: int = Field(alias="partiallyAvailableSlots")
    fully_unavailable_slots: int = Field(alias="fullyUnavailableSlots")
    recommended_runs: int = Field(alias="recommendedRuns")

    model_config = {"populate_by_name": True}


class DayRecommendation(BaseModel):
    day: int
    day_name: str = Field(alias="dayName")
    available_slots: int = Field(alias="availableSlots")

    model_config = {"populate_by_name": True}


class SlotRecommendation(BaseModel):
    slot: int
    label: str
    count: int


class AvailabilityRecommendations(BaseModel):
    best_days: List[DayRecommendation] = Field(default_factory=list, alias="bestDays")
    best_slots: List[SlotRecommendation] = Field(default_factory=list, alias="bestSlots")

    model_config = {"populate_by_name": True}


class AvailabilityReport(BaseModel):
    teacher_ids: List[str] = Field(alias="teacherIds")
    constraints: AvailabilityConstraints
    days_searched: List[str] = Field(alias="daysSearched")
    statistics: AvailabilityStatistics
    common_free_slots: List[CommonFreeSlot] = Field(default_factory=list, alias="commonFreeSlots")
    busy_slots: List[BusySlot] = Field(default_factory=list, alias="busySlots")
    cells: List[AvailabilityCell] = Field(default_factory=list)
    recommendations: AvailabilityRecommendations = Field(default_factory=AvailabilityRecommendations)

    model_config = {"populate_by_name": True}
