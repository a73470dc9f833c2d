from pydantic import BaseModel, EmailStr, Field, field_validator


class UnavailableSlotIn(BaseModel):
    day_index: int = Field(ge=0, le=6)
    slot_index: int = Field(ge=0, le=50)
    reason: str = Field(default="Unavailable", min_length=1, max_length=200)


def _normalize_days(value: list[int] | None) -> list[int] | None:
    if value is None:
        return None
    invalid = [day for day in value if day < 0 or day > 6]
    if invalid:
        raise ValueError(f"Day indexes must be between 0 and 6, got {invalid}")
    return sorted(set(value))


class TeacherBase(BaseModel):
    short_name: str = Field(min_length=1, max_length=10)
    full_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    department: str = Field(min_length=1, max_length=200)
    designation: str = Field(default="Lecturer", min_length=1, max_length=100)
    max_weekly_hours: int = Field(default=16, ge=1, le=60)
    available_days: list[int] = Field(default_factory=list, max_length=7)
    unavailable_slots: list[UnavailableSlotIn] = Field(default_factory=list, max_length=100)

    @field_validator("short_name")
    @classmethod
    def normalize_short_name(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("available_days")
    @classmethod
    def validate_available_days(cls, value: list[int]) -> list[int]:
        return _normalize_days(value)


class TeacherCreate(TeacherBase):
    pass


class TeacherUpdate(BaseModel):
    short_name: str | None = Field(default=None, min_length=1, max_length=10)
    full_name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    department: str | None = Field(default=None, min_length=1, max_length=200)
    designation: str | None = Field(default=None, min_length=1, max_length=100)
    max_weekly_hours: int | None = Field(default=None, ge=1, le=60)
    available_days: list[int] | None = Field(default=None, max_length=7)
    unavailable_slots: list[UnavailableSlotIn] | None = Field(default=None, max_length=100)
    is_active: bool | None = None

    @field_validator("short_name")
    @classmethod
    def normalize_optional_short_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().upper()

    @field_validator("available_days")
    @classmethod
    def validate_optional_available_days(cls, value: list[int] | None) -> list[int] | None:
        return _normalize_days(value)


class TeacherOut(TeacherBase):
    id: str
    is_active: bool

    model_config = {"from_attributes": True}
