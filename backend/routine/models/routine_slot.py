import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum as SAEnum,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from routine.db.base import Base


class ClassType(str, Enum):
    lecture = "lecture"
    practical = "practical"
    tutorial = "tutorial"
    break_ = "break"


class ClassCategory(str, Enum):
    core = "core"
    elective = "elective"
    common = "common"


class RecurrenceType(str, Enum):
    weekly = "weekly"
    alternate = "alternate"
    custom = "custom"


class WeekParity(str, Enum):
    odd = "odd"
    even = "even"


class ClaimKind(str, Enum):
    teacher = "teacher"
    room = "room"


class RoutineSlot(Base):
    __tablename__ = "routine_slots"
    __table_args__ = (
        Index(
            "ix_routine_slots_section_cell",
            "academic_year_id",
            "program_id",
            "semester",
            "day_index",
            "slot_index",
        ),
        Index("ix_routine_slots_room_cell", "academic_year_id", "room_id", "day_index", "slot_index"),
        Index("ix_routine_slots_span", "span_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    academic_year_id: Mapped[str] = mapped_column(String(36), nullable=False)
    program_id: Mapped[str] = mapped_column(String(36), nullable=False)
    semester: Mapped[int] = mapped_column(Integer, nullable=False)
    semester_group: Mapped[WeekParity] = mapped_column(SAEnum(WeekParity, name="semester_group"), nullable=False)
    section: Mapped[str] = mapped_column(String(20), nullable=False)
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_index: Mapped[int] = mapped_column(Integer, nullable=False)

    subject_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    subject_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    subject_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    class_type: Mapped[ClassType] = mapped_column(
        SAEnum(ClassType, name="class_type", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        default=ClassType.lecture,
    )
    class_category: Mapped[ClassCategory] = mapped_column(
        SAEnum(ClassCategory, name="class_category"),
        nullable=False,
        default=ClassCategory.core,
    )
    room_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    recurrence_type: Mapped[RecurrenceType] = mapped_column(
        SAEnum(RecurrenceType, name="recurrence_type"),
        nullable=False,
        default=RecurrenceType.weekly,
    )
    recurrence_pattern: Mapped[WeekParity | None] = mapped_column(
        SAEnum(WeekParity, name="recurrence_pattern"),
        nullable=True,
    )
    custom_weeks: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    recurrence_description: Mapped[str | None] = mapped_column(String(100), nullable=True)

    elective_group_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    elective_group_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    span_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    span_master: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    span_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    span_total: Mapped[int | None] = mapped_column(Integer, nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class RoutineSlotTeacher(Base):
    __tablename__ = "routine_slot_teachers"

    routine_slot_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    teacher_id: Mapped[str] = mapped_column(String(36), primary_key=True, index=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RoutineSlotSection(Base):
    """Every section whose routine shows the class: its own section plus broadcast targets."""

    __tablename__ = "routine_slot_sections"

    routine_slot_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    section: Mapped[str] = mapped_column(String(20), primary_key=True, index=True)
    is_target: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class RoutineSlotClaim(Base):
    """One occupied term week of a teacher or room by an active routine slot.

    The unique constraint is the persistence-side backstop for double booking: two
    claims collide exactly when their week sets intersect within the same semester group.
    """

    __tablename__ = "routine_slot_claims"
    __table_args__ = (
        UniqueConstraint(
            "resource_kind",
            "resource_id",
            "academic_year_id",
            "day_index",
            "slot_index",
            "week_number",
            "semester_group",
            name="uq_routine_slot_claims_resource_cell_week",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    routine_slot_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    resource_kind: Mapped[ClaimKind] = mapped_column(SAEnum(ClaimKind, name="claim_kind"), nullable=False)
    resource_id: Mapped[str] = mapped_column(String(36), nullable=False)
    academic_year_id: Mapped[str] = mapped_column(String(36), nullable=False)
    day_index: Mapped[int] = mapped_column(Integer, nullable=False)
    slot_index: Mapped[int] = mapped_column(Integer, nullable=False)
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    semester_group: Mapped[WeekParity] = mapped_column(
        SAEnum(WeekParity, name="claim_semester_group"),
        nullable=False,
    )
