"""Read/write access to committed routine slots and the teacher/room directories.

The conflict engine only talks to the `CommitmentStore`, `TeacherDirectory` and
`RoomDirectory` protocols. The SQL implementations below are the reference store used
by the API; `routine_slot_claims` carries the unique constraint that settles
check-then-act races between concurrent writers.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from routine.core.config import get_settings
from routine.core.exceptions import ResourceNotFoundError, UniquenessViolation
from routine.models.room import Room
from routine.models.routine_slot import (
    ClaimKind,
    ClassCategory,
    RoutineSlot,
    RoutineSlotClaim,
    RoutineSlotSection,
    RoutineSlotTeacher,
    WeekParity,
)
from routine.models.teacher import Teacher
from routine.schemas.routine import RecurrencePattern, ScheduledClass
from routine.services.recurrence import describe, resolve_weeks, semester_group

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitmentFilter:
    academic_year_id: str
    day_index: int | None = None
    slot_index: int | None = None
    teacher_id: str | None = None
    room_id: str | None = None
    program_id: str | None = None
    semester: int | None = None
    section: str | None = None
    class_categories: tuple[ClassCategory, ...] | None = None
    exclude_ids: frozenset[str] = field(default_factory=frozenset)

    def matches(self, item: ScheduledClass) -> bool:
        """Apply the filter to an in-memory class (pending span members, fakes)."""
        if not item.is_active:
            return False
        if item.id is not None and item.id in self.exclude_ids:
            return False
        if self.day_index is not None and item.day_index != self.day_index:
            return False
        if self.slot_index is not None and item.slot_index != self.slot_index:
            return False
        if self.teacher_id is not None and self.teacher_id not in item.teacher_ids:
            return False
        if self.room_id is not None and item.room_id != self.room_id:
            return False
        if self.program_id is not None and item.program_id != self.program_id:
            return False
        if self.semester is not None and item.semester != self.semester:
            return False
        if self.section is not None and self.section not in item.visible_sections:
            return False
        if self.class_categories is not None and item.class_category not in self.class_categories:
            return False
        return True


@dataclass(frozen=True)
class UnavailableSlot:
    day_index: int
    slot_index: int
    reason: str


@dataclass(frozen=True)
class TeacherAvailability:
    id: str
    short_name: str
    full_name: str
    available_days: frozenset[int]
    unavailable_slots: tuple[UnavailableSlot, ...]
    max_weekly_hours: int


@dataclass(frozen=True)
class RoomInfo:
    id: str
    name: str


class CommitmentStore(Protocol):
    def query(self, criteria: CommitmentFilter) -> list[ScheduledClass]: ...

    def get(self, commitment_id: str) -> ScheduledClass | None: ...

    def create(self, record: ScheduledClass, academic_year_id: str) -> str: ...

    def replace(self, commitment_id: str, record: ScheduledClass, academic_year_id: str) -> None: ...

    def deactivate(self, commitment_id: str) -> None: ...

    def delete(self, commitment_id: str) -> None: ...

    def span_members(self, span_id: str) -> list[ScheduledClass]: ...


class TeacherDirectory(Protocol):
    def get(self, teacher_id: str) -> TeacherAvailability: ...


class RoomDirectory(Protocol):
    def get(self, room_id: str) -> RoomInfo: ...


class SqlTeacherDirectory:
    def __init__(self, db: Session, default_available_days: Iterable[int] | None = None):
        self.db = db
        if default_available_days is None:
            default_available_days = get_settings().default_available_days
        self.default_available_days = frozenset(default_available_days)

    def get(self, teacher_id: str) -> TeacherAvailability:
        teacher = self.db.get(Teacher, teacher_id)
        if teacher is None or not teacher.is_active:
            raise ResourceNotFoundError("Teacher", teacher_id)
        available_days = frozenset(teacher.available_days or ()) or self.default_available_days
        unavailable = tuple(
            UnavailableSlot(
                day_index=int(item.get("day_index", -1)),
                slot_index=int(item.get("slot_index", -1)),
                reason=str(item.get("reason") or "Unavailable"),
            )
            for item in (teacher.unavailable_slots or [])
        )
        return TeacherAvailability(
            id=teacher.id,
            short_name=teacher.short_name,
            full_name=teacher.full_name,
            available_days=available_days,
            unavailable_slots=unavailable,
            max_weekly_hours=teacher.max_weekly_hours,
        )


class SqlRoomDirectory:
    def __init__(self, db: Session):
        self.db = db

    def get(self, room_id: str) -> RoomInfo:
        room = self.db.get(Room, room_id)
        if room is None or not room.is_active:
            raise ResourceNotFoundError("Room", room_id)
        return RoomInfo(id=room.id, name=room.name)


class SqlCommitmentStore:
    def __init__(self, db: Session):
        self.db = db

    def query(self, criteria: CommitmentFilter) -> list[ScheduledClass]:
        query = select(RoutineSlot).where(
            RoutineSlot.academic_year_id == criteria.academic_year_id,
            RoutineSlot.is_active.is_(True),
        )
        if criteria.day_index is not None:
            query = query.where(RoutineSlot.day_index == criteria.day_index)
        if criteria.slot_index is not None:
            query = query.where(RoutineSlot.slot_index == criteria.slot_index)
        if criteria.room_id is not None:
            query = query.where(RoutineSlot.room_id == criteria.room_id)
        if criteria.program_id is not None:
            query = query.where(RoutineSlot.program_id == criteria.program_id)
        if criteria.semester is not None:
            query = query.where(RoutineSlot.semester == criteria.semester)
        if criteria.class_categories is not None:
            query = query.where(RoutineSlot.class_category.in_(criteria.class_categories))
        if criteria.exclude_ids:
            query = query.where(RoutineSlot.id.not_in(sorted(criteria.exclude_ids)))
        if criteria.teacher_id is not None:
            query = query.join(
                RoutineSlotTeacher,
                RoutineSlotTeacher.routine_slot_id == RoutineSlot.id,
            ).where(RoutineSlotTeacher.teacher_id == criteria.teacher_id)
        if criteria.section is not None:
            query = query.join(
                RoutineSlotSection,
                RoutineSlotSection.routine_slot_id == RoutineSlot.id,
            ).where(RoutineSlotSection.section == criteria.section)
        query = query.order_by(RoutineSlot.day_index, RoutineSlot.slot_index, RoutineSlot.id)
        rows = list(self.db.execute(query).scalars().unique())
        return self._hydrate(rows)

    def get(self, commitment_id: str) -> ScheduledClass | None:
        row = self.db.get(RoutineSlot, commitment_id)
        if row is None:
            return None
        return self._hydrate([row])[0]

    def span_members(self, span_id: str) -> list[ScheduledClass]:
        rows = list(
            self.db.execute(
                select(RoutineSlot)
                .where(RoutineSlot.span_id == span_id)
                .order_by(RoutineSlot.slot_index, RoutineSlot.id)
            ).scalars()
        )
        return self._hydrate(rows)

    def create(self, record: ScheduledClass, academic_year_id: str) -> str:
        slot_id = record.id or str(uuid.uuid4())
        row = RoutineSlot(
            id=slot_id,
            academic_year_id=academic_year_id,
            semester_group=WeekParity(semester_group(record.semester)),
            **self._row_values(record),
        )
        self.db.add(row)
        try:
            self.db.flush()
            self._write_links(slot_id, record)
            self._write_claims(slot_id, record, academic_year_id)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            violation = self._locate_violation(record, academic_year_id)
            if violation is None:
                raise
            raise violation from exc
        except Exception:
            self.db.rollback()
            raise
        logger.info(
            "Committed routine slot %s (program=%s semester=%s section=%s day=%s slot=%s)",
            slot_id,
            record.program_id,
            record.semester,
            record.section,
            record.day_index,
            record.slot_index,
        )
        return slot_id

    def replace(self, commitment_id: str, record: ScheduledClass, academic_year_id: str) -> None:
        row = self.db.get(RoutineSlot, commitment_id)
        if row is None:
            raise ResourceNotFoundError("Routine slot", commitment_id)
        try:
            self._clear_links(commitment_id)
            self._release_claims(commitment_id)
            for key, value in self._row_values(record).items():
                setattr(row, key, value)
            row.semester_group = WeekParity(semester_group(record.semester))
            row.is_active = True
            self.db.flush()
            self._write_links(commitment_id, record)
            self._write_claims(commitment_id, record, academic_year_id)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            violation = self._locate_violation(record, academic_year_id, exclude_id=commitment_id)
            if violation is None:
                raise
            raise violation from exc
        except Exception:
            self.db.rollback()
            raise

    def deactivate(self, commitment_id: str) -> None:
        row = self.db.get(RoutineSlot, commitment_id)
        if row is None:
            raise ResourceNotFoundError("Routine slot", commitment_id)
        try:
            row.is_active = False
            self._release_claims(commitment_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def delete(self, commitment_id: str) -> None:
        try:
            self._clear_links(commitment_id)
            self._release_claims(commitment_id)
            self.db.execute(delete(RoutineSlot).where(RoutineSlot.id == commitment_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def _row_values(self, record: ScheduledClass) -> dict:
        return {
            "program_id": record.program_id,
            "semester": record.semester,
            "section": record.section,
            "day_index": record.day_index,
            "slot_index": record.slot_index,
            "subject_id": record.subject_id,
            "subject_code": record.subject_code,
            "subject_name": record.subject_name,
            "class_type": record.class_type,
            "class_category": record.class_category,
            "room_id": record.room_id,
            "recurrence_type": record.recurrence.type,
            "recurrence_pattern": record.recurrence.pattern,
            "custom_weeks": list(record.recurrence.custom_weeks),
            "recurrence_description": record.recurrence.description or describe(record.recurrence),
            "elective_group_id": record.elective_group_id,
            "elective_group_name": record.elective_group_name,
            "span_id": record.span_id,
            "span_master": record.span_master,
            "span_position": record.span_position,
            "span_total": record.span_total,
            "notes": record.notes,
        }

    def _write_links(self, slot_id: str, record: ScheduledClass) -> None:
        for position, teacher_id in enumerate(record.teacher_ids):
            self.db.add(RoutineSlotTeacher(routine_slot_id=slot_id, teacher_id=teacher_id, position=position))
        for section in record.visible_sections:
            self.db.add(
                RoutineSlotSection(
                    routine_slot_id=slot_id,
                    section=section,
                    is_target=section in record.target_sections,
                )
            )
        self.db.flush()

    def _claim_keys(self, record: ScheduledClass) -> list[tuple[ClaimKind, str]]:
        keys = [(ClaimKind.teacher, teacher_id) for teacher_id in record.teacher_ids]
        if record.room_id:
            keys.append((ClaimKind.room, record.room_id))
        return keys

    def _write_claims(self, slot_id: str, record: ScheduledClass, academic_year_id: str) -> None:
        group = WeekParity(semester_group(record.semester))
        weeks = sorted(resolve_weeks(record.recurrence))
        for kind, resource_id in self._claim_keys(record):
            for week in weeks:
                self.db.add(
                    RoutineSlotClaim(
                        routine_slot_id=slot_id,
                        resource_kind=kind,
                        resource_id=resource_id,
                        academic_year_id=academic_year_id,
                        day_index=record.day_index,
                        slot_index=record.slot_index,
                        week_number=week,
                        semester_group=group,
                    )
                )
            # Flush per resource so the violation surfaces on the first colliding claim.
            self.db.flush()

    def _clear_links(self, slot_id: str) -> None:
        self.db.execute(delete(RoutineSlotTeacher).where(RoutineSlotTeacher.routine_slot_id == slot_id))
        self.db.execute(delete(RoutineSlotSection).where(RoutineSlotSection.routine_slot_id == slot_id))

    def _release_claims(self, slot_id: str) -> None:
        self.db.execute(delete(RoutineSlotClaim).where(RoutineSlotClaim.routine_slot_id == slot_id))

    def _locate_violation(
        self,
        record: ScheduledClass,
        academic_year_id: str,
        exclude_id: str | None = None,
    ) -> UniquenessViolation | None:
        keys = self._claim_keys(record)
        if not keys:
            return None
        group = WeekParity(semester_group(record.semester))
        weeks = sorted(resolve_weeks(record.recurrence))
        for kind, resource_id in keys:
            query = select(RoutineSlotClaim.routine_slot_id).where(
                RoutineSlotClaim.resource_kind == kind,
                RoutineSlotClaim.resource_id == resource_id,
                RoutineSlotClaim.academic_year_id == academic_year_id,
                RoutineSlotClaim.day_index == record.day_index,
                RoutineSlotClaim.slot_index == record.slot_index,
                RoutineSlotClaim.semester_group == group,
                RoutineSlotClaim.week_number.in_(weeks),
            )
            if exclude_id is not None:
                query = query.where(RoutineSlotClaim.routine_slot_id != exclude_id)
            existing_id = self.db.execute(query.limit(1)).scalar_one_or_none()
            if existing_id is not None:
                return UniquenessViolation(kind.value, resource_id, existing_id)
        # Raced against a writer that has since released its claim; report the first resource.
        kind, resource_id = keys[0]
        return UniquenessViolation(kind.value, resource_id, None)

    def _hydrate(self, rows: Sequence[RoutineSlot]) -> list[ScheduledClass]:
        if not rows:
            return []
        slot_ids = [row.id for row in rows]
        teachers_by_slot: dict[str, list[str]] = defaultdict(list)
        for link in self.db.execute(
            select(RoutineSlotTeacher)
            .where(RoutineSlotTeacher.routine_slot_id.in_(slot_ids))
            .order_by(RoutineSlotTeacher.position)
        ).scalars():
            teachers_by_slot[link.routine_slot_id].append(link.teacher_id)
        targets_by_slot: dict[str, list[str]] = defaultdict(list)
        for link in self.db.execute(
            select(RoutineSlotSection)
            .where(
                RoutineSlotSection.routine_slot_id.in_(slot_ids),
                RoutineSlotSection.is_target.is_(True),
            )
            .order_by(RoutineSlotSection.section)
        ).scalars():
            targets_by_slot[link.routine_slot_id].append(link.section)

        items: list[ScheduledClass] = []
        for row in rows:
            items.append(
                ScheduledClass.model_construct(
                    id=row.id,
                    program_id=row.program_id,
                    semester=row.semester,
                    section=row.section,
                    day_index=row.day_index,
                    slot_index=row.slot_index,
                    class_type=row.class_type,
                    class_category=row.class_category,
                    recurrence=RecurrencePattern.model_construct(
                        type=row.recurrence_type,
                        pattern=row.recurrence_pattern,
                        custom_weeks=list(row.custom_weeks or []),
                        description=row.recurrence_description,
                    ),
                    teacher_ids=teachers_by_slot.get(row.id, []),
                    room_id=row.room_id,
                    subject_id=row.subject_id,
                    subject_code=row.subject_code,
                    subject_name=row.subject_name,
                    elective_group_id=row.elective_group_id,
                    elective_group_name=row.elective_group_name,
                    target_sections=targets_by_slot.get(row.id, []),
                    span_id=row.span_id,
                    span_master=row.span_master,
                    span_position=row.span_position,
                    span_total=row.span_total,
                    notes=row.notes,
                    is_active=row.is_active,
                )
            )
        return items
