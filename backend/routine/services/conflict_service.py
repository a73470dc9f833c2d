"""Conflict detection for proposed routine slots.

Teacher, room and section checks run independently and are concatenated into one
report. Teacher and room clashes are gated on semester parity; section clashes are not,
because a section is already pinned to one semester. Business conflicts are always
returned as records; only missing teachers or rooms raise.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from routine.core.exceptions import ResourceNotFoundError, ScheduleValidationError, UniquenessViolation
from routine.models.routine_slot import ClassCategory
from routine.schemas.conflict import (
    ConflictReport,
    ElectiveCoreConflict,
    ElectiveOverlapConflict,
    RoomConflict,
    SectionConflict,
    TeacherScheduleConflict,
    TeacherUnavailableDay,
    TeacherUnavailableSlot,
)
from routine.schemas.routine import DAY_NAMES, ScheduledClass
from routine.services.commitments import (
    CommitmentFilter,
    CommitmentStore,
    RoomDirectory,
    TeacherDirectory,
)
from routine.services.recurrence import overlaps, same_semester_group, semester_group

logger = logging.getLogger(__name__)

CORE_CATEGORIES = (ClassCategory.core, ClassCategory.common)
ELECTIVE_CATEGORIES = (ClassCategory.elective,)


def _describe_commitment(existing: ScheduledClass) -> str:
    subject = existing.subject_code or existing.subject_name or "a class"
    return f"{subject} (semester {existing.semester}, section {existing.section})"


class ConflictService:
    def __init__(self, store: CommitmentStore, teachers: TeacherDirectory, rooms: RoomDirectory):
        self.store = store
        self.teachers = teachers
        self.rooms = rooms

    def validate(
        self,
        proposed: ScheduledClass,
        academic_year_id: str,
        *,
        pending: Sequence[ScheduledClass] = (),
        exclude_ids: Iterable[str] = (),
    ) -> ConflictReport:
        """Check a proposal against every active commitment of the academic year.

        `pending` holds classes that are reserved but not yet persisted (earlier members
        of the same span); `exclude_ids` hides commitments being edited in place.
        """
        if proposed.is_elective:
            return self.validate_elective(
                proposed,
                academic_year_id,
                pending=pending,
                exclude_ids=exclude_ids,
            )

        excluded = frozenset(exclude_ids)
        conflicts = []
        conflicts.extend(self._teacher_conflicts(proposed, academic_year_id, pending, excluded))
        conflicts.extend(self._room_conflicts(proposed, academic_year_id, pending, excluded))
        conflicts.extend(self._section_conflicts(proposed, academic_year_id, pending, excluded))
        return ConflictReport(conflicts=conflicts)

    def validate_elective(
        self,
        proposed: ScheduledClass,
        academic_year_id: str,
        *,
        pending: Sequence[ScheduledClass] = (),
        exclude_ids: Iterable[str] = (),
    ) -> ConflictReport:
        """Check an elective broadcast against every section it is shown in.

        Teacher and room checks run once for the proposal. Each visible section must be
        free of core/common classes and of electives from a different elective group.
        Any returned conflict rejects the whole broadcast.
        """
        if not proposed.is_elective:
            raise ScheduleValidationError(
                "Elective validation requires an elective class",
                details={"class_category": proposed.class_category.value},
            )

        excluded = frozenset(exclude_ids)
        conflicts = []
        conflicts.extend(self._teacher_conflicts(proposed, academic_year_id, pending, excluded))
        conflicts.extend(self._room_conflicts(proposed, academic_year_id, pending, excluded))

        for section in proposed.visible_sections:
            cell = dict(
                academic_year_id=academic_year_id,
                day_index=proposed.day_index,
                slot_index=proposed.slot_index,
                program_id=proposed.program_id,
                semester=proposed.semester,
                section=section,
                exclude_ids=excluded,
            )
            for existing in self._commitments(CommitmentFilter(**cell, class_categories=CORE_CATEGORIES), pending):
                if not overlaps(proposed.recurrence, existing.recurrence):
                    continue
                conflicts.append(
                    ElectiveCoreConflict(
                        section=section,
                        existing_commitment_id=existing.id,
                        subject_code=existing.subject_code,
                        message=f"Section {section} has core subject {existing.subject_code or 'class'} at this time",
                    )
                )
            for existing in self._commitments(CommitmentFilter(**cell, class_categories=ELECTIVE_CATEGORIES), pending):
                if existing.elective_group_id == proposed.elective_group_id:
                    continue
                if not overlaps(proposed.recurrence, existing.recurrence):
                    continue
                elective_name = existing.elective_group_name or existing.subject_code or "Unknown elective"
                conflicts.append(
                    ElectiveOverlapConflict(
                        section=section,
                        existing_commitment_id=existing.id,
                        conflicting_elective=elective_name,
                        message=f'Section {section} already has elective "{elective_name}" at this time',
                    )
                )

        return ConflictReport(conflicts=conflicts)

    def conflict_from_violation(self, violation: UniquenessViolation, proposed: ScheduledClass):
        """Express a uniqueness violation raised at commit time as a regular conflict record."""
        group = semester_group(proposed.semester)
        if violation.resource_kind == "room":
            try:
                room_name = self.rooms.get(violation.resource_id).name
            except ResourceNotFoundError:
                room_name = violation.resource_id
            return RoomConflict(
                room_id=violation.resource_id,
                existing_commitment_id=violation.existing_commitment_id,
                semester_group=group,
                message=f"Room {room_name} is already booked at this time in the same semester group",
            )
        try:
            teacher_name = self.teachers.get(violation.resource_id).short_name
        except ResourceNotFoundError:
            teacher_name = violation.resource_id
        return TeacherScheduleConflict(
            teacher_id=violation.resource_id,
            existing_commitment_id=violation.existing_commitment_id,
            semester_group=group,
            message=f"Teacher {teacher_name} already has a class scheduled at this time in the same semester group",
        )

    def _commitments(
        self,
        criteria: CommitmentFilter,
        pending: Sequence[ScheduledClass],
    ) -> list[ScheduledClass]:
        found = self.store.query(criteria)
        found.extend(item for item in pending if criteria.matches(item))
        return found

    def _teacher_conflicts(self, proposed, academic_year_id, pending, excluded) -> list:
        conflicts = []
        day_name = DAY_NAMES[proposed.day_index]
        for teacher_id in proposed.teacher_ids:
            teacher = self.teachers.get(teacher_id)

            if proposed.day_index not in teacher.available_days:
                conflicts.append(
                    TeacherUnavailableDay(
                        teacher_id=teacher_id,
                        day_index=proposed.day_index,
                        message=f"Teacher {teacher.short_name} is not available on {day_name}",
                    )
                )

            blocked = next(
                (
                    item
                    for item in teacher.unavailable_slots
                    if item.day_index == proposed.day_index and item.slot_index == proposed.slot_index
                ),
                None,
            )
            if blocked is not None:
                conflicts.append(
                    TeacherUnavailableSlot(
                        teacher_id=teacher_id,
                        day_index=proposed.day_index,
                        slot_index=proposed.slot_index,
                        reason=blocked.reason,
                        message=f"Teacher {teacher.short_name} is unavailable: {blocked.reason}",
                    )
                )

            criteria = CommitmentFilter(
                academic_year_id=academic_year_id,
                day_index=proposed.day_index,
                slot_index=proposed.slot_index,
                teacher_id=teacher_id,
                exclude_ids=excluded,
            )
            for existing in self._commitments(criteria, pending):
                if not overlaps(proposed.recurrence, existing.recurrence):
                    continue
                if not same_semester_group(proposed.semester, existing.semester):
                    logger.debug(
                        "Teacher %s shared across semester groups (%s vs %s) at day=%s slot=%s",
                        teacher.short_name,
                        proposed.semester,
                        existing.semester,
                        proposed.day_index,
                        proposed.slot_index,
                    )
                    continue
                conflicts.append(
                    TeacherScheduleConflict(
                        teacher_id=teacher_id,
                        existing_commitment_id=existing.id,
                        semester_group=semester_group(proposed.semester),
                        message=(
                            f"Teacher {teacher.short_name} already teaches {_describe_commitment(existing)} "
                            "at this time in the same semester group"
                        ),
                    )
                )
        return conflicts

    def _room_conflicts(self, proposed, academic_year_id, pending, excluded) -> list:
        if not proposed.room_id:
            return []
        room = self.rooms.get(proposed.room_id)
        criteria = CommitmentFilter(
            academic_year_id=academic_year_id,
            day_index=proposed.day_index,
            slot_index=proposed.slot_index,
            room_id=proposed.room_id,
            exclude_ids=excluded,
        )
        conflicts = []
        for existing in self._commitments(criteria, pending):
            if not overlaps(proposed.recurrence, existing.recurrence):
                continue
            if not same_semester_group(proposed.semester, existing.semester):
                logger.debug(
                    "Room %s shared across semester groups (%s vs %s) at day=%s slot=%s",
                    room.name,
                    proposed.semester,
                    existing.semester,
                    proposed.day_index,
                    proposed.slot_index,
                )
                continue
            conflicts.append(
                RoomConflict(
                    room_id=proposed.room_id,
                    existing_commitment_id=existing.id,
                    semester_group=semester_group(proposed.semester),
                    message=(
                        f"Room {room.name} is already booked for {_describe_commitment(existing)} "
                        "at this time in the same semester group"
                    ),
                )
            )
        return conflicts

    def _section_conflicts(self, proposed, academic_year_id, pending, excluded) -> list:
        conflicts = []
        for section in proposed.visible_sections:
            criteria = CommitmentFilter(
                academic_year_id=academic_year_id,
                day_index=proposed.day_index,
                slot_index=proposed.slot_index,
                program_id=proposed.program_id,
                semester=proposed.semester,
                section=section,
                exclude_ids=excluded,
            )
            for existing in self._commitments(criteria, pending):
                if not overlaps(proposed.recurrence, existing.recurrence):
                    continue
                conflicts.append(
                    SectionConflict(
                        section=section,
                        existing_commitment_id=existing.id,
                        message=f"Section {section} already has {_describe_commitment(existing)} at this time",
                    )
                )
        return conflicts
