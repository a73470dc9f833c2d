from __future__ import annotations

import logging

from pydantic import ValidationError

from routine.core.exceptions import ResourceNotFoundError, ScheduleValidationError, UniquenessViolation
from routine.schemas.conflict import ConflictReport
from routine.schemas.routine import SCHEDULE_FIELDS, RoutineSlotUpdate, ScheduledClass
from routine.services.commitments import CommitmentFilter, CommitmentStore
from routine.services.conflict_service import ConflictService
from routine.services.recurrence import applies_to_week

logger = logging.getLogger(__name__)


class RoutineSlotService:
    """Lifecycle of single routine slots: create, edit, cancel, list."""

    def __init__(self, store: CommitmentStore, validator: ConflictService):
        self.store = store
        self.validator = validator

    def create(self, proposed: ScheduledClass, academic_year_id: str) -> ScheduledClass | ConflictReport:
        if proposed.span_id:
            raise ScheduleValidationError(
                "Spanned classes must be committed through the span endpoint",
                details={"span_id": proposed.span_id},
            )
        report = self.validator.validate(proposed, academic_year_id)
        if report.has_conflicts:
            return report
        try:
            slot_id = self.store.create(proposed, academic_year_id)
        except UniquenessViolation as exc:
            logger.warning(
                "Late conflict on %s %s while creating slot (day=%s slot=%s)",
                exc.resource_kind,
                exc.resource_id,
                proposed.day_index,
                proposed.slot_index,
            )
            return ConflictReport(conflicts=[self.validator.conflict_from_violation(exc, proposed)])
        return self.store.get(slot_id)

    def update(
        self,
        slot_id: str,
        changes: RoutineSlotUpdate,
        academic_year_id: str,
    ) -> ScheduledClass | ConflictReport:
        existing = self._get_active(slot_id)
        data = changes.model_dump(exclude_unset=True)
        if not data:
            return existing

        try:
            merged = ScheduledClass.model_validate({**existing.model_dump(), **data})
        except ValidationError as exc:
            raise ScheduleValidationError(
                "Updated routine slot is not a valid class",
                details={
                    "slot_id": slot_id,
                    "errors": [{"loc": list(error["loc"]), "msg": error["msg"]} for error in exc.errors()],
                },
            ) from exc
        rescheduled = [
            name for name in (*SCHEDULE_FIELDS, "target_sections") if getattr(merged, name) != getattr(existing, name)
        ]
        if rescheduled and existing.span_id:
            raise ScheduleValidationError(
                "Spanned classes cannot be rescheduled one slot at a time; cancel and recreate the span",
                details={"span_id": existing.span_id, "fields": rescheduled},
            )
        if rescheduled:
            report = self.validator.validate(merged, academic_year_id, exclude_ids={slot_id})
            if report.has_conflicts:
                return report

        try:
            self.store.replace(slot_id, merged, academic_year_id)
        except UniquenessViolation as exc:
            logger.warning("Late conflict on %s %s while updating slot %s", exc.resource_kind, exc.resource_id, slot_id)
            return ConflictReport(conflicts=[self.validator.conflict_from_violation(exc, merged)])
        logger.info("Updated routine slot %s (%s)", slot_id, ", ".join(sorted(data)))
        return self.store.get(slot_id)

    def cancel(self, slot_id: str) -> list[str]:
        """Soft-deactivate a slot; a span member takes its whole span with it."""
        existing = self._get_active(slot_id)
        if existing.span_id:
            return self.cancel_span(existing.span_id)
        self.store.deactivate(slot_id)
        logger.info("Cancelled routine slot %s", slot_id)
        return [slot_id]

    def cancel_span(self, span_id: str) -> list[str]:
        members = [item for item in self.store.span_members(span_id) if item.is_active]
        if not members:
            raise ResourceNotFoundError("Span", span_id)
        for member in members:
            self.store.deactivate(member.id)
        cancelled = [member.id for member in members]
        logger.info("Cancelled span %s (%d member(s))", span_id, len(cancelled))
        return cancelled

    def list_slots(
        self,
        academic_year_id: str,
        *,
        program_id: str | None = None,
        semester: int | None = None,
        section: str | None = None,
        teacher_id: str | None = None,
        room_id: str | None = None,
        day_index: int | None = None,
        week_number: int | None = None,
    ) -> list[ScheduledClass]:
        criteria = CommitmentFilter(
            academic_year_id=academic_year_id,
            day_index=day_index,
            teacher_id=teacher_id,
            room_id=room_id,
            program_id=program_id,
            semester=semester,
            section=section.strip().upper() if section else None,
        )
        items = self.store.query(criteria)
        if week_number is not None:
            items = [item for item in items if applies_to_week(item.recurrence, week_number)]
        return items

    def _get_active(self, slot_id: str) -> ScheduledClass:
        existing = self.store.get(slot_id)
        if existing is None or not existing.is_active:
            raise ResourceNotFoundError("Routine slot", slot_id)
        return existing
