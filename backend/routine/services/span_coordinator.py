from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from routine.core.exceptions import PartialSpanError, ScheduleValidationError, UniquenessViolation
from routine.schemas.conflict import ConflictReport
from routine.schemas.routine import ScheduledClass, SpanCommitResult
from routine.services.commitments import CommitmentStore
from routine.services.conflict_service import ConflictService

logger = logging.getLogger(__name__)

MAX_SPAN_LENGTH = 8

# Fields every member of a span must agree on; only slot_index and span bookkeeping vary.
SHARED_SPAN_FIELDS = (
    "program_id",
    "semester",
    "section",
    "day_index",
    "class_type",
    "class_category",
    "recurrence",
    "teacher_ids",
    "room_id",
    "subject_id",
    "subject_code",
    "elective_group_id",
    "target_sections",
)


class SpanCoordinator:
    """Validate and persist a multi-period class as one unit.

    Members are validated against the store plus the members reserved before them.
    Persistence runs in slot order; a failure part-way deletes the members already
    created, newest first, before the error is returned.
    """

    def __init__(self, store: CommitmentStore, validator: ConflictService):
        self.store = store
        self.validator = validator

    def validate_and_commit(
        self,
        slots: Sequence[ScheduledClass],
        academic_year_id: str,
    ) -> SpanCommitResult | ConflictReport:
        span_id, members = self._prepare(slots)

        reserved: list[ScheduledClass] = []
        for member in members:
            report = self.validator.validate(member, academic_year_id, pending=reserved)
            if report.has_conflicts:
                logger.info(
                    "Span %s rejected at slot %s with %d conflict(s)",
                    span_id,
                    member.slot_index,
                    len(report.conflicts),
                )
                return report
            reserved.append(member)

        created: list[str] = []
        for member in members:
            try:
                created.append(self.store.create(member, academic_year_id))
            except UniquenessViolation as exc:
                logger.warning(
                    "Span %s lost a race at slot %s on %s %s",
                    span_id,
                    member.slot_index,
                    exc.resource_kind,
                    exc.resource_id,
                )
                self._rollback(span_id, created, exc)
                return ConflictReport(conflicts=[self.validator.conflict_from_violation(exc, member)])
            except Exception as exc:
                self._rollback(span_id, created, exc)
                raise

        logger.info("Committed span %s with %d member(s)", span_id, len(created))
        return SpanCommitResult(span_id=span_id, created=created)

    def _prepare(self, slots: Sequence[ScheduledClass]) -> tuple[str, list[ScheduledClass]]:
        if not slots:
            raise ScheduleValidationError("A span requires at least one slot")
        if len(slots) > MAX_SPAN_LENGTH:
            raise ScheduleValidationError(
                f"A span cannot cover more than {MAX_SPAN_LENGTH} slots",
                details={"requested": len(slots)},
            )

        ordered = sorted(slots, key=lambda item: item.slot_index)
        first = ordered[0]
        for item in ordered[1:]:
            mismatched = [name for name in SHARED_SPAN_FIELDS if getattr(item, name) != getattr(first, name)]
            if mismatched:
                raise ScheduleValidationError(
                    "All members of a span must share the same class details",
                    details={"slot_index": item.slot_index, "fields": mismatched},
                )

        indexes = [item.slot_index for item in ordered]
        if indexes != list(range(indexes[0], indexes[0] + len(indexes))):
            raise ScheduleValidationError(
                "Span slots must be contiguous",
                details={"slot_indexes": indexes},
            )

        span_ids = {item.span_id for item in ordered if item.span_id}
        if len(span_ids) > 1:
            raise ScheduleValidationError(
                "Span members carry different span ids",
                details={"span_ids": sorted(span_ids)},
            )
        if span_ids:
            span_id = span_ids.pop()
            if self.store.span_members(span_id):
                raise ScheduleValidationError(
                    "Span id is already in use",
                    details={"span_id": span_id},
                )
        else:
            span_id = str(uuid.uuid4())

        total = len(ordered)
        members = [
            item.model_copy(
                update={
                    "id": str(uuid.uuid4()),
                    "span_id": span_id,
                    "span_master": position == 1,
                    "span_position": position,
                    "span_total": total,
                }
            )
            for position, item in enumerate(ordered, start=1)
        ]
        return span_id, members

    def _rollback(self, span_id: str, created: list[str], cause: Exception) -> None:
        orphaned: list[str] = []
        for commitment_id in reversed(created):
            try:
                self.store.delete(commitment_id)
            except Exception:
                logger.exception("Failed to roll back member %s of span %s", commitment_id, span_id)
                orphaned.append(commitment_id)
        if orphaned:
            logger.critical("Span %s left %d orphaned member(s): %s", span_id, len(orphaned), orphaned)
            raise PartialSpanError(span_id, orphaned, str(cause)) from cause
        if created:
            logger.info("Rolled back %d member(s) of span %s", len(created), span_id)
