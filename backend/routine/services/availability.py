"""Common free slots across a group of teachers (meeting scheduling).

Any active commitment makes a teacher busy in that cell whatever its recurrence, so a
"free" cell is free in every week of the term.
"""
from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Sequence

from routine.core.config import Settings, get_settings
from routine.core.exceptions import ResourceNotFoundError, ScheduleValidationError
from routine.schemas.availability import (
    AvailabilityCell,
    AvailabilityConstraints,
    AvailabilityRecommendations,
    AvailabilityReport,
    AvailabilityStatistics,
    AvailableTeacher,
    BusySlot,
    BusyTeacher,
    CommitmentSummary,
    CommonFreeSlot,
    DayRecommendation,
    SlotRecommendation,
)
from routine.schemas.routine import DAY_NAMES, ScheduledClass
from routine.services.commitments import (
    CommitmentFilter,
    CommitmentStore,
    RoomDirectory,
    TeacherAvailability,
    TeacherDirectory,
)
from routine.services.recurrence import semester_group

logger = logging.getLogger(__name__)

BEST_DAYS_LIMIT = 3
BEST_SLOTS_LIMIT = 5


class AvailabilityFinder:
    def __init__(
        self,
        store: CommitmentStore,
        teachers: TeacherDirectory,
        rooms: RoomDirectory,
        settings: Settings | None = None,
    ):
        self.store = store
        self.teachers = teachers
        self.rooms = rooms
        self.settings = settings or get_settings()
        self._room_names: dict[str, str | None] = {}

    def find_common_free_slots(
        self,
        teacher_ids: Sequence[str],
        constraints: AvailabilityConstraints | None,
        academic_year_id: str,
    ) -> AvailabilityReport:
        constraints = constraints or AvailabilityConstraints()
        requested = list(dict.fromkeys(item.strip() for item in teacher_ids if item and item.strip()))
        if not requested:
            raise ScheduleValidationError("At least one teacher is required to search for free slots")

        profiles = [self.teachers.get(teacher_id) for teacher_id in requested]
        days = [day for day in self.settings.working_days if day not in constraints.exclude_days]
        slots = range(self.settings.slots_per_day)

        busy_by_cell = self._busy_commitments(profiles, constraints, academic_year_id)

        cells: list[AvailabilityCell] = []
        busy_slots: list[BusySlot] = []
        for day in days:
            for slot in slots:
                busy_teachers = [
                    self._busy_teacher(profile, busy_by_cell[(day, slot, profile.id)])
                    for profile in profiles
                    if busy_by_cell.get((day, slot, profile.id))
                ]
                busy_ids = {item.teacher_id for item in busy_teachers}
                available = [
                    AvailableTeacher(
                        teacher_id=profile.id,
                        teacher_name=profile.full_name,
                        teacher_short_name=profile.short_name,
                    )
                    for profile in profiles
                    if profile.id not in busy_ids
                ]
                if not busy_teachers:
                    level = "none"
                elif len(busy_teachers) == len(profiles):
                    level = "full"
                else:
                    level = "partial"
                cells.append(
                    AvailabilityCell(
                        day=day,
                        day_name=DAY_NAMES[day],
                        slot=slot,
                        is_common_free=not busy_teachers,
                        conflict_level=level,
                        busy_teachers=busy_teachers,
                        available_teachers=available,
                    )
                )
                if busy_teachers:
                    busy_slots.append(
                        BusySlot(day=day, day_name=DAY_NAMES[day], slot=slot, busy_teachers=busy_teachers)
                    )

        runs = self._free_runs(cells)
        recommended = [run for run in runs if run.duration >= constraints.min_duration]
        free_cells = [cell for cell in cells if cell.is_common_free]

        statistics = AvailabilityStatistics(
            total_slots=len(cells),
            available_slots=len(free_cells),
            unavailable_slots=len(cells) - len(free_cells),
            availability_percentage=round(len(free_cells) / len(cells) * 100, 1) if cells else 0.0,
            partially_available_slots=sum(1 for cell in cells if cell.conflict_level == "partial"),
            fully_unavailable_slots=sum(1 for cell in cells if cell.conflict_level == "full"),
            recommended_runs=len(recommended),
        )
        logger.info(
            "Meeting search for %d teacher(s): %d/%d cells free, %d run(s) of >= %d slot(s)",
            len(profiles),
            statistics.available_slots,
            statistics.total_slots,
            len(recommended),
            constraints.min_duration,
        )

        return AvailabilityReport(
            teacher_ids=requested,
            constraints=constraints,
            days_searched=[DAY_NAMES[day] for day in days],
            statistics=statistics,
            common_free_slots=recommended,
            busy_slots=busy_slots,
            cells=cells,
            recommendations=self._recommendations(free_cells),
        )

    def _busy_commitments(
        self,
        profiles: Sequence[TeacherAvailability],
        constraints: AvailabilityConstraints,
        academic_year_id: str,
    ) -> dict[tuple[int, int, str], list[ScheduledClass]]:
        busy: dict[tuple[int, int, str], list[ScheduledClass]] = defaultdict(list)
        for profile in profiles:
            for commitment in self.store.query(
                CommitmentFilter(academic_year_id=academic_year_id, teacher_id=profile.id)
            ):
                if (
                    constraints.semester_group != "all"
                    and semester_group(commitment.semester) != constraints.semester_group
                ):
                    continue
                busy[(commitment.day_index, commitment.slot_index, profile.id)].append(commitment)
        return busy

    def _busy_teacher(self, profile: TeacherAvailability, commitments: list[ScheduledClass]) -> BusyTeacher:
        summaries = [self._summarize(item) for item in commitments]
        first = summaries[0]
        subject = first.subject_code or first.subject_name or "a class"
        reason = f"Teaching {subject} (semester {first.semester}, section {first.section})"
        if first.room_name:
            reason = f"{reason} in {first.room_name}"
        return BusyTeacher(
            teacher_id=profile.id,
            teacher_name=profile.full_name,
            reason=reason,
            commitment=first,
            commitments=summaries,
        )

    def _summarize(self, commitment: ScheduledClass) -> CommitmentSummary:
        return CommitmentSummary(
            id=commitment.id,
            subject_code=commitment.subject_code,
            subject_name=commitment.subject_name,
            room_id=commitment.room_id,
            room_name=self._room_name(commitment.room_id),
            program_id=commitment.program_id,
            semester=commitment.semester,
            section=commitment.section,
            class_type=commitment.class_type,
        )

    def _room_name(self, room_id: str | None) -> str | None:
        if not room_id:
            return None
        if room_id not in self._room_names:
            try:
                self._room_names[room_id] = self.rooms.get(room_id).name
            except ResourceNotFoundError:
                self._room_names[room_id] = None
        return self._room_names[room_id]

    def _free_runs(self, cells: Sequence[AvailabilityCell]) -> list[CommonFreeSlot]:
        runs: list[CommonFreeSlot] = []
        current: list[AvailabilityCell] = []

        def close() -> None:
            if current:
                runs.append(
                    CommonFreeSlot(
                        day=current[0].day,
                        day_name=current[0].day_name,
                        slot=current[0].slot,
                        duration=len(current),
                        slot_indexes=[cell.slot for cell in current],
                    )
                )
                current.clear()

        for cell in cells:
            if not cell.is_common_free:
                close()
                continue
            if current and (current[-1].day != cell.day or current[-1].slot + 1 != cell.slot):
                close()
            current.append(cell)
        close()
        return runs

    def _recommendations(self, free_cells: Sequence[AvailabilityCell]) -> AvailabilityRecommendations:
        by_day = Counter(cell.day for cell in free_cells)
        by_slot = Counter(cell.slot for cell in free_cells)
        # Counter.most_common keeps first-seen order for ties, i.e. grid order.
        return AvailabilityRecommendations(
            best_days=[
                DayRecommendation(day=day, day_name=DAY_NAMES[day], available_slots=count)
                for day, count in by_day.most_common(BEST_DAYS_LIMIT)
            ],
            best_slots=[
                SlotRecommendation(slot=slot, label=f"Slot {slot + 1}", count=count)
                for slot, count in by_slot.most_common(BEST_SLOTS_LIMIT)
            ],
        )
