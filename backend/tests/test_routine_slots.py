import pytest

from routine.core.exceptions import ResourceNotFoundError, ScheduleValidationError
from routine.schemas.conflict import ConflictReport
from routine.schemas.routine import RoutineSlotUpdate, ScheduledClass
from routine.services.commitments import CommitmentFilter

ACADEMIC_YEAR = "ay-2081"


def test_create_persists_and_lists(slot_service, make_class, resources):
    created = slot_service.create(make_class(), ACADEMIC_YEAR)

    assert isinstance(created, ScheduledClass)
    assert created.id
    assert created.teacher_ids == [resources.ram]
    listed = slot_service.list_slots(ACADEMIC_YEAR, section="a")
    assert [item.id for item in listed] == [created.id]
    assert slot_service.list_slots("ay-2080") == []


def test_create_returns_conflicts_and_persists_nothing(slot_service, make_class):
    slot_service.create(make_class(), ACADEMIC_YEAR)

    result = slot_service.create(make_class(section="B"), ACADEMIC_YEAR)
    assert isinstance(result, ConflictReport)
    assert [item.type for item in result.conflicts] == ["teacher_schedule_conflict", "room_conflict"]
    assert len(slot_service.list_slots(ACADEMIC_YEAR)) == 1


def test_create_rejects_span_members(slot_service, make_class):
    with pytest.raises(ScheduleValidationError):
        slot_service.create(make_class(span_id="span-1"), ACADEMIC_YEAR)


def test_late_race_is_reported_as_conflict(slot_service, validator, make_class, commit, monkeypatch, resources):
    winner = commit(make_class(section="C"))
    monkeypatch.setattr(validator, "validate", lambda *args, **kwargs: ConflictReport())

    result = slot_service.create(make_class(section="B"), ACADEMIC_YEAR)

    assert isinstance(result, ConflictReport)
    assert result.has_conflicts is True
    conflict = result.conflicts[0]
    assert conflict.type == "teacher_schedule_conflict"
    assert conflict.teacher_id == resources.ram
    assert conflict.existing_commitment_id == winner
    assert [item.id for item in slot_service.list_slots(ACADEMIC_YEAR)] == [winner]


def test_update_revalidates_schedule_changes(slot_service, make_class, commit, resources):
    commit(make_class(slot_index=3, section="B", room_id=resources.lab_1))
    created = slot_service.create(make_class(), ACADEMIC_YEAR)

    blocked = slot_service.update(created.id, RoutineSlotUpdate(slotIndex=3), ACADEMIC_YEAR)
    assert isinstance(blocked, ConflictReport)
    assert [item.type for item in blocked.conflicts] == ["teacher_schedule_conflict"]

    moved = slot_service.update(created.id, RoutineSlotUpdate(slotIndex=4), ACADEMIC_YEAR)
    assert isinstance(moved, ScheduledClass)
    assert moved.slot_index == 4


def test_update_does_not_conflict_with_itself(slot_service, make_class, resources):
    created = slot_service.create(make_class(), ACADEMIC_YEAR)

    updated = slot_service.update(
        created.id,
        RoutineSlotUpdate(teacherIds=[resources.ram, resources.sita], notes="Team taught"),
        ACADEMIC_YEAR,
    )
    assert isinstance(updated, ScheduledClass)
    assert updated.teacher_ids == [resources.ram, resources.sita]
    assert updated.notes == "Team taught"


def test_moving_frees_the_old_cell(slot_service, make_class):
    created = slot_service.create(make_class(), ACADEMIC_YEAR)
    slot_service.update(created.id, RoutineSlotUpdate(dayIndex=2), ACADEMIC_YEAR)

    again = slot_service.create(make_class(section="B"), ACADEMIC_YEAR)
    assert isinstance(again, ScheduledClass)


def test_cancel_soft_deactivates_and_frees_the_cell(slot_service, store, make_class):
    created = slot_service.create(make_class(), ACADEMIC_YEAR)

    assert slot_service.cancel(created.id) == [created.id]
    assert store.get(created.id).is_active is False
    assert slot_service.list_slots(ACADEMIC_YEAR) == []
    assert isinstance(slot_service.create(make_class(), ACADEMIC_YEAR), ScheduledClass)

    with pytest.raises(ResourceNotFoundError):
        slot_service.cancel(created.id)


def test_cancelling_a_span_member_cancels_the_span(slot_service, coordinator, store, make_class):
    span = coordinator.validate_and_commit(
        [make_class(slot_index=slot, class_type="practical") for slot in (1, 2)],
        ACADEMIC_YEAR,
    )

    cancelled = slot_service.cancel(span.created[1])
    assert sorted(cancelled) == sorted(span.created)
    assert all(item.is_active is False for item in store.span_members(span.span_id))

    with pytest.raises(ResourceNotFoundError):
        slot_service.cancel_span(span.span_id)


def test_span_members_cannot_move_alone(slot_service, coordinator, make_class):
    span = coordinator.validate_and_commit(
        [make_class(slot_index=slot, class_type="practical") for slot in (1, 2)],
        ACADEMIC_YEAR,
    )
    with pytest.raises(ScheduleValidationError):
        slot_service.update(span.created[0], RoutineSlotUpdate(dayIndex=3), ACADEMIC_YEAR)

    renamed = slot_service.update(span.created[0], RoutineSlotUpdate(notes="Bring lab coats"), ACADEMIC_YEAR)
    assert renamed.notes == "Bring lab coats"
    assert renamed.span_id == span.span_id


def test_list_slots_by_teaching_week(slot_service, make_class, resources):
    odd = slot_service.create(make_class(recurrence={"type": "alternate", "pattern": "odd"}), ACADEMIC_YEAR)
    even = slot_service.create(
        make_class(section="B", recurrence={"type": "alternate", "pattern": "even"}),
        ACADEMIC_YEAR,
    )

    assert [item.id for item in slot_service.list_slots(ACADEMIC_YEAR, week_number=3)] == [odd.id]
    assert [item.id for item in slot_service.list_slots(ACADEMIC_YEAR, week_number=4)] == [even.id]
    assert len(slot_service.list_slots(ACADEMIC_YEAR, teacher_id=resources.ram)) == 2


def test_invalid_update_is_a_validation_error(slot_service, make_class):
    created = slot_service.create(make_class(), ACADEMIC_YEAR)

    with pytest.raises(ScheduleValidationError) as exc_info:
        slot_service.update(created.id, RoutineSlotUpdate(teacherIds=[]), ACADEMIC_YEAR)

    assert exc_info.value.status_code == 400
    assert exc_info.value.details["slot_id"] == created.id
    assert exc_info.value.details["errors"]
    assert slot_service.list_slots(ACADEMIC_YEAR)[0].teacher_ids == created.teacher_ids


def test_rejected_elective_broadcast_persists_no_section(slot_service, store, make_class, commit, resources):
    core_id = commit(make_class(semester=7, section="B", subject_code="CT701"))
    elective = make_class(
        semester=7,
        section="A",
        class_category="elective",
        elective_group_id="eg-1",
        elective_group_name="Elective I",
        subject_code="CT725",
        target_sections=["B"],
        teacher_ids=[resources.hari],
        room_id=resources.lab_1,
    )

    result = slot_service.create(elective, ACADEMIC_YEAR)

    assert isinstance(result, ConflictReport)
    assert [(item.type, item.section) for item in result.conflicts] == [("elective_core_conflict", "B")]
    assert result.conflicts[0].existing_commitment_id == core_id
    section_a = store.query(CommitmentFilter(academic_year_id=ACADEMIC_YEAR, semester=7, section="A"))
    section_b = store.query(CommitmentFilter(academic_year_id=ACADEMIC_YEAR, semester=7, section="B"))
    assert section_a == []
    assert [item.id for item in section_b] == [core_id]
    assert store.query(CommitmentFilter(academic_year_id=ACADEMIC_YEAR, teacher_id=resources.hari)) == []
