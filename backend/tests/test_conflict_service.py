import pytest

from routine.core.exceptions import ResourceNotFoundError, UniquenessViolation
from routine.schemas.conflict import ConflictReport

ACADEMIC_YEAR = "ay-2081"


def _types(report: ConflictReport) -> list[str]:
    return [item.type for item in report.conflicts]


def test_no_commitments_means_no_conflicts(validator, make_class):
    report = validator.validate(make_class(), ACADEMIC_YEAR)
    assert report.has_conflicts is False
    assert report.conflicts == []


def test_teacher_shared_across_semester_parity_is_allowed(validator, make_class, commit, resources):
    commit(make_class(semester=1))

    even_semester = make_class(semester=2, section="B", room_id=resources.lab_1)
    assert validator.validate(even_semester, ACADEMIC_YEAR).has_conflicts is False

    same_parity = make_class(semester=1, section="B", room_id=resources.lab_1)
    report = validator.validate(same_parity, ACADEMIC_YEAR)
    assert _types(report) == ["teacher_schedule_conflict"]
    assert report.conflicts[0].teacher_id == resources.ram
    assert report.conflicts[0].semester_group == "odd"


def test_room_conflict_is_parity_gated(validator, make_class, commit, resources):
    existing_id = commit(make_class(semester=3))

    other_parity = make_class(semester=4, section="B", teacher_ids=[resources.sita])
    assert validator.validate(other_parity, ACADEMIC_YEAR).has_conflicts is False

    same_parity = make_class(semester=5, section="B", teacher_ids=[resources.sita])
    report = validator.validate(same_parity, ACADEMIC_YEAR)
    assert _types(report) == ["room_conflict"]
    assert report.conflicts[0].room_id == resources.room_101
    assert report.conflicts[0].existing_commitment_id == existing_id
    assert "Room 101" in report.conflicts[0].message


def test_alternate_halves_share_teacher_and_room(validator, make_class, commit):
    commit(make_class(recurrence={"type": "alternate", "pattern": "odd"}))

    other_half = make_class(section="B", recurrence={"type": "alternate", "pattern": "even"})
    assert validator.validate(other_half, ACADEMIC_YEAR).has_conflicts is False

    weekly = make_class(section="B")
    assert _types(validator.validate(weekly, ACADEMIC_YEAR)) == ["teacher_schedule_conflict", "room_conflict"]


def test_section_conflict_ignores_parity_gate_but_needs_recurrence_overlap(validator, make_class, commit, resources):
    existing_id = commit(make_class(recurrence={"type": "custom", "customWeeks": [1, 2, 3]}))

    clash = make_class(
        teacher_ids=[resources.sita],
        room_id=resources.lab_1,
        recurrence={"type": "custom", "customWeeks": [3, 4]},
    )
    report = validator.validate(clash, ACADEMIC_YEAR)
    assert _types(report) == ["section_conflict"]
    assert report.conflicts[0].section == "A"
    assert report.conflicts[0].existing_commitment_id == existing_id

    disjoint = make_class(
        teacher_ids=[resources.sita],
        room_id=resources.lab_1,
        recurrence={"type": "custom", "customWeeks": [10, 11]},
    )
    assert validator.validate(disjoint, ACADEMIC_YEAR).has_conflicts is False


def test_all_checks_are_concatenated(validator, make_class, commit):
    commit(make_class())
    report = validator.validate(make_class(), ACADEMIC_YEAR)
    assert report.has_conflicts is True
    assert _types(report) == ["teacher_schedule_conflict", "room_conflict", "section_conflict"]


def test_teacher_unavailable_day_and_slot(validator, make_class, add_teacher):
    part_timer = add_teacher("GITA", available_days=[0, 2])
    blocked = add_teacher(
        "BINA",
        unavailable_slots=[{"day_index": 1, "slot_index": 1, "reason": "Department meeting"}],
    )

    report = validator.validate(make_class(teacher_ids=[part_timer, blocked]), ACADEMIC_YEAR)
    assert _types(report) == ["teacher_unavailable_day", "teacher_unavailable_slot"]
    assert "Monday" in report.conflicts[0].message
    assert report.conflicts[1].reason == "Department meeting"


def test_default_working_days_apply_when_teacher_has_none(validator, make_class):
    saturday = make_class(day_index=6)
    report = validator.validate(saturday, ACADEMIC_YEAR)
    assert _types(report) == ["teacher_unavailable_day"]


def test_unknown_teacher_or_room_is_a_precondition_failure(validator, make_class, resources):
    with pytest.raises(ResourceNotFoundError) as exc_info:
        validator.validate(make_class(teacher_ids=["missing-teacher"]), ACADEMIC_YEAR)
    assert exc_info.value.status_code == 404
    assert exc_info.value.details["resource_type"] == "Teacher"

    with pytest.raises(ResourceNotFoundError):
        validator.validate(make_class(room_id="missing-room"), ACADEMIC_YEAR)


def test_inactive_excluded_and_other_year_commitments_are_ignored(validator, make_class, commit, store):
    cancelled = commit(make_class())
    store.deactivate(cancelled)
    commit(make_class(), academic_year_id="ay-2080")

    assert validator.validate(make_class(), ACADEMIC_YEAR).has_conflicts is False

    existing_id = commit(make_class())
    report = validator.validate(make_class(), ACADEMIC_YEAR, exclude_ids=[existing_id])
    assert report.has_conflicts is False


def test_pending_classes_count_as_commitments(validator, make_class, resources):
    reserved = make_class(id="pending-1", slot_index=2)
    report = validator.validate(make_class(slot_index=2, section="B"), ACADEMIC_YEAR, pending=[reserved])
    assert _types(report) == ["teacher_schedule_conflict", "room_conflict"]
    assert {item.existing_commitment_id for item in report.conflicts} == {"pending-1"}


def test_break_classes_only_check_the_section(validator, make_class, commit):
    commit(make_class())
    lunch = make_class(class_type="break", teacher_ids=[], room_id=None, subject_code=None)
    assert _types(validator.validate(lunch, ACADEMIC_YEAR)) == ["section_conflict"]


def test_validate_is_idempotent(validator, make_class, commit):
    commit(make_class())
    first = validator.validate(make_class(section="B"), ACADEMIC_YEAR)
    second = validator.validate(make_class(section="B"), ACADEMIC_YEAR)
    assert first.model_dump_json(by_alias=True) == second.model_dump_json(by_alias=True)


def test_conflict_records_survive_json_round_trip(validator, make_class, commit, add_teacher, resources):
    commit(make_class())
    part_timer = add_teacher("GITA", available_days=[3])
    report = validator.validate(make_class(teacher_ids=[part_timer, resources.ram]), ACADEMIC_YEAR)
    assert report.has_conflicts

    payload = report.model_dump_json(by_alias=True)
    assert '"hasConflicts":true' in payload
    assert '"existingCommitmentId"' in payload
    restored = ConflictReport.model_validate_json(payload)
    assert restored == report
    assert [type(item) for item in restored.conflicts] == [type(item) for item in report.conflicts]


def test_uniqueness_violation_becomes_regular_conflict(validator, make_class, resources):
    proposed = make_class(semester=2)

    room = validator.conflict_from_violation(UniquenessViolation("room", resources.room_101, "slot-9"), proposed)
    assert room.type == "room_conflict"
    assert room.existing_commitment_id == "slot-9"
    assert room.semester_group == "even"
    assert "Room 101" in room.message

    teacher = validator.conflict_from_violation(UniquenessViolation("teacher", "gone-teacher"), proposed)
    assert teacher.type == "teacher_schedule_conflict"
    assert teacher.teacher_id == "gone-teacher"
    assert "gone-teacher" in teacher.message
