from unittest.mock import MagicMock

import pytest

from routine.core.exceptions import PartialSpanError, ScheduleValidationError, UniquenessViolation
from routine.schemas.conflict import ConflictReport
from routine.schemas.routine import SpanCommitResult
from routine.services.commitments import CommitmentFilter, SqlCommitmentStore
from routine.services.conflict_service import ConflictService
from routine.services.span_coordinator import SpanCoordinator

ACADEMIC_YEAR = "ay-2081"


def _span(make_class, slots, **overrides):
    return [make_class(slot_index=slot, class_type="practical", **overrides) for slot in slots]


def _teacher_load(store, teacher_id):
    return store.query(CommitmentFilter(academic_year_id=ACADEMIC_YEAR, teacher_id=teacher_id))


def test_span_is_committed_with_positions(coordinator, make_class, store, resources):
    result = coordinator.validate_and_commit(_span(make_class, [4, 2, 3]), ACADEMIC_YEAR)

    assert isinstance(result, SpanCommitResult)
    assert len(result.created) == 3
    members = store.span_members(result.span_id)
    assert [item.slot_index for item in members] == [2, 3, 4]
    assert [item.span_position for item in members] == [1, 2, 3]
    assert [item.span_master for item in members] == [True, False, False]
    assert {item.span_total for item in members} == {3}
    assert [item.id for item in members] == result.created


def test_caller_supplied_span_id_is_kept(coordinator, make_class, store):
    result = coordinator.validate_and_commit(_span(make_class, [1, 2], span_id="lab-span"), ACADEMIC_YEAR)
    assert result.span_id == "lab-span"
    assert len(store.span_members("lab-span")) == 2


def test_span_id_already_in_use_is_rejected(coordinator, make_class, store):
    first = coordinator.validate_and_commit(_span(make_class, [1, 2], span_id="lab-span"), ACADEMIC_YEAR)
    assert isinstance(first, SpanCommitResult)

    with pytest.raises(ScheduleValidationError) as exc_info:
        coordinator.validate_and_commit(_span(make_class, [1, 2], span_id="lab-span", day_index=3), ACADEMIC_YEAR)

    assert exc_info.value.details == {"span_id": "lab-span"}
    members = store.span_members("lab-span")
    assert [item.id for item in members] == first.created
    assert [item.span_master for item in members] == [True, False]


def test_conflict_on_middle_period_persists_nothing(coordinator, make_class, commit, store, resources):
    existing_id = commit(make_class(slot_index=2, section="B", room_id=resources.lab_1))

    result = coordinator.validate_and_commit(_span(make_class, [1, 2, 3], span_id="span-x"), ACADEMIC_YEAR)

    assert isinstance(result, ConflictReport)
    assert [item.type for item in result.conflicts] == ["teacher_schedule_conflict"]
    assert result.conflicts[0].existing_commitment_id == existing_id
    assert store.span_members("span-x") == []
    assert [item.id for item in _teacher_load(store, resources.ram)] == [existing_id]


def test_repeated_slot_index_is_rejected(coordinator, make_class):
    duplicate_slots = _span(make_class, [1, 1])
    with pytest.raises(ScheduleValidationError):
        coordinator.validate_and_commit(duplicate_slots, ACADEMIC_YEAR)


@pytest.mark.parametrize(
    "slots",
    [
        lambda make_class, resources: _span(make_class, [1, 3]),
        lambda make_class, resources: [
            make_class(slot_index=1),
            make_class(slot_index=2, teacher_ids=[resources.sita]),
        ],
        lambda make_class, resources: [
            make_class(slot_index=1, span_id="a"),
            make_class(slot_index=2, span_id="b"),
        ],
        lambda make_class, resources: [],
        lambda make_class, resources: _span(make_class, range(0, 9)),
    ],
    ids=["gap", "different-teacher", "two-span-ids", "empty", "too-long"],
)
def test_malformed_spans_are_rejected(coordinator, make_class, resources, slots):
    with pytest.raises(ScheduleValidationError):
        coordinator.validate_and_commit(slots(make_class, resources), ACADEMIC_YEAR)


class RacingStore(SqlCommitmentStore):
    """Lets a concurrent writer grab a resource right before one member is persisted."""

    def __init__(self, db, racer, race_at_slot):
        super().__init__(db)
        self.racer = racer
        self.race_at_slot = race_at_slot
        self.racer_id = None

    def create(self, record, academic_year_id):
        if record.slot_index == self.race_at_slot and self.racer_id is None:
            self.racer_id = super().create(self.racer, academic_year_id)
        return super().create(record, academic_year_id)


def test_race_during_commit_rolls_back_created_members(db_session, validator, make_class, resources):
    racer = make_class(slot_index=3, semester=3, section="C", room_id=resources.lab_1)
    store = RacingStore(db_session, racer, race_at_slot=3)
    coordinator = SpanCoordinator(store, validator)

    result = coordinator.validate_and_commit(_span(make_class, [1, 2, 3], span_id="span-race"), ACADEMIC_YEAR)

    assert isinstance(result, ConflictReport)
    assert [item.type for item in result.conflicts] == ["teacher_schedule_conflict"]
    assert result.conflicts[0].existing_commitment_id == store.racer_id
    assert store.span_members("span-race") == []
    assert [item.id for item in _teacher_load(store, resources.ram)] == [store.racer_id]


def test_failed_rollback_is_reported_as_partial_span_failure(make_class):
    store = MagicMock()
    store.create.side_effect = ["m1", "m2", UniquenessViolation("room", "r1", "other")]
    store.delete.side_effect = [None, RuntimeError("connection lost")]
    validator = MagicMock(spec=ConflictService)
    validator.validate.return_value = ConflictReport()

    coordinator = SpanCoordinator(store, validator)
    with pytest.raises(PartialSpanError) as exc_info:
        coordinator.validate_and_commit(_span(make_class, [1, 2, 3]), ACADEMIC_YEAR)

    assert [call.args[0] for call in store.delete.call_args_list] == ["m2", "m1"]
    error = exc_info.value
    assert error.status_code == 500
    assert error.details["type"] == "partial_span_failure"
    assert error.details["orphaned_ids"] == ["m1"]
    validator.conflict_from_violation.assert_not_called()


def test_store_errors_propagate_after_rollback(make_class):
    store = MagicMock()
    store.create.side_effect = ["m1", RuntimeError("disk full")]
    validator = MagicMock(spec=ConflictService)
    validator.validate.return_value = ConflictReport()

    coordinator = SpanCoordinator(store, validator)
    with pytest.raises(RuntimeError, match="disk full"):
        coordinator.validate_and_commit(_span(make_class, [1, 2]), ACADEMIC_YEAR)

    store.delete.assert_called_once_with("m1")
