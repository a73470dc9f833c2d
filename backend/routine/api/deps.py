from collections.abc import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from routine.db.session import SessionLocal
from routine.services.availability import AvailabilityFinder
from routine.services.commitments import SqlCommitmentStore, SqlRoomDirectory, SqlTeacherDirectory
from routine.services.conflict_service import ConflictService
from routine.services.routine_slots import RoutineSlotService
from routine.services.span_coordinator import SpanCoordinator


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_commitment_store(db: Session = Depends(get_db)) -> SqlCommitmentStore:
    return SqlCommitmentStore(db)


def get_conflict_service(
    db: Session = Depends(get_db),
    store: SqlCommitmentStore = Depends(get_commitment_store),
) -> ConflictService:
    return ConflictService(store, SqlTeacherDirectory(db), SqlRoomDirectory(db))


def get_routine_slot_service(
    store: SqlCommitmentStore = Depends(get_commitment_store),
    validator: ConflictService = Depends(get_conflict_service),
) -> RoutineSlotService:
    return RoutineSlotService(store, validator)


def get_span_coordinator(
    store: SqlCommitmentStore = Depends(get_commitment_store),
    validator: ConflictService = Depends(get_conflict_service),
) -> SpanCoordinator:
    return SpanCoordinator(store, validator)


def get_availability_finder(
    db: Session = Depends(get_db),
    store: SqlCommitmentStore = Depends(get_commitment_store),
) -> AvailabilityFinder:
    return AvailabilityFinder(store, SqlTeacherDirectory(db), SqlRoomDirectory(db))
