import os

# Must be set before routine.db.session builds the module-level engine.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from routine.api.deps import get_db  # noqa: E402
from routine.db.base import Base  # noqa: E402
from routine.main import app  # noqa: E402
from routine.models.room import Room, RoomType  # noqa: E402
from routine.models.teacher import Teacher  # noqa: E402
from routine.schemas.routine import ScheduledClass  # noqa: E402
from routine.services.availability import AvailabilityFinder  # noqa: E402
from routine.services.commitments import SqlCommitmentStore, SqlRoomDirectory, SqlTeacherDirectory  # noqa: E402
from routine.services.conflict_service import ConflictService  # noqa: E402
from routine.services.routine_slots import RoutineSlotService  # noqa: E402
from routine.services.span_coordinator import SpanCoordinator  # noqa: E402

ACADEMIC_YEAR = "ay-2081"


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def add_teacher(db_session):
    def _add(short_name: str, **overrides) -> str:
        values = {
            "short_name": short_name,
            "full_name": f"Teacher {short_name}",
            "email": f"{short_name.lower()}@campus.edu.np",
            "department": "Electronics and Computer Engineering",
        }
        values.update(overrides)
        teacher = Teacher(**values)
        db_session.add(teacher)
        db_session.commit()
        return teacher.id

    return _add


@pytest.fixture()
def add_room(db_session):
    def _add(name: str, **overrides) -> str:
        values = {"name": name, "building": "Block A", "type": RoomType.lecture}
        values.update(overrides)
        room = Room(**values)
        db_session.add(room)
        db_session.commit()
        return room.id

    return _add


@pytest.fixture()
def resources(add_teacher, add_room):
    return SimpleNamespace(
        ram=add_teacher("RAM"),
        sita=add_teacher("SITA"),
        hari=add_teacher("HARI"),
        room_101=add_room("101"),
        lab_1=add_room("LAB-1", type=RoomType.lab),
    )


@pytest.fixture()
def make_class(resources):
    def _make(**overrides) -> ScheduledClass:
        values = {
            "program_id": "bct",
            "semester": 1,
            "section": "A",
            "day_index": 1,
            "slot_index": 1,
            "subject_code": "CT401",
            "subject_name": "Computer Graphics",
            "teacher_ids": [resources.ram],
            "room_id": resources.room_101,
        }
        values.update(overrides)
        return ScheduledClass.model_validate(values)

    return _make


@pytest.fixture()
def store(db_session):
    return SqlCommitmentStore(db_session)


@pytest.fixture()
def validator(db_session, store):
    return ConflictService(store, SqlTeacherDirectory(db_session), SqlRoomDirectory(db_session))


@pytest.fixture()
def slot_service(store, validator):
    return RoutineSlotService(store, validator)


@pytest.fixture()
def coordinator(store, validator):
    return SpanCoordinator(store, validator)


@pytest.fixture()
def finder(db_session, store):
    return AvailabilityFinder(store, SqlTeacherDirectory(db_session), SqlRoomDirectory(db_session))


@pytest.fixture()
def commit(store):
    """Persist a class directly, bypassing validation, and return its id."""

    def _commit(record: ScheduledClass, academic_year_id: str = ACADEMIC_YEAR) -> str:
        return store.create(record, academic_year_id)

    return _commit
