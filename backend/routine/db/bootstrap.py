from __future__ import annotations

import logging

from sqlalchemy import inspect

import routine.models  # noqa: F401
from routine.db.base import Base
from routine.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "teachers": {"id", "short_name", "available_days", "unavailable_slots", "is_active"},
    "rooms": {"id", "name", "is_active"},
    "routine_slots": {
        "id",
        "academic_year_id",
        "program_id",
        "semester",
        "section",
        "day_index",
        "slot_index",
        "class_category",
        "recurrence_type",
        "span_id",
        "is_active",
    },
    "routine_slot_teachers": {"routine_slot_id", "teacher_id"},
    "routine_slot_sections": {"routine_slot_id", "section", "is_target"},
    "routine_slot_claims": {
        "resource_kind",
        "resource_id",
        "academic_year_id",
        "day_index",
        "slot_index",
        "week_number",
        "semester_group",
    },
}


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_schema() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Schema bootstrap failed")
        raise RuntimeError("Schema bootstrap failed") from exc
