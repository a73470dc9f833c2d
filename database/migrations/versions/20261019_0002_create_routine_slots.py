"""create routine slots, links and claims

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    class_type = sa.Enum("lecture", "practical", "tutorial", "break", name="class_type")
    class_category = sa.Enum("core", "elective", "common", name="class_category")
    recurrence_type = sa.Enum("weekly", "alternate", "custom", name="recurrence_type")
    recurrence_pattern = sa.Enum("odd", "even", name="recurrence_pattern")
    semester_group = sa.Enum("odd", "even", name="semester_group")
    claim_semester_group = sa.Enum("odd", "even", name="claim_semester_group")
    claim_kind = sa.Enum("teacher", "room", name="claim_kind")

    op.create_table(
        "routine_slots",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("program_id", sa.String(length=36), nullable=False),
        sa.Column("semester", sa.Integer(), nullable=False),
        sa.Column("semester_group", semester_group, nullable=False),
        sa.Column("section", sa.String(length=20), nullable=False),
        sa.Column("day_index", sa.Integer(), nullable=False),
        sa.Column("slot_index", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.String(length=36), nullable=True),
        sa.Column("subject_code", sa.String(length=20), nullable=True),
        sa.Column("subject_name", sa.String(length=200), nullable=True),
        sa.Column("class_type", class_type, nullable=False, server_default="lecture"),
        sa.Column("class_category", class_category, nullable=False, server_default="core"),
        sa.Column("room_id", sa.String(length=36), nullable=True),
        sa.Column("recurrence_type", recurrence_type, nullable=False, server_default="weekly"),
        sa.Column("recurrence_pattern", recurrence_pattern, nullable=True),
        sa.Column("custom_weeks", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("recurrence_description", sa.String(length=100), nullable=True),
        sa.Column("elective_group_id", sa.String(length=36), nullable=True),
        sa.Column("elective_group_name", sa.String(length=100), nullable=True),
        sa.Column("span_id", sa.String(length=36), nullable=True),
        sa.Column("span_master", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("span_position", sa.Integer(), nullable=True),
        sa.Column("span_total", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_routine_slots_section_cell",
        "routine_slots",
        ["academic_year_id", "program_id", "semester", "day_index", "slot_index"],
    )
    op.create_index(
        "ix_routine_slots_room_cell",
        "routine_slots",
        ["academic_year_id", "room_id", "day_index", "slot_index"],
    )
    op.create_index("ix_routine_slots_span", "routine_slots", ["span_id"])

    op.create_table(
        "routine_slot_teachers",
        sa.Column("routine_slot_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("teacher_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_routine_slot_teachers_teacher_id", "routine_slot_teachers", ["teacher_id"])

    op.create_table(
        "routine_slot_sections",
        sa.Column("routine_slot_id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("section", sa.String(length=20), primary_key=True, nullable=False),
        sa.Column("is_target", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    op.create_index("ix_routine_slot_sections_section", "routine_slot_sections", ["section"])

    op.create_table(
        "routine_slot_claims",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("routine_slot_id", sa.String(length=36), nullable=False),
        sa.Column("resource_kind", claim_kind, nullable=False),
        sa.Column("resource_id", sa.String(length=36), nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), nullable=False),
        sa.Column("day_index", sa.Integer(), nullable=False),
        sa.Column("slot_index", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("semester_group", claim_semester_group, nullable=False),
        sa.UniqueConstraint(
            "resource_kind",
            "resource_id",
            "academic_year_id",
            "day_index",
            "slot_index",
            "week_number",
            "semester_group",
            name="uq_routine_slot_claims_resource_cell_week",
        ),
    )
    op.create_index("ix_routine_slot_claims_routine_slot_id", "routine_slot_claims", ["routine_slot_id"])


def downgrade() -> None:
    op.drop_index("ix_routine_slot_claims_routine_slot_id", table_name="routine_slot_claims")
    op.drop_table("routine_slot_claims")
    op.drop_index("ix_routine_slot_sections_section", table_name="routine_slot_sections")
    op.drop_table("routine_slot_sections")
    op.drop_index("ix_routine_slot_teachers_teacher_id", table_name="routine_slot_teachers")
    op.drop_table("routine_slot_teachers")
    op.drop_index("ix_routine_slots_span", table_name="routine_slots")
    op.drop_index("ix_routine_slots_room_cell", table_name="routine_slots")
    op.drop_index("ix_routine_slots_section_cell", table_name="routine_slots")
    op.drop_table("routine_slots")

    bind = op.get_bind()
    for name in (
        "claim_kind",
        "claim_semester_group",
        "semester_group",
        "recurrence_pattern",
        "recurrence_type",
        "class_category",
        "class_type",
    ):
        sa.Enum(name=name).drop(bind, checkfirst=True)
