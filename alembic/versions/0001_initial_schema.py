"""Initial schema for catalogs, cases, case actions, numbering, and case events."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "students",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("nis", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("nis", name="uq_students_nis"),
    )

    op.create_table(
        "actors",
        sa.Column("id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
    )

    op.create_table(
        "sanction_types",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("level", sa.Text(), nullable=False),
        sa.Column("duration_days", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint(
            "level IN ('RINGAN', 'SEDANG', 'BERAT')",
            name="ck_sanction_types_level",
        ),
    )

    op.create_table(
        "violations",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "violation_sanction_types",
        sa.Column(
            "violation_id",
            sa.Uuid(),
            sa.ForeignKey("violations.id"),
            primary_key=True,
            nullable=False,
        ),
        sa.Column(
            "sanction_type_id",
            sa.Uuid(),
            sa.ForeignKey("sanction_types.id"),
            primary_key=True,
            nullable=False,
        ),
    )

    op.create_table(
        "cases",
        sa.Column("case_id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("case_number", sa.Text(), nullable=False),
        sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id"), nullable=False),
        sa.Column("violation_id", sa.Uuid(), sa.ForeignKey("violations.id"), nullable=False),
        sa.Column("class_level", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("violation_date", sa.Date(), nullable=False),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("witnesses", sa.Text(), nullable=True),
        sa.Column(
            "evidence_urls",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'[]'"),
        ),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("input_by_id", sa.Text(), nullable=False),
        sa.Column("row_version", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.UniqueConstraint("case_number", name="uq_cases_case_number"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'PROSES', 'SELESAI', 'DIBATALKAN')",
            name="ck_cases_status",
        ),
    )
    op.create_index("ix_cases_status", "cases", ["status"])
    op.create_index("ix_cases_created_at", "cases", ["created_at"])

    op.create_table(
        "case_actions",
        sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
        sa.Column("action_id", sa.Uuid(), nullable=False),
        sa.Column("case_id", sa.Uuid(), sa.ForeignKey("cases.case_id"), nullable=False),
        sa.Column(
            "sanction_type_id",
            sa.Uuid(),
            sa.ForeignKey("sanction_types.id"),
            nullable=False,
        ),
        sa.Column(
            "action_type",
            sa.Text(),
            nullable=False,
            server_default=sa.text("'SANKSI'"),
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "evidence_urls",
            sa.JSON(),
            nullable=False,
            server_default=sa.text("'[]'"),
        ),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("action_by_id", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("edited_by_id", sa.Text(), nullable=True),
        sa.Column("edited_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by_id", sa.Text(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("action_id", name="uq_case_actions_action_id"),
    )
    op.create_index(
        "ix_case_actions_case_id_created_at",
        "case_actions",
        ["case_id", "created_at"],
    )

    op.create_table(
        "case_number_sequences",
        sa.Column("year", sa.Integer(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("last_value", sa.Integer(), nullable=False),
    )

    op.create_table(
        "case_events",
        sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
        sa.Column("case_id", sa.Uuid(), sa.ForeignKey("cases.case_id"), nullable=False),
        sa.Column(
            "ts",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column("actor_user_id", sa.Text(), nullable=True),
        sa.Column("event_type", sa.Text(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
    )
    op.create_index("ix_case_events_case_id_ts", "case_events", ["case_id", "ts"])
    op.create_index("ix_case_events_event_type_ts", "case_events", ["event_type", "ts"])


def downgrade() -> None:
    op.drop_index("ix_case_events_event_type_ts", table_name="case_events")
    op.drop_index("ix_case_events_case_id_ts", table_name="case_events")
    op.drop_table("case_events")
    op.drop_table("case_number_sequences")
    op.drop_index("ix_case_actions_case_id_created_at", table_name="case_actions")
    op.drop_table("case_actions")
    op.drop_index("ix_cases_created_at", table_name="cases")
    op.drop_index("ix_cases_status", table_name="cases")
    op.drop_table("cases")
    op.drop_table("violation_sanction_types")
    op.drop_table("violations")
    op.drop_table("sanction_types")
    op.drop_table("actors")
    op.drop_table("students")
