"""SQLAlchemy metadata definitions for discipline case tables."""

from __future__ import annotations

import sqlalchemy as sa

metadata = sa.MetaData()
sqlite_bigint = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

# Master-data catalogs: read-only to the case engine.
students = sa.Table(
    "students",
    metadata,
    sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("nis", sa.Text(), nullable=False),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.UniqueConstraint("nis", name="uq_students_nis"),
)

actors = sa.Table(
    "actors",
    metadata,
    sa.Column("id", sa.Text(), primary_key=True, nullable=False),
    sa.Column("display_name", sa.Text(), nullable=False),
)

sanction_types = sa.Table(
    "sanction_types",
    metadata,
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

violations = sa.Table(
    "violations",
    metadata,
    sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("name", sa.Text(), nullable=False),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
)

violation_sanction_types = sa.Table(
    "violation_sanction_types",
    metadata,
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

cases = sa.Table(
    "cases",
    metadata,
    sa.Column("case_id", sa.Uuid(), primary_key=True, nullable=False),
    sa.Column("case_number", sa.Text(), nullable=False),
    sa.Column("student_id", sa.Uuid(), sa.ForeignKey("students.id"), nullable=False),
    sa.Column("violation_id", sa.Uuid(), sa.ForeignKey("violations.id"), nullable=False),
    sa.Column("class_level", sa.Text(), nullable=False),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("violation_date", sa.Date(), nullable=False),
    sa.Column("location", sa.Text(), nullable=True),
    sa.Column("witnesses", sa.Text(), nullable=True),
    sa.Column("evidence_urls", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
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

sa.Index("ix_cases_status", cases.c.status)
sa.Index("ix_cases_created_at", cases.c.created_at)

case_actions = sa.Table(
    "case_actions",
    metadata,
    sa.Column("id", sqlite_bigint, primary_key=True, autoincrement=True),
    sa.Column("action_id", sa.Uuid(), nullable=False),
    sa.Column("case_id", sa.Uuid(), sa.ForeignKey("cases.case_id"), nullable=False),
    sa.Column(
        "sanction_type_id",
        sa.Uuid(),
        sa.ForeignKey("sanction_types.id"),
        nullable=False,
    ),
    sa.Column("action_type", sa.Text(), nullable=False, server_default=sa.text("'SANKSI'")),
    sa.Column("description", sa.Text(), nullable=False),
    sa.Column("follow_up_date", sa.Date(), nullable=True),
    sa.Column("notes", sa.Text(), nullable=True),
    sa.Column("evidence_urls", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
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

sa.Index(
    "ix_case_actions_case_id_created_at",
    case_actions.c.case_id,
    case_actions.c.created_at,
)

case_number_sequences = sa.Table(
    "case_number_sequences",
    metadata,
    sa.Column("year", sa.Integer(), primary_key=True, autoincrement=False, nullable=False),
    sa.Column("last_value", sa.Integer(), nullable=False),
)

case_events = sa.Table(
    "case_events",
    metadata,
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

sa.Index("ix_case_events_case_id_ts", case_events.c.case_id, case_events.c.ts)
sa.Index("ix_case_events_event_type_ts", case_events.c.event_type, case_events.c.ts)
