"""initial schema: users, roles, employees, appointments, comments, notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        nullable=False,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        postgresql.TIMESTAMP(timezone=True),
        server_default=sa.text("NOW()"),
        nullable=False,
    )


def upgrade() -> None:
    """Create the appointment workflow and notification tables."""
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    op.create_table(
        "users",
        _id_column(),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="users_email_key"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "user_roles",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("role", sa.String(30), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "role", name="unique_user_role"),
        sa.CheckConstraint(
            "role IN ('ROLE_EMPLOYEE', 'ROLE_NURSE', 'ROLE_DOCTOR', 'ROLE_RH', 'ROLE_ADMIN')",
            name="user_roles_role_check",
        ),
    )
    op.create_index("idx_user_roles_role", "user_roles", ["role"])

    op.create_table(
        "employees",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("first_name", sa.Text(), nullable=True),
        sa.Column("last_name", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(30), nullable=True),
        sa.Column("manager1_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("manager2_id", postgresql.UUID(as_uuid=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", name="employees_user_id_key"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["manager1_id"], ["employees.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["manager2_id"], ["employees.id"], ondelete="SET NULL"),
    )

    op.create_table(
        "appointments",
        _id_column(),
        sa.Column("employee_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("nurse_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("doctor_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("type", sa.String(40), nullable=True),
        sa.Column("status", sa.String(40), nullable=False),
        sa.Column("visit_mode", sa.String(20), nullable=True),
        sa.Column("is_obligatory", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("requested_date_employee", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("proposed_date", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("scheduled_time", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("motif", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("medical_instructions", sa.Text(), nullable=True),
        sa.Column("medical_service_phone", sa.String(30), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["nurse_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["doctor_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["updated_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "status IN ('REQUESTED_EMPLOYEE', 'OBLIGATORY', 'PROPOSED_MEDECIN', "
            "'PLANNED_BY_MEDICAL_STAFF', 'CONFIRMED', 'CANCELLED', 'COMPLETED')",
            name="appointments_status_check",
        ),
        sa.CheckConstraint(
            "visit_mode IS NULL OR visit_mode IN ('IN_PERSON', 'REMOTE')",
            name="appointments_visit_mode_check",
        ),
    )
    op.create_index("idx_appointments_employee", "appointments", ["employee_id"])
    op.create_index("idx_appointments_status", "appointments", ["status"])

    op.create_table(
        "appointment_comments",
        _id_column(),
        sa.Column("appointment_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("author_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("comment", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["appointment_id"], ["appointments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["author_id"], ["users.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_appointment_comments_appointment",
        "appointment_comments",
        ["appointment_id", "created_at"],
    )

    op.create_table(
        "notifications",
        _id_column(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.String(255), nullable=False),
        sa.Column("type", sa.String(30), server_default=sa.text("'APPOINTMENT'"), nullable=False),
        sa.Column("read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("related_entity_type", sa.String(50), nullable=True),
        sa.Column("related_entity_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action_url", sa.String(255), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "type IN ('APPOINTMENT', 'VALIDATION', 'SYSTEM')",
            name="notifications_type_check",
        ),
    )
    op.create_index("idx_notifications_user_created", "notifications", ["user_id", "created_at"])
    op.create_index("idx_notifications_user_read", "notifications", ["user_id", "read"])
    op.create_index(
        "uq_notifications_user_entity",
        "notifications",
        ["user_id", "related_entity_type", "related_entity_id"],
        unique=True,
        postgresql_where=sa.text("related_entity_id IS NOT NULL"),
    )


def downgrade() -> None:
    """Drop every table created above, dependents first."""
    op.drop_index("uq_notifications_user_entity", table_name="notifications")
    op.drop_index("idx_notifications_user_read", table_name="notifications")
    op.drop_index("idx_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index("idx_appointment_comments_appointment", table_name="appointment_comments")
    op.drop_table("appointment_comments")

    op.drop_index("idx_appointments_status", table_name="appointments")
    op.drop_index("idx_appointments_employee", table_name="appointments")
    op.drop_table("appointments")

    op.drop_table("employees")

    op.drop_index("idx_user_roles_role", table_name="user_roles")
    op.drop_table("user_roles")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
