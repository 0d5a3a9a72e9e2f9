"""Appointments and appointment comments tables using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

# Metadata for all tables
metadata = MetaData()

appointments = Table(
    "appointments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    # References (never owned by the appointment)
    Column("employee_id", UUID(as_uuid=True), nullable=False),
    Column("nurse_id", UUID(as_uuid=True), nullable=True),
    Column("doctor_id", UUID(as_uuid=True), nullable=True),
    Column("created_by_id", UUID(as_uuid=True), nullable=True),
    Column("updated_by_id", UUID(as_uuid=True), nullable=True),
    # Workflow
    Column("type", String(40), nullable=True),
    Column("status", String(40), nullable=False),
    Column("visit_mode", String(20), nullable=True),
    Column("is_obligatory", Boolean, nullable=False, server_default=text("false")),
    # Dates, precedence: scheduled > proposed > requested
    Column("requested_date_employee", TIMESTAMP(timezone=True), nullable=True),
    Column("proposed_date", TIMESTAMP(timezone=True), nullable=True),
    Column("scheduled_time", TIMESTAMP(timezone=True), nullable=True),
    # Free text
    Column("motif", Text, nullable=True),
    Column("reason", Text, nullable=True),
    Column("notes", Text, nullable=True),
    Column("medical_instructions", Text, nullable=True),
    Column("medical_service_phone", String(30), nullable=True),
    Column("cancellation_reason", Text, nullable=True),
    # Audit fields
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "status IN ('REQUESTED_EMPLOYEE', 'OBLIGATORY', 'PROPOSED_MEDECIN', "
        "'PLANNED_BY_MEDICAL_STAFF', 'CONFIRMED', 'CANCELLED', 'COMPLETED')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "visit_mode IS NULL OR visit_mode IN ('IN_PERSON', 'REMOTE')",
        name="appointments_visit_mode_check",
    ),
    Index("idx_appointments_employee", "employee_id"),
    Index("idx_appointments_status", "status"),
)

appointment_comments = Table(
    "appointment_comments",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column(
        "appointment_id",
        UUID(as_uuid=True),
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("author_id", UUID(as_uuid=True), nullable=True),
    Column("comment", Text, nullable=False),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    Index("idx_appointment_comments_appointment", "appointment_id", "created_at"),
)
