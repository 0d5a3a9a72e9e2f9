"""In-app notification table."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    text,
)
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID

metadata = MetaData()

notifications = Table(
    "notifications",
    metadata,
    Column(
        "id",
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    ),
    Column(
        "user_id", UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    ),
    Column("title", String(255), nullable=False),
    Column("message", String(255), nullable=False),
    Column("type", String(30), nullable=False, server_default="APPOINTMENT"),
    Column("read", Boolean, nullable=False, server_default=text("false")),
    Column("related_entity_type", String(50), nullable=True),
    Column("related_entity_id", UUID(as_uuid=True), nullable=True),
    Column("action_url", String(255), nullable=True),
    Column("created_at", TIMESTAMP(timezone=True), nullable=False, server_default=text("NOW()")),
    CheckConstraint(
        "type IN ('APPOINTMENT', 'VALIDATION', 'SYSTEM')",
        name="notifications_type_check",
    ),
    Index("idx_notifications_user_created", "user_id", "created_at"),
    Index("idx_notifications_user_read", "user_id", "read"),
    # At most one row per (recipient, related entity); target of the upsert
    Index(
        "uq_notifications_user_entity",
        "user_id",
        "related_entity_type",
        "related_entity_id",
        unique=True,
        postgresql_where=text("related_entity_id IS NOT NULL"),
    ),
)
