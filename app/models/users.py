"""User and role membership tables using SQLAlchemy Core."""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column("email", Text, nullable=False, unique=True, index=True),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("phone", String(30)),
    # Account state
    Column("is_active", Boolean, nullable=False, server_default=text("true")),
    # Audit
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)

# One row per granted role; queried directly for "all nurses / doctors / RH"
user_roles = Table(
    "user_roles",
    metadata,
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("role", String(30), nullable=False),
    UniqueConstraint("user_id", "role", name="unique_user_role"),
    CheckConstraint(
        "role IN ('ROLE_EMPLOYEE', 'ROLE_NURSE', 'ROLE_DOCTOR', 'ROLE_RH', 'ROLE_ADMIN')",
        name="user_roles_role_check",
    ),
    Index("idx_user_roles_role", "role"),
)
