"""Employee profile table using SQLAlchemy Core."""

from sqlalchemy import Column, DateTime, ForeignKey, MetaData, String, Table, Text, text
from sqlalchemy.dialects.postgresql import UUID

metadata = MetaData()

employees = Table(
    "employees",
    metadata,
    Column("id", UUID(as_uuid=True), primary_key=True, server_default=text("gen_random_uuid()")),
    Column(
        "user_id",
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    ),
    Column("first_name", Text),
    Column("last_name", Text),
    Column("phone", String(30)),
    # N+1 and N+2 line managers
    Column("manager1_id", UUID(as_uuid=True), ForeignKey("employees.id", ondelete="SET NULL")),
    Column("manager2_id", UUID(as_uuid=True), ForeignKey("employees.id", ondelete="SET NULL")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=text("NOW()")),
)
