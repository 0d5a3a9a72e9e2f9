"""Create every table directly from the SQLAlchemy Core metadata (development only).

Use ``scripts/migrate.py`` for real databases.
"""

import asyncio

from sqlalchemy import text

from app.database import engine
from app.models.appointments import metadata as appointments_metadata
from app.models.employees import metadata as employees_metadata
from app.models.notifications import metadata as notifications_metadata
from app.models.users import metadata as users_metadata

# Creation order follows the foreign keys
METADATA = [users_metadata, employees_metadata, appointments_metadata, notifications_metadata]


async def init_db() -> None:
    """Initialize the database by creating all tables."""
    async with engine.begin() as conn:
        await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
        for metadata in METADATA:
            await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print("✓ Database initialized successfully!")


if __name__ == "__main__":
    asyncio.run(init_db())
