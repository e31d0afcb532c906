import asyncio
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

import classroll.core.models  # noqa: F401  (registers all tables on Base.metadata)
from classroll.db.session import Base, engine


REQUIRED_TABLES: List[str] = [
    "users",
    "classes",
    "students",
    "attendance_records",
]


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """Create any missing table (with its unique constraints). Returns the names created."""
    async with db_engine.begin() as conn:
        existing = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        if missing:
            tables = [Base.metadata.tables[name] for name in missing]
            await conn.run_sync(lambda sync_conn: Base.metadata.create_all(sync_conn, tables=tables))
    return missing


async def main() -> None:
    missing = await ensure_tables(engine)
    if missing:
        print("Created missing tables: " + ", ".join(missing))
    else:
        print("All required tables already exist in the database.")


if __name__ == "__main__":
    asyncio.run(main())
