import asyncio
import sys

from core.config import get_settings
from core.database import init_database, dispose_database, get_database_manager
from tools.schema_check import check_sqlite_schema_mismatch


def _is_sqlite_file_url(url: str) -> bool:
    if not url or "sqlite" not in url.lower():
        return False
    if ":memory:" in url:
        return False
    return True


async def create_schema(database_url: str) -> int:
    """Create the tally cache and snapshot tables. Returns a process exit code."""
    await init_database(database_url)
    manager = get_database_manager()
    try:
        if _is_sqlite_file_url(database_url):
            async with manager.engine.connect() as conn:
                has_mismatch, message = await conn.run_sync(check_sqlite_schema_mismatch)
            if has_mismatch:
                print(f"Schema mismatch: {message}", file=sys.stderr)
                return 1
        await manager.create_all()
    finally:
        await dispose_database()
    print("schema ok")
    return 0


async def main() -> int:
    return await create_schema(get_settings().database_url)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
