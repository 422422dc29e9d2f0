# Ensure backend is at sys.path[0] when pytest runs (from repo root or from backend dir)
import sys
from pathlib import Path

_tests_dir = Path(__file__).resolve().parent
_backend = _tests_dir.parent
_str_backend = str(_backend)
if sys.path[0:1] != [_str_backend]:
    sys.path.insert(0, _str_backend)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from core.database import dispose_database, get_database_manager, init_database  # noqa: E402
from tests.fakes import FakeLedgerTransport  # noqa: E402


@pytest.fixture
def fake_transport() -> FakeLedgerTransport:
    return FakeLedgerTransport()


@pytest_asyncio.fixture
async def test_db():
    """In-memory SQLite with the tally cache and snapshot tables."""
    await init_database("sqlite+aiosqlite:///:memory:")
    await get_database_manager().create_all()
    yield get_database_manager()
    await dispose_database()
