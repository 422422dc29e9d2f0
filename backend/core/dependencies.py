from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.sources import ItemCatalog, StaticItemCatalog
from core.config import Settings, get_settings
from ledger.reader import LedgerReader
from leaderboard.engine import RankingEngine
from repositories.finalized_repo import FinalizedSnapshotRepository
from services.finalization_service import FinalizationService
from services.tally_cache import TallyCache

from .database import get_database_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding an AsyncSession from the DatabaseManager."""
    manager = get_database_manager()
    async with manager.session() as session:
        yield session


def get_app_settings() -> Settings:
    return get_settings()


def get_ledger_reader(request: Request) -> LedgerReader:
    """Process LedgerReader created at startup (app.state.ledger_reader)."""
    reader = getattr(request.app.state, "ledger_reader", None)
    if reader is None:
        raise RuntimeError("LedgerReader is not initialized.")
    return reader


def get_item_catalog(request: Request) -> ItemCatalog:
    return getattr(request.app.state, "item_catalog", None) or StaticItemCatalog()


def get_tally_cache(
    session: AsyncSession = Depends(get_db_session),
    ledger: LedgerReader = Depends(get_ledger_reader),
    settings: Settings = Depends(get_app_settings),
) -> TallyCache:
    return TallyCache(session, ledger, freshness_seconds=settings.tally_freshness_seconds)


def get_ranking_engine(
    session: AsyncSession = Depends(get_db_session),
    ledger: LedgerReader = Depends(get_ledger_reader),
    cache: TallyCache = Depends(get_tally_cache),
    settings: Settings = Depends(get_app_settings),
) -> RankingEngine:
    return RankingEngine(
        ledger,
        cache=cache,
        snapshots=FinalizedSnapshotRepository(session),
        current_season=settings.current_season or None,
    )


def get_finalization_service(
    session: AsyncSession = Depends(get_db_session),
    ledger: LedgerReader = Depends(get_ledger_reader),
    engine: RankingEngine = Depends(get_ranking_engine),
    settings: Settings = Depends(get_app_settings),
) -> FinalizationService:
    return FinalizationService(session, ledger, engine, batch_size=settings.snapshot_batch_size)
