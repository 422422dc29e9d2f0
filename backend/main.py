import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog.sources import JsonFileItemCatalog, StaticItemCatalog
from core.config import get_settings
from core.database import init_database, dispose_database, get_database_manager
from core.logging import setup_logging
from ledger.reader import LedgerReader
from routes.api_v1 import api_v1_router


settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

# CORS: defined here only, before any routers.
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(api_v1_router)


@app.on_event("startup")
async def on_startup() -> None:
    """Application startup hook."""
    await init_database(settings.database_url)
    await get_database_manager().create_all()
    app.state.ledger_reader = LedgerReader.from_settings(settings)
    if settings.catalog_path:
        app.state.item_catalog = JsonFileItemCatalog(settings.catalog_path)
    else:
        logger.warning("ITEM_CATALOG_PATH not set; leaderboard will be empty")
        app.state.item_catalog = StaticItemCatalog()
    if not settings.ledger_base_url or not settings.ledger_contract_address:
        logger.warning("Ledger endpoint not configured; all tallies will read as zero")
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Application shutdown hook."""
    reader = getattr(app.state, "ledger_reader", None)
    if reader is not None:
        await reader.aclose()
    await dispose_database()
    logger.info("Application shutdown complete")


@app.get("/health")
async def health() -> dict:
    """Simple health check endpoint."""
    return {"status": "ok"}
