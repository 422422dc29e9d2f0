import os
from dataclasses import dataclass
from functools import lru_cache


def _default_database_url() -> str:
    """Default DB path: a local SQLite file next to the working directory."""
    return "sqlite+aiosqlite:///./app.db"


def _env_float(name: str, default: float, lo: float, hi: float) -> float:
    try:
        v = os.environ.get(name)
        if v is not None and v.strip():
            return min(hi, max(lo, float(v.strip())))
    except ValueError:
        pass
    return default


def _env_int(name: str, default: int, lo: int) -> int:
    try:
        v = os.environ.get(name)
        if v is not None and v.strip():
            return max(lo, int(v.strip()))
    except ValueError:
        pass
    return default


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Vote Leaderboard"
    env: str = "dev"
    database_url: str = ""  # set from from_env
    log_level: str = "INFO"

    # Ledger read gateway (contract read endpoint)
    ledger_base_url: str = ""
    ledger_chain: str = "base"
    ledger_contract_address: str = ""
    ledger_api_key: str = ""
    ledger_timeout_seconds: float = 15.0
    ledger_max_concurrency: int = 5

    # Tally cache freshness window; 0 means every zero tally is resynced
    tally_freshness_seconds: int = 3600

    snapshot_batch_size: int = 50
    catalog_path: str = ""
    # 0 = ask the ledger
    current_season: int = 0

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables."""
        db_url = os.getenv("DATABASE_URL") or _default_database_url()
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            env=os.getenv("ENV", cls.env),
            database_url=db_url,
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            ledger_base_url=(os.getenv("LEDGER_BASE_URL") or "").strip(),
            ledger_chain=(os.getenv("LEDGER_CHAIN") or cls.ledger_chain).strip(),
            ledger_contract_address=(os.getenv("LEDGER_CONTRACT_ADDRESS") or "").strip(),
            ledger_api_key=(os.getenv("LEDGER_API_KEY") or "").strip(),
            ledger_timeout_seconds=_env_float(
                "LEDGER_TIMEOUT_SECONDS", cls.ledger_timeout_seconds, 1.0, 60.0
            ),
            ledger_max_concurrency=_env_int(
                "LEDGER_MAX_CONCURRENCY", cls.ledger_max_concurrency, 1
            ),
            tally_freshness_seconds=_env_int(
                "TALLY_FRESHNESS_SECONDS", cls.tally_freshness_seconds, 0
            ),
            snapshot_batch_size=_env_int("SNAPSHOT_BATCH_SIZE", cls.snapshot_batch_size, 1),
            catalog_path=(os.getenv("ITEM_CATALOG_PATH") or "").strip(),
            current_season=_env_int("CURRENT_SEASON", cls.current_season, 0),
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings.from_env()
