import logging

from .config import Settings

# Third-party loggers that are chatty at INFO/DEBUG.
_NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite", "sqlalchemy.engine")


def setup_logging(settings: Settings) -> None:
    """Configure application-wide logging based on settings.

    Format: timestamp | level | logger | message. Ops events (logger
    "ops_events") go through the same handlers as everything else.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(logger_name).setLevel(level)
    # httpx logs every request at INFO; a ledger fan-out would flood the log.
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(level, logging.WARNING))
