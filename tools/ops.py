"""
Ops CLI: schema creation, season finalization, snapshot verification, detection, retention.
Usage: python tools/ops.py create-schema
        python tools/ops.py finalize --season N
        python tools/ops.py verify --season N
        python tools/ops.py detect [--lookback N]
        python tools/ops.py cleanup [--keep N] [--current-season N]
Exit code 0 on success, 1 on failure.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable

_backend = Path(__file__).resolve().parent.parent / "backend"
if not sys.path or sys.path[0] != str(_backend):
    sys.path.insert(0, str(_backend))


def _with_service(fn: Callable[..., Awaitable[int]]) -> int:
    """Run fn(service, catalog) inside one DB session with a configured ledger reader."""
    import models  # noqa: F401
    from catalog.sources import JsonFileItemCatalog, StaticItemCatalog
    from core.config import get_settings
    from core.database import init_database, dispose_database, get_database_manager
    from core.logging import setup_logging
    from ledger.reader import LedgerReader
    from leaderboard.engine import RankingEngine
    from services.finalization_service import FinalizationService

    async def _run() -> int:
        settings = get_settings()
        setup_logging(settings)
        catalog = JsonFileItemCatalog(settings.catalog_path) if settings.catalog_path else StaticItemCatalog()
        ledger = LedgerReader.from_settings(settings)
        await init_database(settings.database_url)
        try:
            await get_database_manager().create_all()
            async with get_database_manager().session() as session:
                engine = RankingEngine(ledger, current_season=settings.current_season or None)
                service = FinalizationService(
                    session, ledger, engine, batch_size=settings.snapshot_batch_size
                )
                return await fn(service, catalog)
        except Exception as e:
            print(f"{type(e).__name__}: {e}", file=sys.stderr)
            return 1
        finally:
            await ledger.aclose()
            await dispose_database()

    return asyncio.run(_run())


def _cmd_create_schema(_args: argparse.Namespace) -> int:
    from core.config import get_settings
    from create_schema import create_schema

    return asyncio.run(create_schema(get_settings().database_url))


def _cmd_finalize(args: argparse.Namespace) -> int:
    async def _run(service, catalog) -> int:
        result = await service.finalize_season_leaderboard(args.season, catalog.list_items())
        if result is None:
            print(f"{args.season},skipped")
        else:
            print(f"{result.season},finalized,{result.rows},{result.snapshot_hash}")
        return 0

    return _with_service(_run)


def _cmd_verify(args: argparse.Namespace) -> int:
    async def _run(service, _catalog) -> int:
        valid = await service.verify_snapshot(args.season)
        print(f"{args.season},{'PASS' if valid else 'FAIL'}")
        return 0 if valid else 1

    return _with_service(_run)


def _cmd_detect(args: argparse.Namespace) -> int:
    async def _run(service, catalog) -> int:
        seasons = await service.detect_and_store_new_finalizations(catalog.list_items(), args.lookback)
        print(",".join(str(s) for s in seasons) if seasons else "none")
        return 0

    return _with_service(_run)


def _cmd_cleanup(args: argparse.Namespace) -> int:
    async def _run(service, _catalog) -> int:
        summary = await service.cleanup(keep_seasons=args.keep, current_season=args.current_season)
        print(f"{summary['cutoff_season']},{summary['seasons_deleted']},{summary['rows_deleted']}")
        return 0

    return _with_service(_run)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        prog="ops", description="Ops: create-schema, finalize, verify, detect, cleanup"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    schema = sub.add_parser("create-schema", help="Create the tally cache and snapshot tables.")
    schema.set_defaults(func=_cmd_create_schema)

    finalize = sub.add_parser("finalize", help="Snapshot a season the ledger has closed.")
    finalize.add_argument("--season", type=int, required=True, help="Season number")
    finalize.set_defaults(func=_cmd_finalize)

    verify = sub.add_parser("verify", help="Recompute a stored snapshot's hash; exit nonzero on mismatch.")
    verify.add_argument("--season", type=int, required=True, help="Season number")
    verify.set_defaults(func=_cmd_verify)

    detect = sub.add_parser("detect", help="Snapshot recently closed seasons that are not stored yet.")
    detect.add_argument("--lookback", type=int, default=5, help="Seasons before the current one to check")
    detect.set_defaults(func=_cmd_detect)

    cleanup = sub.add_parser("cleanup", help="Delete snapshots older than current season minus --keep.")
    cleanup.add_argument("--keep", type=int, default=10, help="Seasons to keep")
    cleanup.add_argument("--current-season", type=int, default=None, help="Override the ledger's current season")
    cleanup.set_defaults(func=_cmd_cleanup)

    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
