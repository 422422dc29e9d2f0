"""
Read-only ledger client for vote totals and season info.

Strict reads (read_*) raise LedgerError; soft reads (get_votes*) turn any
failure into zero votes and log a warning so a batch never fails because of
one item. Bulk reads fan out concurrently, bounded by max_concurrency, and
every single call carries its own timeout.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Union

from core.config import Settings
from ledger.errors import LedgerCallError, LedgerError, TransientNetworkError
from ledger.schema import PeriodInfo, VoteReading, decode_uint
from ledger.transport import HttpLedgerTransport, LedgerTransport
from ops.ops_events import log_ledger_read_failed

logger = logging.getLogger(__name__)

FN_VOTES_IN_SEASON = "getVotesInSeason"
FN_PERIOD_INFO = "getPeriodInfo"
FN_CURRENT_SEASON = "getCurrentSeason"

VoteOutcome = Union[int, LedgerError]


def item_id_to_uint(item_id: str) -> int:
    """Items are addressed on the ledger by their numeric token id."""
    s = str(item_id).strip()
    if not s.isdigit():
        raise LedgerCallError(f"item id {item_id!r} is not a ledger token id")
    return int(s)


class LedgerReader:
    """Concurrent, timeout-bounded reads against the voting contract."""

    def __init__(
        self,
        transport: LedgerTransport,
        timeout_seconds: float = 15.0,
        max_concurrency: int = 5,
    ) -> None:
        self._transport = transport
        self._timeout = timeout_seconds
        self._max_concurrency = max(1, max_concurrency)

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerReader":
        transport = HttpLedgerTransport(
            base_url=settings.ledger_base_url,
            chain=settings.ledger_chain,
            contract_address=settings.ledger_contract_address,
            api_key=settings.ledger_api_key,
            timeout_seconds=settings.ledger_timeout_seconds,
        )
        return cls(
            transport,
            timeout_seconds=settings.ledger_timeout_seconds,
            max_concurrency=settings.ledger_max_concurrency,
        )

    async def _call(self, function_name: str, args: List[int]):
        try:
            return await asyncio.wait_for(
                self._transport.read(function_name, args), timeout=self._timeout
            )
        except asyncio.TimeoutError as e:
            raise TransientNetworkError(
                f"{function_name}{tuple(args)}: no answer within {self._timeout}s"
            ) from e

    # --- strict reads ---

    async def read_votes(self, season: int, item_id: str) -> int:
        """Vote weight of item_id in season. Raises LedgerError."""
        token_id = item_id_to_uint(item_id)
        result = await self._call(FN_VOTES_IN_SEASON, [season, token_id])
        return VoteReading.from_result(season, item_id, result).votes

    async def read_votes_bulk(
        self, season: int, item_ids: Iterable[str]
    ) -> Dict[str, VoteOutcome]:
        """Per-item vote weight or the LedgerError that item hit; never raises LedgerError."""
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return {}
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _one(item_id: str) -> VoteOutcome:
            async with semaphore:
                try:
                    return await self.read_votes(season, item_id)
                except LedgerError as e:
                    return e

        outcomes = await asyncio.gather(*(_one(i) for i in ids))
        return dict(zip(ids, outcomes))

    async def get_period_info(self, season: int) -> PeriodInfo:
        result = await self._call(FN_PERIOD_INFO, [season])
        return PeriodInfo.from_result(season, result)

    async def get_current_season(self) -> int:
        result = await self._call(FN_CURRENT_SEASON, [])
        if isinstance(result, (list, tuple)) and len(result) == 1:
            result = result[0]
        return decode_uint(result, "currentSeason")

    # --- soft reads ---

    async def get_votes(self, season: int, item_id: str) -> int:
        """Vote weight of item_id in season; 0 on any ledger failure."""
        try:
            return await self.read_votes(season, item_id)
        except LedgerError as e:
            log_ledger_read_failed(FN_VOTES_IN_SEASON, season, item_id, str(e))
            return 0

    async def get_votes_bulk(self, season: int, item_ids: Iterable[str]) -> Dict[str, int]:
        """Vote weight per item; failed items count as 0."""
        outcomes = await self.read_votes_bulk(season, item_ids)
        votes: Dict[str, int] = {}
        failed = 0
        for item_id, outcome in outcomes.items():
            if isinstance(outcome, LedgerError):
                log_ledger_read_failed(FN_VOTES_IN_SEASON, season, item_id, str(outcome))
                votes[item_id] = 0
                failed += 1
            else:
                votes[item_id] = outcome
        if failed:
            logger.warning(
                "Ledger bulk read season=%s: %d of %d items failed, counted as zero votes",
                season,
                failed,
                len(outcomes),
            )
        return votes

    async def aclose(self) -> None:
        await self._transport.aclose()
