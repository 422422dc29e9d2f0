"""Read-only access to the on-chain voting contract."""

from .errors import LedgerCallError, LedgerError, LedgerNotConfiguredError, TransientNetworkError
from .reader import LedgerReader
from .schema import VOTE_SCALE, PeriodInfo, VoteReading
from .transport import HttpLedgerTransport, LedgerTransport

__all__ = [
    "HttpLedgerTransport",
    "LedgerCallError",
    "LedgerError",
    "LedgerNotConfiguredError",
    "LedgerReader",
    "LedgerTransport",
    "PeriodInfo",
    "TransientNetworkError",
    "VOTE_SCALE",
    "VoteReading",
]
