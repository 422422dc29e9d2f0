"""Ledger read failures. Callers on the ranking path absorb these; finalization lets them propagate."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for every ledger read failure."""


class TransientNetworkError(LedgerError):
    """Ledger endpoint unreachable, timed out, or answered 5xx. Retried on the caller's next request."""


class LedgerCallError(LedgerError):
    """Contract call reverted, was rejected (4xx), or returned an undecodable result."""


class LedgerNotConfiguredError(LedgerError):
    """No ledger endpoint or contract address configured."""
