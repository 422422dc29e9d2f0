"""Canonical SQLAlchemy models for the vote tally cache and the snapshot store.

Defines schema only; no business logic is wired here.
"""

from .base import Base
from .finalized import FinalizedPeriodMetadata, FinalizedSnapshotRow
from .vote_tally import VoteTallyCache

__all__ = [
    "Base",
    "FinalizedPeriodMetadata",
    "FinalizedSnapshotRow",
    "VoteTallyCache",
]
