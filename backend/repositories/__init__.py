"""Repository layer for DB access only (CRUD + simple queries).

Repositories operate on the canonical models from backend/models/ and contain
no business logic. All repositories accept AsyncSession explicitly; commits are
left to the caller's DatabaseManager session.
"""

from .base import BaseRepository
from .finalized_repo import FinalizedSnapshotRepository
from .vote_tally_repo import VoteTallyRepository

__all__ = [
    "BaseRepository",
    "FinalizedSnapshotRepository",
    "VoteTallyRepository",
]
