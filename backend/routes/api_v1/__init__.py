"""API v1: leaderboard, seasons and tallies endpoints."""

from fastapi import APIRouter

from .leaderboard import router as leaderboard_router
from .seasons import router as seasons_router
from .tallies import router as tallies_router

router = APIRouter(prefix="/api/v1", tags=["api_v1"])
router.include_router(leaderboard_router)
router.include_router(seasons_router)
router.include_router(tallies_router)

api_v1_router = router
