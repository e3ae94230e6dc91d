"""
User statistics endpoints.

Stats are readable by anyone signed in (the leaderboard is public); only the
user themself or an admin may change them.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_authenticated_user
from api.schemas.common import serialize, serialize_many, success_response
from api.schemas.stats import (
    LeaderboardEntry,
    LeaderboardSort,
    StatsIncrement,
    StatsResponse,
    StatsUpdate,
    StudyPlanUpdate,
)
from api.services import stats as stats_service
from core.exceptions import ValidationFailed
from core.middleware.authentication import Identity
from core.middleware.authorization import Action, ensure_authorized, stats_resource

router = APIRouter(prefix="/stats", tags=["stats"])

OWN_STATS_ONLY = "You can only modify your own statistics"


@router.get(
    "/leaderboard",
    summary="Leaderboard",
    description="Top users by problemsSolved, averageScore or timeSpent.",
)
async def get_leaderboard(
    sort_by: LeaderboardSort = Query(LeaderboardSort.PROBLEMS_SOLVED, description="Stat to rank by"),
    limit: int = Query(10, ge=1, le=100, description="Number of entries"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    entries = await stats_service.leaderboard(db, sort_by=sort_by, limit=limit)
    return success_response(serialize_many(LeaderboardEntry, entries), count=len(entries))


@router.get(
    "/{user_id}",
    summary="Get User Stats",
    description="A user's statistics; created with zero values on first access.",
)
async def get_user_stats(
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, stats_resource(user_id), Action.READ)
    stats = await stats_service.get_or_create_stats(db, user_id)
    return success_response(serialize(StatsResponse, stats))


@router.put(
    "/{user_id}",
    summary="Update User Stats",
    description="Upsert a user's statistics. The user themself or an admin.",
)
async def update_user_stats(
    payload: StatsUpdate,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, stats_resource(user_id), Action.UPDATE, OWN_STATS_ONLY)
    stats = await stats_service.update_stats(db, user_id, payload.model_dump(exclude_unset=True))
    return success_response(serialize(StatsResponse, stats), message="User statistics updated successfully")


@router.post(
    "/{user_id}/increment",
    summary="Increment Problems Solved",
    description="Count a solved problem and fold its score into the running average.",
)
async def increment_problems_solved(
    payload: StatsIncrement,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, stats_resource(user_id), Action.UPDATE, OWN_STATS_ONLY)
    stats = await stats_service.increment_problems_solved(
        db,
        user_id,
        score_increment=payload.score_increment,
        time_spent=payload.time_spent,
    )
    return success_response(serialize(StatsResponse, stats), message="Problem solved count incremented")


@router.put(
    "/{user_id}/study-plan",
    summary="Update Study Plan",
)
async def update_study_plan(
    payload: StudyPlanUpdate,
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, stats_resource(user_id), Action.UPDATE, OWN_STATS_ONLY)
    if payload.study_plan is None:
        raise ValidationFailed("Study plan is required")

    stats = await stats_service.update_study_plan(db, user_id, payload.study_plan)
    return success_response(serialize(StatsResponse, stats), message="Study plan updated successfully")
