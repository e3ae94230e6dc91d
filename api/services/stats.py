"""
User statistics service functions.

Stats rows are created lazily on first access. The solved-problem counter
and its running average are updated in a single UPDATE so concurrent
increments never lose writes.
"""

from typing import Any, Dict, List
import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.stats import LeaderboardSort
from core.exceptions import NotFoundError, ValidationFailed
from database.models.stats import UserStats
from database.models.users import User

logger = logging.getLogger(__name__)

LEADERBOARD_COLUMNS = {
    LeaderboardSort.PROBLEMS_SOLVED: UserStats.problems_solved,
    LeaderboardSort.AVERAGE_SCORE: UserStats.average_score,
    LeaderboardSort.TIME_SPENT: UserStats.time_spent,
}


async def _ensure_user_exists(db: AsyncSession, user_id: int) -> None:
    if await db.get(User, user_id) is None:
        raise NotFoundError("User not found")


async def _reload(db: AsyncSession, user_id: int) -> UserStats:
    stats = await db.get(UserStats, user_id, populate_existing=True)
    if stats is None:
        raise NotFoundError("User statistics not found")
    return stats


async def get_or_create_stats(db: AsyncSession, user_id: int) -> UserStats:
    """
    Fetch a user's stats, creating the zeroed row on first access.

    Raises:
        NotFoundError: user does not exist
    """
    stats = await db.get(UserStats, user_id)
    if stats:
        return stats

    await _ensure_user_exists(db, user_id)

    db.add(UserStats(user_id=user_id, problems_solved=0, average_score=0.0, time_spent=0))
    try:
        await db.commit()
    except IntegrityError:
        # created concurrently; use theirs
        await db.rollback()
    else:
        logger.info(f"User stats created: user={user_id}")

    return await _reload(db, user_id)


async def update_stats(db: AsyncSession, user_id: int, updates: Dict[str, Any]) -> UserStats:
    """Upsert: apply the given fields, creating the row if needed."""
    if not updates:
        raise ValidationFailed("No updates provided")

    stats = await get_or_create_stats(db, user_id)
    for field, value in updates.items():
        setattr(stats, field, value)

    await db.commit()
    logger.info(f"User stats updated: user={user_id} fields={sorted(updates)}")
    return await _reload(db, user_id)


async def increment_problems_solved(
    db: AsyncSession,
    user_id: int,
    score_increment: float = 0,
    time_spent: int = 0,
) -> UserStats:
    """
    Count one more solved problem and fold its score into the running average.

    ``average' = (average * solved + score) / (solved + 1)`` is computed by
    the database from the row's current values, so two concurrent calls with
    scores 10 and 20 on an empty row always end at solved=2, average=15.
    """
    increment = (
        update(UserStats)
        .where(UserStats.user_id == user_id)
        .values(
            average_score=(
                (UserStats.average_score * UserStats.problems_solved + score_increment)
                / (UserStats.problems_solved + 1)
            ),
            problems_solved=UserStats.problems_solved + 1,
            time_spent=UserStats.time_spent + time_spent,
            last_updated=func.now(),
        )
        .execution_options(synchronize_session=False)
    )

    result = await db.execute(increment)
    if result.rowcount == 0:
        await _ensure_user_exists(db, user_id)
        db.add(
            UserStats(
                user_id=user_id,
                problems_solved=1,
                average_score=float(score_increment),
                time_spent=time_spent,
            )
        )
        try:
            await db.commit()
        except IntegrityError:
            # another request created the row first; apply ours on top of it
            await db.rollback()
            await db.execute(increment)
            await db.commit()
    else:
        await db.commit()

    logger.info(f"Problems solved incremented: user={user_id}")
    return await _reload(db, user_id)


async def update_study_plan(db: AsyncSession, user_id: int, study_plan: Dict[str, Any]) -> UserStats:
    return await update_stats(db, user_id, {"study_plan": study_plan})


async def leaderboard(
    db: AsyncSession,
    sort_by: LeaderboardSort = LeaderboardSort.PROBLEMS_SOLVED,
    limit: int = 10,
) -> List[Dict[str, Any]]:
    """
    Top users by the chosen stat, with their usernames.
    """
    column = LEADERBOARD_COLUMNS[sort_by]
    result = await db.execute(
        select(UserStats, User.username)
        .join(User, User.id == UserStats.user_id)
        .order_by(column.desc(), UserStats.user_id)
        .limit(limit)
    )

    return [
        {
            "user_id": stats.user_id,
            "username": username,
            "problems_solved": stats.problems_solved,
            "average_score": stats.average_score,
            "time_spent": stats.time_spent,
            "study_plan": stats.study_plan,
            "last_updated": stats.last_updated,
        }
        for stats, username in result.all()
    ]
