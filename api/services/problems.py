"""
Problem service functions for API endpoints.

Problems are owned by their creator. Only approved problems show up in the
public listing; admins see everything.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from sqlalchemy import String, cast, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError, ValidationFailed
from database.models.problems import Difficulty, Problem

logger = logging.getLogger(__name__)

# fields a creator may not touch through the generic update
PROTECTED_FIELDS = {"id", "creator_id", "approved", "created_at", "updated_at"}


def _tag_filter(tag: str):
    # tags is a JSON list; match the quoted element in its serialized form
    return cast(Problem.tags, String).like(f'%"{tag}"%')


async def create_problem(db: AsyncSession, data: Dict[str, Any], creator_id: int) -> Problem:
    problem = Problem(**data, creator_id=creator_id, approved=False)
    db.add(problem)
    await db.commit()
    await db.refresh(problem)

    logger.info(f"Problem created: id={problem.id} creator={creator_id}")
    return problem


async def get_problem(db: AsyncSession, problem_id: int) -> Problem:
    problem = await db.get(Problem, problem_id)
    if not problem:
        raise NotFoundError("Problem not found")
    return problem


async def list_problems(
    db: AsyncSession,
    approved: Optional[bool] = True,
    difficulty: Optional[Difficulty] = None,
    tag: Optional[str] = None,
    search_query: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[Problem], int]:
    """
    List problems, newest first.

    Args:
        approved: Only problems in this approval state; None for all
        difficulty: Filter by difficulty
        tag: Filter by tag
        search_query: Case-insensitive match on title, description and tags
        limit: Maximum results
        offset: Pagination offset

    Returns:
        (problems on this page, total matching)
    """
    query = select(Problem)

    if approved is not None:
        query = query.where(Problem.approved.is_(approved))

    if difficulty:
        query = query.where(Problem.difficulty == difficulty)

    if tag:
        query = query.where(_tag_filter(tag))

    if search_query:
        pattern = f"%{search_query}%"
        query = query.where(
            or_(
                Problem.title.ilike(pattern),
                Problem.description.ilike(pattern),
                cast(Problem.tags, String).ilike(pattern),
            )
        )

    total_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = total_result.scalar() or 0

    result = await db.execute(
        query.order_by(Problem.created_at.desc(), Problem.id.desc()).limit(limit).offset(offset)
    )
    return list(result.scalars().all()), total


async def update_problem(db: AsyncSession, problem: Problem, updates: Dict[str, Any]) -> Problem:
    """
    Apply a partial update to a problem already cleared by the ownership gate.

    Raises:
        ValidationFailed: nothing to update
    """
    updates = {k: v for k, v in updates.items() if k not in PROTECTED_FIELDS}
    if not updates:
        raise ValidationFailed("No updates provided")

    for field, value in updates.items():
        setattr(problem, field, value)

    await db.commit()
    await db.refresh(problem)
    logger.info(f"Problem updated: id={problem.id} fields={sorted(updates)}")
    return problem


async def approve_problem(db: AsyncSession, problem_id: int, approved_by: int) -> Problem:
    problem = await get_problem(db, problem_id)
    problem.approved = True
    await db.commit()
    await db.refresh(problem)

    logger.info(f"Problem approved: id={problem_id} by={approved_by}")
    return problem


async def delete_problem(db: AsyncSession, problem: Problem) -> None:
    problem_id = problem.id
    await db.delete(problem)
    await db.commit()
    logger.info(f"Problem deleted: id={problem_id}")


async def bulk_delete_problems(db: AsyncSession, problem_ids: List[int]) -> int:
    """
    Delete several problems at once.

    Returns:
        Number of problems actually deleted
    """
    if not problem_ids:
        raise ValidationFailed("Please provide an array of problem IDs")

    result = await db.execute(delete(Problem).where(Problem.id.in_(problem_ids)))
    await db.commit()

    logger.info(f"Problems bulk deleted: requested={len(problem_ids)} deleted={result.rowcount}")
    return result.rowcount
