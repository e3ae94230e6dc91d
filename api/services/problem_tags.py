"""Problem tag service functions. A tag is unique per problem."""

from typing import List
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import DuplicateRecordError, NotFoundError
from database.models.problems import Problem, ProblemTag
from api.services.problems import get_problem

logger = logging.getLogger(__name__)


async def create_tag(db: AsyncSession, problem_id: int, tag: str) -> ProblemTag:
    """
    Attach a tag to a problem.

    Raises:
        NotFoundError: problem does not exist
        DuplicateRecordError: the problem already has this tag
    """
    await get_problem(db, problem_id)

    existing = await db.execute(
        select(ProblemTag.id).where(ProblemTag.problem_id == problem_id, ProblemTag.tag == tag)
    )
    if existing.scalar_one_or_none() is not None:
        raise DuplicateRecordError("This tag already exists for the problem")

    problem_tag = ProblemTag(problem_id=problem_id, tag=tag)
    db.add(problem_tag)
    try:
        await db.commit()
    except IntegrityError:
        # unique constraint caught a concurrent insert
        await db.rollback()
        raise DuplicateRecordError("This tag already exists for the problem")
    await db.refresh(problem_tag)

    logger.info(f"Tag created: problem={problem_id} tag={tag}")
    return problem_tag


async def list_tags(db: AsyncSession) -> List[ProblemTag]:
    result = await db.execute(select(ProblemTag).order_by(ProblemTag.tag, ProblemTag.problem_id))
    return list(result.scalars().all())


async def tags_for_problem(db: AsyncSession, problem_id: int) -> List[ProblemTag]:
    result = await db.execute(
        select(ProblemTag).where(ProblemTag.problem_id == problem_id).order_by(ProblemTag.tag)
    )
    return list(result.scalars().all())


async def problems_for_tag(db: AsyncSession, tag: str, approved_only: bool = True) -> List[Problem]:
    query = (
        select(Problem)
        .join(ProblemTag, ProblemTag.problem_id == Problem.id)
        .where(ProblemTag.tag == tag)
    )
    if approved_only:
        query = query.where(Problem.approved.is_(True))

    result = await db.execute(query.order_by(Problem.id))
    return list(result.scalars().all())


async def delete_tag(db: AsyncSession, tag_id: int) -> None:
    problem_tag = await db.get(ProblemTag, tag_id)
    if not problem_tag:
        raise NotFoundError("Problem tag not found")

    await db.delete(problem_tag)
    await db.commit()
    logger.info(f"Tag deleted: id={tag_id}")


async def delete_tags_for_problem(db: AsyncSession, problem_id: int) -> int:
    result = await db.execute(delete(ProblemTag).where(ProblemTag.problem_id == problem_id))
    await db.commit()

    logger.info(f"Tags deleted: problem={problem_id} count={result.rowcount}")
    return result.rowcount
