"""Submission service functions. A submission is owned by its author."""

from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError
from database.models.submissions import Submission, SubmissionStatus
from api.services.problems import get_problem

logger = logging.getLogger(__name__)


async def create_submission(
    db: AsyncSession,
    user_id: int,
    problem_id: int,
    code: str,
    language: str,
) -> Submission:
    """
    Record a submission for judging; starts ``Pending``.

    Raises:
        NotFoundError: problem does not exist
    """
    await get_problem(db, problem_id)

    submission = Submission(
        user_id=user_id,
        problem_id=problem_id,
        code=code,
        language=language,
        status=SubmissionStatus.PENDING,
    )
    db.add(submission)
    await db.commit()
    await db.refresh(submission)

    logger.info(f"Submission created: id={submission.id} problem={problem_id} user={user_id}")
    return submission


async def get_submission(db: AsyncSession, submission_id: int) -> Submission:
    submission = await db.get(Submission, submission_id)
    if not submission:
        raise NotFoundError("Submission not found")
    return submission


async def list_submissions(
    db: AsyncSession,
    user_id: Optional[int] = None,
    problem_id: Optional[int] = None,
) -> List[Submission]:
    """List submissions, newest first, optionally for one user or problem."""
    query = select(Submission)

    if user_id is not None:
        query = query.where(Submission.user_id == user_id)
    if problem_id is not None:
        query = query.where(Submission.problem_id == problem_id)

    result = await db.execute(query.order_by(Submission.submitted_at.desc(), Submission.id.desc()))
    return list(result.scalars().all())


async def update_submission_status(
    db: AsyncSession,
    submission_id: int,
    status: SubmissionStatus,
    result: Optional[str] = None,
    execution_time: Optional[float] = None,
) -> Submission:
    submission = await get_submission(db, submission_id)

    submission.status = status
    submission.result = result
    submission.execution_time = execution_time

    await db.commit()
    await db.refresh(submission)
    logger.info(f"Submission judged: id={submission_id} status={status.value}")
    return submission


async def delete_submission(db: AsyncSession, submission_id: int) -> None:
    submission = await get_submission(db, submission_id)
    await db.delete(submission)
    await db.commit()
    logger.info(f"Submission deleted: id={submission_id}")
