"""
Interview service functions for API endpoints.

Sessions are owned by the candidate who booked them; questions belong to a
session and inherit its participants (owner plus assigned interviewer).
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.exceptions import NotFoundError, ValidationFailed
from database.models.interviews import InterviewQuestion, InterviewSession, SessionStatus
from database.models.users import User

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # some backends hand timezone-aware columns back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def _ensure_user_exists(db: AsyncSession, user_id: int, label: str = "User") -> None:
    if await db.get(User, user_id) is None:
        raise NotFoundError(f"{label} not found")


# ==================== Sessions ==================== #

async def create_session(
    db: AsyncSession,
    owner_id: int,
    interview_type: str,
    start_time: datetime,
    end_time: datetime,
    created_by: int,
    interviewer_id: Optional[int] = None,
) -> InterviewSession:
    """
    Book a session. New sessions always start ``Pending``.

    Raises:
        NotFoundError: owner or interviewer does not exist
    """
    if owner_id != created_by:
        await _ensure_user_exists(db, owner_id)
    if interviewer_id is not None:
        await _ensure_user_exists(db, interviewer_id, "Interviewer")

    session = InterviewSession(
        user_id=owner_id,
        interviewer_id=interviewer_id,
        interview_type=interview_type,
        start_time=start_time,
        end_time=end_time,
        status=SessionStatus.PENDING,
        last_updated_by=created_by,
    )
    db.add(session)
    await db.commit()
    await db.refresh(session)

    logger.info(f"Interview session created: id={session.id} owner={owner_id} by={created_by}")
    return session


async def get_session(db: AsyncSession, session_id: int) -> InterviewSession:
    session = await db.get(InterviewSession, session_id)
    if not session:
        raise NotFoundError("Interview session not found")
    return session


async def list_sessions(
    db: AsyncSession,
    user_id: Optional[int] = None,
    status: Optional[SessionStatus] = None,
    interview_type: Optional[str] = None,
) -> List[InterviewSession]:
    """
    List sessions, latest start first.

    Args:
        user_id: Restrict to one owner (always set for non-staff callers)
        status: Filter by status
        interview_type: Filter by type
    """
    query = select(InterviewSession)

    if user_id is not None:
        query = query.where(InterviewSession.user_id == user_id)
    if status:
        query = query.where(InterviewSession.status == status)
    if interview_type:
        query = query.where(InterviewSession.interview_type == interview_type)

    result = await db.execute(
        query.order_by(InterviewSession.start_time.desc(), InterviewSession.id.desc())
    )
    return list(result.scalars().all())


async def update_session(
    db: AsyncSession,
    session: InterviewSession,
    updates: Dict[str, Any],
    updated_by: int,
) -> InterviewSession:
    """
    Apply a partial update to a session already cleared by the ownership gate.

    The resulting time range must still be ordered.

    Raises:
        ValidationFailed: nothing to update, or start_time >= end_time
    """
    if not updates:
        raise ValidationFailed("No updates provided")

    start_time = updates.get("start_time", session.start_time)
    end_time = updates.get("end_time", session.end_time)
    if _as_utc(start_time) >= _as_utc(end_time):
        raise ValidationFailed("start_time must be before end_time")

    if updates.get("interviewer_id") is not None:
        await _ensure_user_exists(db, updates["interviewer_id"], "Interviewer")

    for field, value in updates.items():
        setattr(session, field, value)
    session.last_updated_by = updated_by

    await db.commit()
    await db.refresh(session)
    logger.info(f"Interview session updated: id={session.id} fields={sorted(updates)} by={updated_by}")
    return session


async def update_session_status(
    db: AsyncSession,
    session: InterviewSession,
    status: SessionStatus,
    updated_by: int,
) -> InterviewSession:
    session.status = status
    session.last_updated_by = updated_by

    await db.commit()
    await db.refresh(session)
    logger.info(f"Interview session status: id={session.id} status={status.value} by={updated_by}")
    return session


async def delete_session(db: AsyncSession, session: InterviewSession) -> None:
    """Delete a session; its questions cascade."""
    session_id = session.id
    await db.delete(session)
    await db.commit()
    logger.info(f"Interview session deleted: id={session_id}")


# ==================== Questions ==================== #

async def create_question(
    db: AsyncSession,
    session_id: int,
    question: str,
    answer: Optional[str] = None,
) -> InterviewQuestion:
    await get_session(db, session_id)

    interview_question = InterviewQuestion(session_id=session_id, question=question, answer=answer)
    db.add(interview_question)
    await db.commit()
    await db.refresh(interview_question)

    logger.info(f"Interview question created: id={interview_question.id} session={session_id}")
    return interview_question


async def list_questions(db: AsyncSession) -> List[InterviewQuestion]:
    result = await db.execute(
        select(InterviewQuestion).order_by(InterviewQuestion.created_at.desc(), InterviewQuestion.id.desc())
    )
    return list(result.scalars().all())


async def questions_for_session(db: AsyncSession, session_id: int) -> List[InterviewQuestion]:
    result = await db.execute(
        select(InterviewQuestion)
        .where(InterviewQuestion.session_id == session_id)
        .order_by(InterviewQuestion.id)
    )
    return list(result.scalars().all())


async def get_question(db: AsyncSession, question_id: int) -> InterviewQuestion:
    """Load a question together with its parent session."""
    result = await db.execute(
        select(InterviewQuestion)
        .options(selectinload(InterviewQuestion.session))
        .where(InterviewQuestion.id == question_id)
    )
    question = result.scalar_one_or_none()
    if not question:
        raise NotFoundError("Interview question not found")
    return question


async def submit_answer(
    db: AsyncSession,
    question: InterviewQuestion,
    submitted_answer: str,
) -> InterviewQuestion:
    question.submitted_answer = submitted_answer
    await db.commit()
    await db.refresh(question)

    logger.info(f"Answer submitted: question={question.id}")
    return question


async def provide_feedback(
    db: AsyncSession,
    question: InterviewQuestion,
    feedback: str,
    answer: Optional[str] = None,
) -> InterviewQuestion:
    question.feedback = feedback
    if answer is not None:
        question.answer = answer

    await db.commit()
    await db.refresh(question)

    logger.info(f"Feedback provided: question={question.id}")
    return question


async def delete_question(db: AsyncSession, question: InterviewQuestion) -> None:
    question_id = question.id
    await db.delete(question)
    await db.commit()
    logger.info(f"Interview question deleted: id={question_id}")


async def delete_questions_for_session(db: AsyncSession, session_id: int) -> int:
    result = await db.execute(
        delete(InterviewQuestion).where(InterviewQuestion.session_id == session_id)
    )
    await db.commit()

    logger.info(f"Interview questions deleted: session={session_id} count={result.rowcount}")
    return result.rowcount
