"""
Interview question endpoints.

Access follows the parent session: its participants (owner and assigned
interviewer) read questions and submit answers; admins author questions,
give feedback and delete them.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_authenticated_user
from api.schemas.common import serialize, success_response
from api.schemas.interviews import (
    AnswerSubmit,
    QuestionCreate,
    QuestionFeedback,
    QuestionResponse,
)
from api.services import interviews as interview_service
from core.middleware.authentication import Identity
from core.middleware.authorization import (
    Action,
    ensure_authorized,
    question_resource,
    questions_collection,
)
from database.models.users import Role

router = APIRouter(prefix="/questions", tags=["interview-questions"])

ADMIN_REQUIRED = "Admin access required"


def present_question(question, current_user: Identity) -> dict:
    """Serialize a question, holding back the reference answer until feedback is in."""
    data = serialize(QuestionResponse, question)
    if data["feedback"] is None and current_user.role != Role.ADMIN:
        data["answer"] = None
    return data


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Interview Question",
    description="Add a question to a session. Admin only.",
)
async def create_question(
    payload: QuestionCreate,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, questions_collection(), Action.CREATE, ADMIN_REQUIRED)
    question = await interview_service.create_question(
        db, payload.session_id, payload.question, answer=payload.answer
    )
    return success_response(present_question(question, current_user), message="Interview question created")


@router.get(
    "",
    summary="List Interview Questions",
    description="List every question across sessions. Admin only.",
)
async def list_questions(
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, questions_collection(), Action.LIST_ALL, ADMIN_REQUIRED)
    questions = await interview_service.list_questions(db)
    return success_response([present_question(q, current_user) for q in questions], count=len(questions))


@router.get(
    "/session/{session_id}",
    summary="Questions For Session",
    description="Questions of one session. Admin or session participant.",
)
async def questions_for_session(
    session_id: int = Path(..., ge=1, description="Session ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    session = await interview_service.get_session(db, session_id)
    ensure_authorized(current_user, question_resource(session), Action.READ)
    questions = await interview_service.questions_for_session(db, session_id)
    return success_response([present_question(q, current_user) for q in questions], count=len(questions))


@router.delete(
    "/session/{session_id}",
    summary="Delete Questions For Session",
    description="Delete every question of a session. Admin only.",
)
async def delete_questions_for_session(
    session_id: int = Path(..., ge=1, description="Session ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, questions_collection(), Action.DELETE, ADMIN_REQUIRED)
    deleted = await interview_service.delete_questions_for_session(db, session_id)
    return success_response(
        {"deleted_count": deleted},
        message=f"{deleted} questions deleted successfully",
    )


@router.get(
    "/{question_id}",
    summary="Get Interview Question",
)
async def get_question(
    question_id: int = Path(..., ge=1, description="Question ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    question = await interview_service.get_question(db, question_id)
    ensure_authorized(current_user, question_resource(question.session), Action.READ)
    return success_response(present_question(question, current_user))


@router.put(
    "/{question_id}/answer",
    summary="Submit Answer",
    description="Answer a question. Only participants of the session may answer.",
)
async def submit_answer(
    payload: AnswerSubmit,
    question_id: int = Path(..., ge=1, description="Question ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    question = await interview_service.get_question(db, question_id)
    ensure_authorized(
        current_user, question_resource(question.session), Action.ANSWER,
        "Only session participants can submit answers",
    )
    question = await interview_service.submit_answer(db, question, payload.submitted_answer)
    return success_response(present_question(question, current_user), message="Answer submitted")


@router.put(
    "/{question_id}/feedback",
    summary="Provide Feedback",
    description="Give feedback on an answer. Admin only.",
)
async def provide_feedback(
    payload: QuestionFeedback,
    question_id: int = Path(..., ge=1, description="Question ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    question = await interview_service.get_question(db, question_id)
    ensure_authorized(current_user, question_resource(question.session), Action.FEEDBACK, ADMIN_REQUIRED)
    question = await interview_service.provide_feedback(
        db, question, payload.feedback, answer=payload.answer
    )
    return success_response(present_question(question, current_user), message="Feedback provided")


@router.delete(
    "/{question_id}",
    summary="Delete Interview Question",
    description="Admin only.",
)
async def delete_question(
    question_id: int = Path(..., ge=1, description="Question ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    question = await interview_service.get_question(db, question_id)
    ensure_authorized(current_user, question_resource(question.session), Action.DELETE, ADMIN_REQUIRED)
    await interview_service.delete_question(db, question)
    return success_response(message="Interview question deleted successfully")
