"""
Interview session endpoints.

Candidates book and manage their own sessions; admins and interviewers see
and manage all of them. Feedback, status changes and interviewer assignment
are reserved for admins and interviewers; deletion for admins.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_authenticated_user
from api.schemas.common import serialize, serialize_many, success_response
from api.schemas.interviews import (
    SessionCreate,
    SessionResponse,
    SessionStatusUpdate,
    SessionUpdate,
)
from api.services import interviews as interview_service
from core.middleware.authentication import Identity
from core.middleware.authorization import (
    Action,
    authorize,
    ensure_authorized,
    session_resource,
    session_target,
    sessions_collection,
)
from database.models.interviews import SessionStatus

router = APIRouter(prefix="/sessions", tags=["interview-sessions"])

STAFF_ONLY_FEEDBACK = "Only interviewers can provide feedback"
STAFF_ONLY_ASSIGN = "Only administrators and interviewers can assign interviewers"


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Interview Session",
    description="Book a session for yourself, or for another user as admin or interviewer.",
)
async def create_session(
    payload: SessionCreate,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    owner_id = payload.user_id or current_user.id
    target = session_target(owner_id)

    ensure_authorized(
        current_user, target, Action.CREATE,
        "Only administrators and interviewers can create sessions for other users",
    )
    if payload.interviewer_id is not None:
        ensure_authorized(current_user, target, Action.ASSIGN, STAFF_ONLY_ASSIGN)

    session = await interview_service.create_session(
        db,
        owner_id=owner_id,
        interview_type=payload.interview_type,
        start_time=payload.start_time,
        end_time=payload.end_time,
        created_by=current_user.id,
        interviewer_id=payload.interviewer_id,
    )
    return success_response(serialize(SessionResponse, session), message="Interview session created")


@router.get(
    "",
    summary="List Interview Sessions",
    description="Admins and interviewers see all sessions (optionally one user's); everyone else sees their own.",
)
async def list_sessions(
    user_id: Optional[int] = Query(None, ge=1, description="Filter by owner (staff only)"),
    session_status: Optional[SessionStatus] = Query(None, alias="status", description="Filter by status"),
    interview_type: Optional[str] = Query(None, max_length=50, description="Filter by type"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    if not authorize(current_user, sessions_collection(), Action.LIST_ALL).allowed:
        # non-staff only ever see their own sessions, whatever the filter says
        user_id = current_user.id

    sessions = await interview_service.list_sessions(
        db,
        user_id=user_id,
        status=session_status,
        interview_type=interview_type,
    )
    return success_response(serialize_many(SessionResponse, sessions), count=len(sessions))


@router.get(
    "/{session_id}",
    summary="Get Interview Session",
)
async def get_session(
    session_id: int = Path(..., ge=1, description="Session ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    session = await interview_service.get_session(db, session_id)
    ensure_authorized(current_user, session_resource(session), Action.READ)
    return success_response(serialize(SessionResponse, session))


@router.put(
    "/{session_id}",
    summary="Update Interview Session",
    description="Update a session. Owner, admin or interviewer; feedback and interviewer assignment are staff only.",
)
async def update_session(
    payload: SessionUpdate,
    session_id: int = Path(..., ge=1, description="Session ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    session = await interview_service.get_session(db, session_id)
    resource = session_resource(session)
    updates = payload.model_dump(exclude_unset=True)

    ensure_authorized(current_user, resource, Action.UPDATE)
    if "feedback" in updates:
        ensure_authorized(current_user, resource, Action.UPDATE_FEEDBACK, STAFF_ONLY_FEEDBACK)
    if "interviewer_id" in updates:
        ensure_authorized(current_user, resource, Action.ASSIGN, STAFF_ONLY_ASSIGN)

    session = await interview_service.update_session(db, session, updates, updated_by=current_user.id)
    return success_response(serialize(SessionResponse, session), message="Interview session updated")


@router.patch(
    "/{session_id}/status",
    summary="Update Session Status",
    description="Move a session between Pending, In Progress and Completed. Admin or interviewer only.",
)
async def update_session_status(
    payload: SessionStatusUpdate,
    session_id: int = Path(..., ge=1, description="Session ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    session = await interview_service.get_session(db, session_id)
    ensure_authorized(
        current_user, session_resource(session), Action.UPDATE_STATUS,
        "Only interviewers can update session status",
    )
    session = await interview_service.update_session_status(
        db, session, payload.status, updated_by=current_user.id
    )
    return success_response(serialize(SessionResponse, session), message="Session status updated")


@router.delete(
    "/{session_id}",
    summary="Delete Interview Session",
    description="Delete a session and its questions. Admin only.",
)
async def delete_session(
    session_id: int = Path(..., ge=1, description="Session ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    session = await interview_service.get_session(db, session_id)
    ensure_authorized(
        current_user, session_resource(session), Action.DELETE,
        "Only administrators can delete sessions",
    )
    await interview_service.delete_session(db, session)
    return success_response(message="Interview session deleted successfully")
