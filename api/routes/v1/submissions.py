"""
Submission endpoints.

Anyone signed in can submit; authors read their own submissions; judging,
deletion and cross-user listings are admin only.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_authenticated_user
from api.schemas.common import serialize, serialize_many, success_response
from api.schemas.submissions import (
    SubmissionCreate,
    SubmissionResponse,
    SubmissionStatusUpdate,
)
from api.services import submissions as submission_service
from core.middleware.authentication import Identity
from core.middleware.authorization import Action, ensure_authorized, submission_resource

router = APIRouter(prefix="/submissions", tags=["submissions"])

ADMIN_REQUIRED = "Access denied. Admin privileges required."


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Submission",
)
async def create_submission(
    payload: SubmissionCreate,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, submission_resource(current_user.id), Action.CREATE)
    submission = await submission_service.create_submission(
        db,
        user_id=current_user.id,
        problem_id=payload.problem_id,
        code=payload.code,
        language=payload.language,
    )
    return success_response(serialize(SubmissionResponse, submission), message="Submission created")


@router.get(
    "",
    summary="List Submissions",
    description="Admin only.",
)
async def list_submissions(
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, submission_resource(), Action.LIST_ALL, ADMIN_REQUIRED)
    submissions = await submission_service.list_submissions(db)
    return success_response(serialize_many(SubmissionResponse, submissions), count=len(submissions))


@router.get(
    "/user/{user_id}",
    summary="Submissions By User",
    description="A user's submissions. Admin or the user themself.",
)
async def submissions_by_user(
    user_id: int = Path(..., ge=1, description="User ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(
        current_user, submission_resource(user_id), Action.READ,
        "You can only view your own submissions",
    )
    submissions = await submission_service.list_submissions(db, user_id=user_id)
    return success_response(serialize_many(SubmissionResponse, submissions), count=len(submissions))


@router.get(
    "/problem/{problem_id}",
    summary="Submissions By Problem",
    description="Every submission for a problem. Admin only.",
)
async def submissions_by_problem(
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, submission_resource(), Action.LIST_ALL, ADMIN_REQUIRED)
    submissions = await submission_service.list_submissions(db, problem_id=problem_id)
    return success_response(serialize_many(SubmissionResponse, submissions), count=len(submissions))


@router.get(
    "/{submission_id}",
    summary="Get Submission",
    description="Admin or the submission's author.",
)
async def get_submission(
    submission_id: int = Path(..., ge=1, description="Submission ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    submission = await submission_service.get_submission(db, submission_id)
    ensure_authorized(
        current_user, submission_resource(submission.user_id), Action.READ,
        "You can only view your own submissions",
    )
    return success_response(serialize(SubmissionResponse, submission))


@router.patch(
    "/{submission_id}/status",
    summary="Update Submission Status",
    description="Record the judging result. Admin only.",
)
async def update_submission_status(
    payload: SubmissionStatusUpdate,
    submission_id: int = Path(..., ge=1, description="Submission ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, submission_resource(), Action.UPDATE_STATUS, ADMIN_REQUIRED)
    submission = await submission_service.update_submission_status(
        db,
        submission_id,
        status=payload.status,
        result=payload.result,
        execution_time=payload.execution_time,
    )
    return success_response(serialize(SubmissionResponse, submission), message="Submission status updated")


@router.delete(
    "/{submission_id}",
    summary="Delete Submission",
    description="Admin only.",
)
async def delete_submission(
    submission_id: int = Path(..., ge=1, description="Submission ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, submission_resource(), Action.DELETE, ADMIN_REQUIRED)
    await submission_service.delete_submission(db, submission_id)
    return success_response(message="Submission deleted successfully")
