"""
Coding problem endpoints.

Anyone signed in can read and propose problems; creators and admins edit
them; admins approve problems into the public listing.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, get_pagination_params, require_authenticated_user
from api.schemas.common import IdList, serialize, serialize_many, success_response
from api.schemas.problems import ProblemCreate, ProblemResponse, ProblemUpdate
from api.services import problems as problem_service
from core.middleware.authentication import Identity
from core.middleware.authorization import (
    Action,
    authorize,
    ensure_authorized,
    problem_resource,
)
from database.models.problems import Difficulty

router = APIRouter(prefix="/problems", tags=["problems"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Problem",
    description="Propose a new problem. It stays hidden from the public listing until approved.",
)
async def create_problem(
    payload: ProblemCreate,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_resource(), Action.CREATE)
    problem = await problem_service.create_problem(db, payload.model_dump(), creator_id=current_user.id)
    return success_response(serialize(ProblemResponse, problem), message="Problem created successfully")


@router.get(
    "",
    summary="List Problems",
    description="List approved problems with optional filters. Admins also see unapproved ones.",
)
async def list_problems(
    difficulty: Optional[Difficulty] = Query(None, description="Filter by difficulty"),
    tag: Optional[str] = Query(None, max_length=50, description="Filter by tag"),
    search: Optional[str] = Query(None, max_length=100, description="Search title, description and tags"),
    pagination: dict = Depends(get_pagination_params),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    sees_all = authorize(current_user, problem_resource(), Action.LIST_ALL).allowed
    problems, total = await problem_service.list_problems(
        db,
        approved=None if sees_all else True,
        difficulty=difficulty,
        tag=tag,
        search_query=search,
        limit=pagination["limit"],
        offset=pagination["offset"],
    )
    return success_response(serialize_many(ProblemResponse, problems), count=total)


@router.get(
    "/admin/all",
    summary="List All Problems",
    description="List every problem including unapproved ones. Admin only.",
)
async def list_all_problems(
    approved: Optional[bool] = Query(None, description="Filter by approval state"),
    pagination: dict = Depends(get_pagination_params),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_resource(), Action.LIST_ALL, "Admin access required")
    problems, total = await problem_service.list_problems(
        db,
        approved=approved,
        limit=pagination["limit"],
        offset=pagination["offset"],
    )
    return success_response(serialize_many(ProblemResponse, problems), count=total)


@router.post(
    "/bulk-delete",
    summary="Bulk Delete Problems",
    description="Delete several problems at once. Admin only.",
)
async def bulk_delete_problems(
    payload: IdList,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_resource(), Action.BULK_DELETE, "Admin access required")
    deleted = await problem_service.bulk_delete_problems(db, payload.ids)
    return success_response(
        {"deleted_count": deleted},
        message=f"{deleted} problems deleted successfully",
    )


@router.get(
    "/{problem_id}",
    summary="Get Problem",
)
async def get_problem(
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    problem = await problem_service.get_problem(db, problem_id)
    ensure_authorized(current_user, problem_resource(problem), Action.READ)
    return success_response(serialize(ProblemResponse, problem))


@router.put(
    "/{problem_id}",
    summary="Update Problem",
    description="Update a problem. Creator or admin only; creator and approval cannot be changed here.",
)
async def update_problem(
    payload: ProblemUpdate,
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    problem = await problem_service.get_problem(db, problem_id)
    ensure_authorized(
        current_user, problem_resource(problem), Action.UPDATE,
        "You can only update your own problems",
    )
    problem = await problem_service.update_problem(db, problem, payload.model_dump(exclude_unset=True))
    return success_response(serialize(ProblemResponse, problem), message="Problem updated successfully")


@router.delete(
    "/{problem_id}",
    summary="Delete Problem",
    description="Delete a problem. Creator or admin only.",
)
async def delete_problem(
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    problem = await problem_service.get_problem(db, problem_id)
    ensure_authorized(
        current_user, problem_resource(problem), Action.DELETE,
        "You can only delete your own problems",
    )
    await problem_service.delete_problem(db, problem)
    return success_response(message="Problem deleted successfully")


@router.put(
    "/{problem_id}/approve",
    summary="Approve Problem",
    description="Publish a problem to the public listing. Admin only.",
)
async def approve_problem(
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_resource(), Action.APPROVE, "Admin access required")
    problem = await problem_service.approve_problem(db, problem_id, approved_by=current_user.id)
    return success_response(serialize(ProblemResponse, problem), message="Problem approved successfully")
