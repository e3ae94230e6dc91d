"""
Problem tag endpoints.

Tags are curated by admins; any signed-in user can browse them.
"""

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_db, require_authenticated_user
from api.schemas.common import serialize, serialize_many, success_response
from api.schemas.problems import ProblemResponse, ProblemTagCreate, ProblemTagResponse
from api.services import problem_tags as tag_service
from core.middleware.authentication import Identity
from core.middleware.authorization import (
    Action,
    authorize,
    ensure_authorized,
    problem_resource,
    problem_tag_resource,
)

router = APIRouter(prefix="/problem-tags", tags=["problem-tags"])

ADMIN_REQUIRED = "Admin access required"


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create Problem Tag",
    description="Attach a tag to a problem. Admin only; a tag can be attached once per problem.",
)
async def create_problem_tag(
    payload: ProblemTagCreate,
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_tag_resource(), Action.CREATE, ADMIN_REQUIRED)
    problem_tag = await tag_service.create_tag(db, payload.problem_id, payload.tag)
    return success_response(serialize(ProblemTagResponse, problem_tag), message="Tag created successfully")


@router.get(
    "",
    summary="List Problem Tags",
    description="List every tag assignment. Admin only.",
)
async def list_problem_tags(
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_tag_resource(), Action.LIST_ALL, ADMIN_REQUIRED)
    tags = await tag_service.list_tags(db)
    return success_response(serialize_many(ProblemTagResponse, tags), count=len(tags))


@router.get(
    "/problem/{problem_id}",
    summary="Tags For Problem",
)
async def tags_for_problem(
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_tag_resource(), Action.READ)
    tags = await tag_service.tags_for_problem(db, problem_id)
    return success_response(serialize_many(ProblemTagResponse, tags), count=len(tags))


@router.get(
    "/tag/{tag}",
    summary="Problems For Tag",
    description="Problems carrying a tag. Unapproved problems are only listed for admins.",
)
async def problems_for_tag(
    tag: str = Path(..., min_length=1, max_length=50, description="Tag"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_tag_resource(), Action.READ)
    sees_all = authorize(current_user, problem_resource(), Action.LIST_ALL).allowed
    problems = await tag_service.problems_for_tag(db, tag, approved_only=not sees_all)
    return success_response(serialize_many(ProblemResponse, problems), count=len(problems))


@router.delete(
    "/problem/{problem_id}",
    summary="Delete Tags For Problem",
    description="Remove every tag from a problem. Admin only.",
)
async def delete_tags_for_problem(
    problem_id: int = Path(..., ge=1, description="Problem ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_tag_resource(), Action.DELETE, ADMIN_REQUIRED)
    deleted = await tag_service.delete_tags_for_problem(db, problem_id)
    return success_response(
        {"deleted_count": deleted},
        message=f"{deleted} tags deleted successfully",
    )


@router.delete(
    "/{tag_id}",
    summary="Delete Problem Tag",
    description="Remove a single tag assignment. Admin only.",
)
async def delete_problem_tag(
    tag_id: int = Path(..., ge=1, description="Tag assignment ID"),
    current_user: Identity = Depends(require_authenticated_user),
    db: AsyncSession = Depends(get_db),
):
    ensure_authorized(current_user, problem_tag_resource(), Action.DELETE, ADMIN_REQUIRED)
    await tag_service.delete_tag(db, tag_id)
    return success_response(message="Tag deleted successfully")
