"""Problem and problem tag Pydantic schemas."""

from datetime import datetime
from typing import ClassVar, Optional

from pydantic import BaseModel, Field, field_validator

from api.schemas.common import ORMModel, PartialUpdate, TimestampMixin
from database.models.problems import Difficulty


def _clean_tags(tags: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class ProblemBase(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)
    difficulty: Difficulty
    tags: list[str] = Field(default_factory=list, description="Free-form topic tags")
    input: Optional[str] = Field(None, description="Input format")
    output: Optional[str] = Field(None, description="Output format")
    constraints: Optional[str] = None
    leetcode_id: Optional[int] = Field(None, ge=1)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class ProblemCreate(ProblemBase):
    """Schema for creating a problem. The creator is always the caller."""


class ProblemUpdate(PartialUpdate):
    """
    Schema for updating a problem.

    ``creator_id`` and ``approved`` are not accepted here; approval has its
    own admin endpoint.
    """

    non_nullable: ClassVar[tuple[str, ...]] = ("title", "description", "difficulty", "tags")

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    difficulty: Optional[Difficulty] = None
    tags: Optional[list[str]] = None
    input: Optional[str] = None
    output: Optional[str] = None
    constraints: Optional[str] = None
    leetcode_id: Optional[int] = Field(None, ge=1)

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return _clean_tags(v) if v is not None else v


class ProblemResponse(ProblemBase, TimestampMixin, ORMModel):
    id: int
    creator_id: Optional[int] = None
    approved: bool


class ProblemTagCreate(BaseModel):
    problem_id: int = Field(ge=1)
    tag: str = Field(min_length=1, max_length=50)

    @field_validator("tag", mode="before")
    @classmethod
    def strip_tag(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class ProblemTagResponse(ORMModel):
    id: int
    problem_id: int
    tag: str
    created_at: datetime
