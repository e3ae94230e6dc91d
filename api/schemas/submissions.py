"""Submission Pydantic schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from api.schemas.common import ORMModel
from database.models.submissions import SubmissionStatus


class SubmissionCreate(BaseModel):
    problem_id: int = Field(ge=1)
    code: str = Field(min_length=1)
    language: str = Field(min_length=1, max_length=30)


class SubmissionStatusUpdate(BaseModel):
    """Judging result, set by an admin."""

    status: SubmissionStatus
    result: Optional[str] = None
    execution_time: Optional[float] = Field(None, ge=0, description="Seconds")


class SubmissionResponse(ORMModel):
    id: int
    problem_id: int
    user_id: int
    code: str
    language: str
    status: SubmissionStatus
    result: Optional[str] = None
    execution_time: Optional[float] = None
    submitted_at: datetime
