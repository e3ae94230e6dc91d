"""Interview session and question Pydantic schemas."""

from datetime import datetime, timezone
from typing import ClassVar, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from api.schemas.common import ORMModel, PartialUpdate, TimestampMixin
from database.models.interviews import SessionStatus


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read naive datetimes as UTC so naive and aware inputs compare."""
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SessionCreate(BaseModel):
    """
    Schema for booking a session.

    ``user_id`` defaults to the caller; booking for someone else is
    restricted to admins and interviewers.
    """

    interview_type: str = Field(min_length=1, max_length=50, description="e.g. technical, behavioral")
    start_time: datetime
    end_time: datetime
    user_id: Optional[int] = Field(None, ge=1, description="Owner of the session")
    interviewer_id: Optional[int] = Field(None, ge=1, description="Assigned interviewer")

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def check_time_range(self) -> "SessionCreate":
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class SessionUpdate(PartialUpdate):
    """Partial update; ``feedback`` is restricted to admins and interviewers."""

    non_nullable: ClassVar[tuple[str, ...]] = ("interview_type", "start_time", "end_time")

    interview_type: Optional[str] = Field(None, min_length=1, max_length=50)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    interviewer_id: Optional[int] = Field(None, ge=1)
    feedback: Optional[str] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def check_time_range(self) -> "SessionUpdate":
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class SessionStatusUpdate(BaseModel):
    status: SessionStatus


class SessionResponse(TimestampMixin, ORMModel):
    id: int
    user_id: int
    interviewer_id: Optional[int] = None
    interview_type: str
    status: SessionStatus
    start_time: datetime
    end_time: datetime
    feedback: Optional[str] = None
    last_updated_by: Optional[int] = None


class QuestionCreate(BaseModel):
    session_id: int = Field(ge=1)
    question: str = Field(min_length=1)
    answer: Optional[str] = Field(None, description="Reference answer")


class AnswerSubmit(BaseModel):
    submitted_answer: str = Field(min_length=1)


class QuestionFeedback(BaseModel):
    feedback: str = Field(min_length=1)
    answer: Optional[str] = Field(None, description="Reference answer to reveal")


class QuestionResponse(TimestampMixin, ORMModel):
    id: int
    session_id: int
    question: str
    submitted_answer: Optional[str] = None
    answer: Optional[str] = None
    feedback: Optional[str] = None
