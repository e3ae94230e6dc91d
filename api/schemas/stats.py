"""User statistics and leaderboard Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, Field

from api.schemas.common import ORMModel, PartialUpdate


class LeaderboardSort(str, Enum):
    PROBLEMS_SOLVED = "problemsSolved"
    AVERAGE_SCORE = "averageScore"
    TIME_SPENT = "timeSpent"


class StatsUpdate(PartialUpdate):
    non_nullable: ClassVar[tuple[str, ...]] = ("problems_solved", "average_score", "time_spent")

    problems_solved: Optional[int] = Field(None, ge=0)
    average_score: Optional[float] = Field(None, ge=0)
    time_spent: Optional[int] = Field(None, ge=0, description="Minutes")
    study_plan: Optional[dict[str, Any]] = None


class StatsIncrement(BaseModel):
    score_increment: float = Field(0, ge=0, description="Score for the solved problem")
    time_spent: int = Field(0, ge=0, description="Minutes spent")


class StudyPlanUpdate(BaseModel):
    study_plan: Optional[dict[str, Any]] = None


class StatsResponse(ORMModel):
    user_id: int
    problems_solved: int
    average_score: float
    time_spent: int
    study_plan: Optional[dict[str, Any]] = None
    last_updated: datetime


class LeaderboardEntry(StatsResponse):
    username: Optional[str] = None
