from database.models.users import User, Role, RevokedToken
from database.models.problems import Problem, ProblemTag, Difficulty
from database.models.interviews import InterviewSession, InterviewQuestion, SessionStatus
from database.models.submissions import Submission, SubmissionStatus
from database.models.stats import UserStats

__all__ = [
    "User",
    "Role",
    "RevokedToken",
    "Problem",
    "ProblemTag",
    "Difficulty",
    "InterviewSession",
    "InterviewQuestion",
    "SessionStatus",
    "Submission",
    "SubmissionStatus",
    "UserStats",
]
