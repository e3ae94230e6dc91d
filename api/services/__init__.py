"""
API Services Layer.

Direct database operations for API endpoints. Every function takes the
request's ``AsyncSession`` and raises ``core.exceptions`` errors; access
control happens in the routes before a service is called.
"""

from api.services.users import (
    create_user,
    authenticate,
    get_user,
    list_users,
    update_profile,
    change_password,
    update_role,
    delete_user,
    revoke_token,
)

from api.services.problems import (
    create_problem,
    get_problem,
    list_problems,
    update_problem,
    approve_problem,
    delete_problem,
    bulk_delete_problems,
)

from api.services.problem_tags import (
    create_tag,
    list_tags,
    tags_for_problem,
    problems_for_tag,
    delete_tag,
    delete_tags_for_problem,
)

from api.services.interviews import (
    create_session,
    get_session,
    list_sessions,
    update_session,
    update_session_status,
    delete_session,
    create_question,
    list_questions,
    questions_for_session,
    get_question,
    submit_answer,
    provide_feedback,
    delete_question,
    delete_questions_for_session,
)

from api.services.submissions import (
    create_submission,
    get_submission,
    list_submissions,
    update_submission_status,
    delete_submission,
)

from api.services.stats import (
    get_or_create_stats,
    update_stats,
    increment_problems_solved,
    update_study_plan,
    leaderboard,
)

__all__ = [
    # Users
    "create_user",
    "authenticate",
    "get_user",
    "list_users",
    "update_profile",
    "change_password",
    "update_role",
    "delete_user",
    "revoke_token",
    # Problems
    "create_problem",
    "get_problem",
    "list_problems",
    "update_problem",
    "approve_problem",
    "delete_problem",
    "bulk_delete_problems",
    # Problem tags
    "create_tag",
    "list_tags",
    "tags_for_problem",
    "problems_for_tag",
    "delete_tag",
    "delete_tags_for_problem",
    # Interview sessions
    "create_session",
    "get_session",
    "list_sessions",
    "update_session",
    "update_session_status",
    "delete_session",
    # Interview questions
    "create_question",
    "list_questions",
    "questions_for_session",
    "get_question",
    "submit_answer",
    "provide_feedback",
    "delete_question",
    "delete_questions_for_session",
    # Submissions
    "create_submission",
    "get_submission",
    "list_submissions",
    "update_submission_status",
    "delete_submission",
    # Stats
    "get_or_create_stats",
    "update_stats",
    "increment_problems_solved",
    "update_study_plan",
    "leaderboard",
]
