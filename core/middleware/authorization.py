"""
Authorization for resource access.

Two gates:
1. Role gate: ``require_roles(...)`` route dependency, role-only, reads the
   identity resolved by the authentication middleware.
2. Ownership gate: ``authorize(identity, resource, action)``, one function
   for every resource kind, driven by the ``POLICY`` table.

Rule evaluation order:
    admin-only action    -> role must be admin
    participant-only     -> identity must be a participant (no admin bypass)
    role-only            -> role must be in the resource's elevated roles
    owned resource       -> elevated role or owner
    otherwise            -> any authenticated identity

A deny is always terminal; handlers never fall through to the mutation.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

from fastapi import Request

from core.exceptions import AuthorizationError, InsufficientPermissions
from core.middleware.authentication import Identity, get_current_user
from database.models.users import Role

logger = logging.getLogger(__name__)

ADMIN_ONLY_ROLES = frozenset({Role.ADMIN})
STAFF_ROLES = frozenset({Role.ADMIN, Role.INTERVIEWER})


class ResourceKind(str, Enum):
    SESSION = "session"
    QUESTION = "question"
    SUBMISSION = "submission"
    PROBLEM = "problem"
    PROBLEM_TAG = "problem_tag"
    USER_STATS = "user_stats"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    LIST_ALL = "list_all"
    UPDATE = "update"
    UPDATE_FEEDBACK = "update_feedback"
    UPDATE_STATUS = "update_status"
    ASSIGN = "assign"
    DELETE = "delete"
    BULK_DELETE = "bulk_delete"
    ANSWER = "answer"
    FEEDBACK = "feedback"
    APPROVE = "approve"


class AccessRule(str, Enum):
    ADMIN_ONLY = "admin_only"
    PARTICIPANT_ONLY = "participant_only"
    ROLE_ONLY = "role_only"
    OWNER_OR_ELEVATED = "owner_or_elevated"
    PARTICIPANT_OR_ELEVATED = "participant_or_elevated"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class ResourceDescriptor:
    """What the gate needs to know about a record, nothing more."""
    kind: ResourceKind
    owner_id: Optional[int] = None
    participant_ids: frozenset[int] = field(default_factory=frozenset)
    elevated_roles: frozenset[Role] = ADMIN_ONLY_ROLES


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str

    def __bool__(self) -> bool:
        return self.allowed


# (resource kind, action) -> rule. Pairs missing from the table are denied.
POLICY: dict[tuple[ResourceKind, Action], AccessRule] = {
    # Interview sessions
    (ResourceKind.SESSION, Action.CREATE): AccessRule.OWNER_OR_ELEVATED,
    (ResourceKind.SESSION, Action.READ): AccessRule.OWNER_OR_ELEVATED,
    (ResourceKind.SESSION, Action.LIST_ALL): AccessRule.ROLE_ONLY,
    (ResourceKind.SESSION, Action.UPDATE): AccessRule.OWNER_OR_ELEVATED,
    (ResourceKind.SESSION, Action.UPDATE_FEEDBACK): AccessRule.ROLE_ONLY,
    (ResourceKind.SESSION, Action.UPDATE_STATUS): AccessRule.ROLE_ONLY,
    (ResourceKind.SESSION, Action.ASSIGN): AccessRule.ROLE_ONLY,
    (ResourceKind.SESSION, Action.DELETE): AccessRule.ADMIN_ONLY,
    # Interview questions (ownership follows the parent session)
    (ResourceKind.QUESTION, Action.CREATE): AccessRule.ADMIN_ONLY,
    (ResourceKind.QUESTION, Action.READ): AccessRule.PARTICIPANT_OR_ELEVATED,
    (ResourceKind.QUESTION, Action.LIST_ALL): AccessRule.ADMIN_ONLY,
    (ResourceKind.QUESTION, Action.ANSWER): AccessRule.PARTICIPANT_ONLY,
    (ResourceKind.QUESTION, Action.FEEDBACK): AccessRule.ADMIN_ONLY,
    (ResourceKind.QUESTION, Action.DELETE): AccessRule.ADMIN_ONLY,
    # Submissions
    (ResourceKind.SUBMISSION, Action.CREATE): AccessRule.AUTHENTICATED,
    (ResourceKind.SUBMISSION, Action.READ): AccessRule.OWNER_OR_ELEVATED,
    (ResourceKind.SUBMISSION, Action.LIST_ALL): AccessRule.ADMIN_ONLY,
    (ResourceKind.SUBMISSION, Action.UPDATE_STATUS): AccessRule.ADMIN_ONLY,
    (ResourceKind.SUBMISSION, Action.DELETE): AccessRule.ADMIN_ONLY,
    # Problems
    (ResourceKind.PROBLEM, Action.CREATE): AccessRule.AUTHENTICATED,
    (ResourceKind.PROBLEM, Action.READ): AccessRule.AUTHENTICATED,
    (ResourceKind.PROBLEM, Action.LIST_ALL): AccessRule.ADMIN_ONLY,
    (ResourceKind.PROBLEM, Action.UPDATE): AccessRule.OWNER_OR_ELEVATED,
    (ResourceKind.PROBLEM, Action.DELETE): AccessRule.OWNER_OR_ELEVATED,
    (ResourceKind.PROBLEM, Action.APPROVE): AccessRule.ADMIN_ONLY,
    (ResourceKind.PROBLEM, Action.BULK_DELETE): AccessRule.ADMIN_ONLY,
    # Problem tags
    (ResourceKind.PROBLEM_TAG, Action.CREATE): AccessRule.ADMIN_ONLY,
    (ResourceKind.PROBLEM_TAG, Action.READ): AccessRule.AUTHENTICATED,
    (ResourceKind.PROBLEM_TAG, Action.LIST_ALL): AccessRule.ADMIN_ONLY,
    (ResourceKind.PROBLEM_TAG, Action.DELETE): AccessRule.ADMIN_ONLY,
    # User stats
    (ResourceKind.USER_STATS, Action.READ): AccessRule.AUTHENTICATED,
    (ResourceKind.USER_STATS, Action.UPDATE): AccessRule.OWNER_OR_ELEVATED,
}


def authorize(
    identity: Identity,
    resource: ResourceDescriptor,
    action: Action,
) -> AuthorizationDecision:
    """
    Decide whether ``identity`` may perform ``action`` on ``resource``.

    Pure function: no I/O, no exceptions. Use ``ensure_authorized`` in
    handlers.
    """
    rule = POLICY.get((resource.kind, action))
    if rule is None:
        return AuthorizationDecision(False, f"no policy for {resource.kind.value}:{action.value}")

    role = identity.role
    is_admin = role == Role.ADMIN
    is_elevated = role in resource.elevated_roles
    is_owner = resource.owner_id is not None and resource.owner_id == identity.id
    is_participant = identity.id in resource.participant_ids

    if rule == AccessRule.ADMIN_ONLY:
        if is_admin:
            return AuthorizationDecision(True, "admin")
        return AuthorizationDecision(False, "admin role required")

    if rule == AccessRule.PARTICIPANT_ONLY:
        if is_participant:
            return AuthorizationDecision(True, "participant")
        return AuthorizationDecision(False, "not a participant")

    if rule == AccessRule.ROLE_ONLY:
        if is_elevated:
            return AuthorizationDecision(True, f"role {role.value}")
        return AuthorizationDecision(False, f"role {role.value} not permitted")

    if rule == AccessRule.OWNER_OR_ELEVATED:
        if is_elevated:
            return AuthorizationDecision(True, f"role {role.value}")
        if is_owner:
            return AuthorizationDecision(True, "owner")
        return AuthorizationDecision(False, "not the owner")

    if rule == AccessRule.PARTICIPANT_OR_ELEVATED:
        if is_elevated:
            return AuthorizationDecision(True, f"role {role.value}")
        if is_participant:
            return AuthorizationDecision(True, "participant")
        return AuthorizationDecision(False, "not a participant")

    return AuthorizationDecision(True, "authenticated")


def ensure_authorized(
    identity: Identity,
    resource: ResourceDescriptor,
    action: Action,
    message: str = "Permission denied",
) -> None:
    """
    Apply the ownership gate.

    Raises:
        AuthorizationError: 403 with a static message when denied
    """
    decision = authorize(identity, resource, action)
    if not decision.allowed:
        logger.warning(
            f"Access denied: user={identity.id} role={identity.role.value} "
            f"{resource.kind.value}:{action.value} owner={resource.owner_id} "
            f"reason={decision.reason}"
        )
        raise AuthorizationError(message)


# ==================== Descriptors ==================== #

def session_resource(session) -> ResourceDescriptor:
    return ResourceDescriptor(
        kind=ResourceKind.SESSION,
        owner_id=session.user_id,
        participant_ids=session.participant_ids,
        elevated_roles=STAFF_ROLES,
    )


def session_target(user_id: int) -> ResourceDescriptor:
    """Descriptor for a session about to be created on behalf of ``user_id``."""
    return ResourceDescriptor(
        kind=ResourceKind.SESSION,
        owner_id=user_id,
        participant_ids=frozenset({user_id}),
        elevated_roles=STAFF_ROLES,
    )


def sessions_collection() -> ResourceDescriptor:
    """Descriptor for session-wide actions such as listing everyone's sessions."""
    return ResourceDescriptor(kind=ResourceKind.SESSION, elevated_roles=STAFF_ROLES)


def question_resource(session) -> ResourceDescriptor:
    """Questions carry no owner of their own; the parent session decides."""
    return ResourceDescriptor(
        kind=ResourceKind.QUESTION,
        owner_id=session.user_id,
        participant_ids=session.participant_ids,
    )


def questions_collection() -> ResourceDescriptor:
    return ResourceDescriptor(kind=ResourceKind.QUESTION)


def submission_resource(user_id: Optional[int] = None) -> ResourceDescriptor:
    return ResourceDescriptor(kind=ResourceKind.SUBMISSION, owner_id=user_id)


def problem_resource(problem=None) -> ResourceDescriptor:
    return ResourceDescriptor(
        kind=ResourceKind.PROBLEM,
        owner_id=problem.creator_id if problem is not None else None,
    )


def problem_tag_resource() -> ResourceDescriptor:
    return ResourceDescriptor(kind=ResourceKind.PROBLEM_TAG)


def stats_resource(user_id: int) -> ResourceDescriptor:
    return ResourceDescriptor(kind=ResourceKind.USER_STATS, owner_id=user_id)


# ==================== Role gate ==================== #

def require_roles(*allowed_roles: Role) -> Callable:
    """
    Dependency to require one of the given roles.

    Usage:
        @router.get("/", dependencies=[Depends(require_roles(Role.ADMIN))])
    """
    allowed = frozenset(allowed_roles)

    def dependency(request: Request) -> Identity:
        user = get_current_user(request)
        if user.role not in allowed:
            logger.warning(
                f"User {user.id} with role {user.role.value} attempted action "
                f"requiring roles: {', '.join(sorted(r.value for r in allowed))}"
            )
            raise InsufficientPermissions(
                f"Access denied. Required role: {', '.join(sorted(r.value for r in allowed))}"
            )
        return user

    return dependency
