# SPDX-License-Identifier: Apache-2.0

"""
Ownership and role resolution for every CareConnect action.

`authorize` is a pure decision function. A denial always carries a
`DenyReason`; the HTTP layer maps AUTHENTICATION_REQUIRED to 401 and every
other reason to 403.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..models.entities import Cause, NgoPrincipal, Principal, Task, VolunteerPrincipal
from ..models.enums import Action, DenyReason, TaskStatus, UserRole


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[DenyReason] = None


@dataclass(frozen=True)
class TaskResource:
    """A task together with the NGO that owns its cause."""
    task: Task
    cause_ngo_id: str


ALLOWED = AuthorizationResult(allowed=True)

PUBLIC_ACTIONS = frozenset({
    Action.LIST_CAUSES,
    Action.VIEW_CAUSE,
    Action.LIST_POSTS,
    Action.LIST_COMMENTS,
    Action.VIEW_PROFILE,
    Action.VIEW_IMPACT_STATS,
})

NGO_ACTIONS = frozenset({
    Action.CREATE_CAUSE,
    Action.UPDATE_CAUSE,
    Action.DELETE_CAUSE,
    Action.LIST_OWN_CAUSES,
    Action.LIST_NGO_TASKS,
    Action.APPROVE_TASK,
    Action.LIST_RECEIVED_DONATIONS,
})

VOLUNTEER_ACTIONS = frozenset({
    Action.APPLY_TO_CAUSE,
    Action.LIST_VOLUNTEER_TASKS,
    Action.SUBMIT_PROOF,
    Action.OPT_OUT,
    Action.CREATE_DONATION,
    Action.LIST_OWN_DONATIONS,
    Action.VIEW_OWN_IMPACT,
})

# Role allowed to move a task into each status. PENDING is only set on creation.
STATUS_SETTERS: Dict[TaskStatus, UserRole] = {
    TaskStatus.IN_CONSIDERATION: UserRole.NGO,
    TaskStatus.APPROVED: UserRole.NGO,
    TaskStatus.DECLINED: UserRole.NGO,
    TaskStatus.NO_SHOW: UserRole.NGO,
    TaskStatus.IN_PROGRESS: UserRole.VOLUNTEER,
    TaskStatus.COMPLETED: UserRole.VOLUNTEER,
}


def deny(reason: DenyReason) -> AuthorizationResult:
    return AuthorizationResult(allowed=False, reason=reason)


def is_ngo(principal: Optional[Principal]) -> bool:
    return isinstance(principal, NgoPrincipal)


def is_volunteer(principal: Optional[Principal]) -> bool:
    return isinstance(principal, VolunteerPrincipal)


def _has_role(principal: Principal, role: UserRole) -> bool:
    if role == UserRole.NGO:
        return is_ngo(principal)
    return is_volunteer(principal)


def _owns_task_side(principal: Principal, resource: TaskResource) -> bool:
    """Ownership check for the side of the task the principal acts on."""
    if is_volunteer(principal):
        return principal.user_id == resource.task.volunteer_id
    if is_ngo(principal):
        return principal.user_id == resource.cause_ngo_id
    return False


def authorize(principal: Optional[Principal], action: Action, resource: Any = None,
              target_status: Optional[TaskStatus] = None) -> AuthorizationResult:
    """
    Decide whether a principal may perform an action on a resource.

    Args:
        principal: Authenticated principal, or None for anonymous callers
        action: Action being attempted
        resource: Cause for cause actions, TaskResource for task actions,
            target user ID for follows
        target_status: Destination status for UPDATE_TASK_STATUS

    Returns:
        AuthorizationResult; denials carry the reason code
    """
    if action in PUBLIC_ACTIONS:
        return ALLOWED

    if principal is None:
        return deny(DenyReason.AUTHENTICATION_REQUIRED)

    if action in NGO_ACTIONS and not is_ngo(principal):
        return deny(DenyReason.ROLE_NOT_PERMITTED)

    if action in VOLUNTEER_ACTIONS and not is_volunteer(principal):
        return deny(DenyReason.ROLE_NOT_PERMITTED)

    if action in (Action.UPDATE_CAUSE, Action.DELETE_CAUSE):
        return check_cause_ownership(principal, resource)

    if action == Action.UPDATE_TASK_STATUS:
        return check_status_change(principal, resource, target_status)

    if action in (Action.VIEW_TASK, Action.SUBMIT_PROOF, Action.OPT_OUT, Action.APPROVE_TASK):
        if not _owns_task_side(principal, resource):
            return deny(DenyReason.NOT_OWNER)
        return ALLOWED

    if action == Action.FOLLOW_USER:
        if resource == principal.user_id:
            return deny(DenyReason.SELF_FOLLOW)
        return ALLOWED

    return ALLOWED


def check_cause_ownership(principal: Principal, cause: Cause) -> AuthorizationResult:
    """Only the owning NGO may mutate or delete a cause."""
    if not is_ngo(principal):
        return deny(DenyReason.ROLE_NOT_PERMITTED)
    if principal.user_id != cause.ngo_id:
        return deny(DenyReason.NOT_OWNER)
    return ALLOWED


def check_status_change(principal: Principal, resource: TaskResource,
                        target_status: Optional[TaskStatus]) -> AuthorizationResult:
    """Status changes are gated by the destination's role, then by ownership."""
    setter = STATUS_SETTERS.get(TaskStatus(target_status)) if target_status else None
    if setter is None:
        return deny(DenyReason.INVALID_TRANSITION)
    if not _has_role(principal, setter):
        return deny(DenyReason.ROLE_NOT_PERMITTED)
    if not _owns_task_side(principal, resource):
        return deny(DenyReason.NOT_OWNER)
    return ALLOWED
