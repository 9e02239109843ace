# SPDX-License-Identifier: Apache-2.0

"""
Task lifecycle engine.

This module contains pure functions that plan task state changes. Each
planner authorizes the caller, checks the transition table and returns a
TransitionResult whose TaskChanges the persistence layer applies as one
atomic single-document update.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..models.base import as_naive_utc
from ..models.entities import Cause, Principal, Task, User
from ..models.enums import Action, DenyReason, TaskStatus
from ..models.responses import CertificateData
from .authorization import TaskResource, authorize


HOURS_PER_DAY = 4
SECONDS_PER_DAY = 86400

TASK_TRANSITIONS: Dict[TaskStatus, frozenset] = {
    TaskStatus.PENDING: frozenset({
        TaskStatus.IN_CONSIDERATION, TaskStatus.APPROVED, TaskStatus.DECLINED
    }),
    TaskStatus.IN_CONSIDERATION: frozenset({TaskStatus.APPROVED, TaskStatus.DECLINED}),
    TaskStatus.APPROVED: frozenset({TaskStatus.IN_PROGRESS, TaskStatus.NO_SHOW}),
    TaskStatus.IN_PROGRESS: frozenset({TaskStatus.COMPLETED, TaskStatus.NO_SHOW}),
    TaskStatus.DECLINED: frozenset(),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.NO_SHOW: frozenset(),
}

# Applications that still hold a volunteer's place on a cause
ACTIVE_STATUSES = frozenset({
    TaskStatus.PENDING, TaskStatus.IN_CONSIDERATION, TaskStatus.APPROVED, TaskStatus.IN_PROGRESS
})

OPT_OUT_STATUSES = frozenset({
    TaskStatus.PENDING, TaskStatus.IN_CONSIDERATION, TaskStatus.APPROVED
})


@dataclass
class TaskChanges:
    """Field changes applied to a task in a single atomic update."""
    status: Optional[TaskStatus] = None
    approved: Optional[bool] = None
    proof_url: Optional[str] = None

    def is_empty(self) -> bool:
        return self.status is None and self.approved is None and self.proof_url is None

    def to_update(self) -> Dict[str, Any]:
        """MongoDB `$set` payload with stored field names."""
        update: Dict[str, Any] = {}
        if self.status is not None:
            update["status"] = TaskStatus(self.status).value
        if self.approved is not None:
            update["approved"] = self.approved
        if self.proof_url is not None:
            update["proofUrl"] = self.proof_url
        return update


@dataclass
class TransitionResult:
    """Result of planning a task lifecycle operation."""
    allowed: bool
    changes: TaskChanges = field(default_factory=TaskChanges)
    reason: Optional[DenyReason] = None
    noop: bool = False

    @classmethod
    def denied(cls, reason: DenyReason) -> "TransitionResult":
        return cls(allowed=False, reason=reason)


def validate_status_transition(current_status: TaskStatus, new_status: TaskStatus) -> bool:
    """
    Validate if status transition is allowed.

    Args:
        current_status: Current task status
        new_status: Requested new status

    Returns:
        True if the transition appears in the lifecycle table
    """
    return TaskStatus(new_status) in TASK_TRANSITIONS[TaskStatus(current_status)]


def plan_status_change(principal: Optional[Principal], task: Task, cause_ngo_id: str,
                       new_status: TaskStatus) -> TransitionResult:
    """
    Plan an explicit status change requested by either party.

    Requesting the current status again is an allowed no-op.
    """
    new_status = TaskStatus(new_status)
    auth = authorize(principal, Action.UPDATE_TASK_STATUS,
                     TaskResource(task, cause_ngo_id), target_status=new_status)
    if not auth.allowed:
        return TransitionResult.denied(auth.reason)

    if TaskStatus(task.status) == new_status:
        return TransitionResult(allowed=True, noop=True)

    if not validate_status_transition(task.status, new_status):
        return TransitionResult.denied(DenyReason.INVALID_TRANSITION)

    return TransitionResult(allowed=True, changes=TaskChanges(status=new_status))


def plan_proof_submission(principal: Optional[Principal], task: Task, cause_ngo_id: str,
                          proof_url: str) -> TransitionResult:
    """
    Plan a proof submission: proof URL and COMPLETED status in one update.

    A completed task awaiting review may have its proof replaced; once the
    NGO approved the work the proof is frozen.
    """
    auth = authorize(principal, Action.SUBMIT_PROOF, TaskResource(task, cause_ngo_id))
    if not auth.allowed:
        return TransitionResult.denied(auth.reason)

    status = TaskStatus(task.status)
    awaiting_review = status == TaskStatus.COMPLETED and not task.approved
    if status != TaskStatus.IN_PROGRESS and not awaiting_review:
        return TransitionResult.denied(DenyReason.INVALID_STATE)

    return TransitionResult(
        allowed=True,
        changes=TaskChanges(status=TaskStatus.COMPLETED, proof_url=proof_url)
    )


def plan_approval(principal: Optional[Principal], task: Task, cause_ngo_id: str) -> TransitionResult:
    """Plan NGO verification of completed work. Approving twice is a no-op."""
    auth = authorize(principal, Action.APPROVE_TASK, TaskResource(task, cause_ngo_id))
    if not auth.allowed:
        return TransitionResult.denied(auth.reason)

    if TaskStatus(task.status) != TaskStatus.COMPLETED:
        return TransitionResult.denied(DenyReason.INVALID_STATE)

    if task.approved:
        return TransitionResult(allowed=True, noop=True)

    return TransitionResult(allowed=True, changes=TaskChanges(approved=True))


def plan_opt_out(principal: Optional[Principal], task: Task, cause_ngo_id: str) -> TransitionResult:
    """Plan a volunteer withdrawal. The task is removed, not transitioned."""
    auth = authorize(principal, Action.OPT_OUT, TaskResource(task, cause_ngo_id))
    if not auth.allowed:
        return TransitionResult.denied(auth.reason)

    if TaskStatus(task.status) not in OPT_OUT_STATUSES:
        return TransitionResult.denied(DenyReason.INVALID_STATE)

    return TransitionResult(allowed=True)


def available_status_changes(principal: Optional[Principal], task: Task,
                             cause_ngo_id: str) -> List[TaskStatus]:
    """Statuses the principal could move the task into right now."""
    current = TaskStatus(task.status)
    return [
        status for status in TaskStatus
        if status in TASK_TRANSITIONS[current]
        and plan_status_change(principal, task, cause_ngo_id, status).allowed
    ]


def application_conflict(cause: Cause, existing_tasks: Iterable[Task]) -> Optional[str]:
    """
    Check whether a volunteer may apply to a cause.

    Returns:
        A conflict message, or None when the application may proceed
    """
    if not cause.is_open():
        return "Cause is not accepting applications"

    for task in existing_tasks:
        if TaskStatus(task.status) in ACTIVE_STATUSES:
            return "An active application for this cause already exists"

    return None


def calculate_task_hours(start_date: Optional[datetime], end_date: Optional[datetime]) -> int:
    """
    Hours credited for a task window.

    Whole days are rounded up with a floor of one day; each day counts
    HOURS_PER_DAY. Missing dates count as a single day.
    """
    if start_date is None or end_date is None:
        return HOURS_PER_DAY

    seconds = (as_naive_utc(end_date) - as_naive_utc(start_date)).total_seconds()
    days = max(math.ceil(seconds / SECONDS_PER_DAY), 1)
    return days * HOURS_PER_DAY


def build_certificate_data(task: Task, cause: Cause, volunteer: User, ngo: Optional[User]) -> CertificateData:
    """Assemble the certificate renderer input for a completed task."""
    return CertificateData(
        volunteer_name=volunteer.name,
        cause_title=cause.title,
        ngo_name=ngo.name if ngo else "",
        start_date=task.start_date,
        end_date=task.end_date,
        hours=calculate_task_hours(task.start_date, task.end_date),
        approved=task.approved,
    )
