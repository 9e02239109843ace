# SPDX-License-Identifier: Apache-2.0

"""
Task persistence around the lifecycle engine.

Every mutation loads the task and its cause, asks the lifecycle engine for
a plan, then applies the planned TaskChanges as one atomic update.
"""

import logging
from typing import List, Optional, Tuple
from opentelemetry import trace
from pymongo import DESCENDING

from ..domain.authorization import TaskResource, authorize
from ..domain.tasks import (
    TransitionResult,
    application_conflict,
    build_certificate_data,
    plan_approval,
    plan_opt_out,
    plan_proof_submission,
    plan_status_change,
)
from ..middleware.error_handler import (
    AuthorizationException, ConflictException, NotFoundException, ensure_allowed, raise_for_denial
)
from ..models.entities import AuditLog, Cause, Principal, Task, User
from ..models.enums import Action, TaskStatus
from ..models.requests import ApplyToCauseRequest
from ..models.responses import CertificateData
from .audit import AuditService
from .causes import CauseService
from .mongodb import MongoDBService, TASKS
from .users import UserService

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


class TaskService:
    """Service for volunteer tasks."""

    def __init__(self, mongo_service: MongoDBService, audit_service: AuditService,
                 cause_service: CauseService, user_service: UserService):
        self.mongo_service = mongo_service
        self.audit_service = audit_service
        self.cause_service = cause_service
        self.user_service = user_service

    def _find(self, filters) -> List[Task]:
        documents = self.mongo_service.find(TASKS, filters, sort=NEWEST_FIRST)
        return [Task.from_document(doc) for doc in documents]

    def load(self, task_id: str) -> Tuple[Task, Cause]:
        """Load a task with its cause, or raise NotFound."""
        task = Task.from_document(self.mongo_service.find_one(TASKS, task_id))
        if task is None:
            raise NotFoundException(f"Task {task_id} not found")
        cause = self.cause_service.find_cause(task.cause_id)
        if cause is None:
            raise NotFoundException(f"Task {task_id} not found")
        return task, cause

    def _apply(self, principal: Principal, task: Task, result: TransitionResult, action: str) -> Task:
        """Persist a planned change; denials and no-ops never touch the store."""
        if not result.allowed:
            raise_for_denial(result.reason)
        if result.noop or result.changes.is_empty():
            return task

        document = self.mongo_service.update(TASKS, task.id, result.changes.to_update())
        if document is None:
            raise NotFoundException(f"Task {task.id} not found")
        updated = Task.from_document(document)

        self.audit_service.log_action(
            principal, "task", task.id, action,
            before={"status": task.status, "approved": task.approved, "proof_url": task.proof_url},
            after={"status": updated.status, "approved": updated.approved, "proof_url": updated.proof_url}
        )
        logger.info(
            "Task updated",
            extra={"extra_fields": {
                "task_id": task.id,
                "action": action,
                "from_status": task.status,
                "to_status": updated.status,
                "approved": updated.approved
            }}
        )
        return updated

    def apply(self, principal: Optional[Principal], cause_id: str,
              request: ApplyToCauseRequest) -> Tuple[Task, Cause]:
        """
        Create a pending application for the calling volunteer.

        Raises:
            NotFoundException: Cause does not exist
            ConflictException: Cause closed, or an active application exists
        """
        with tracer.start_as_current_span("tasks.apply") as span:
            span.set_attribute("cause.id", cause_id)
            ensure_allowed(authorize(principal, Action.APPLY_TO_CAUSE))
            cause = self.cause_service.get_cause(cause_id)

            existing = self._find({"causeId": cause.id, "volunteerId": principal.user_id})
            conflict = application_conflict(cause, existing)
            if conflict:
                raise ConflictException(conflict)

            task = Task(
                cause_id=cause.id,
                volunteer_id=principal.user_id,
                status=TaskStatus.PENDING,
                start_date=request.start_date,
                end_date=request.end_date
            )
            self.mongo_service.create(TASKS, task.to_document())

            span.set_attribute("task.id", task.id)
            logger.info(
                "Volunteer applied to cause",
                extra={"extra_fields": {"task_id": task.id, "cause_id": cause.id}}
            )
            return task, cause

    def get_task(self, principal: Optional[Principal], task_id: str) -> Tuple[Task, Cause]:
        task, cause = self.load(task_id)
        ensure_allowed(authorize(principal, Action.VIEW_TASK, TaskResource(task, cause.ngo_id)))
        return task, cause

    def history(self, principal: Optional[Principal], task_id: str) -> List[AuditLog]:
        """Audit trail of a task, newest first, for its volunteer and owning NGO."""
        task, _ = self.get_task(principal, task_id)
        return self.audit_service.entries_for("task", task.id)

    def list_for_volunteer(self, principal: Optional[Principal]) -> List[Tuple[Task, Optional[Cause]]]:
        """The caller's tasks with their causes, newest first."""
        ensure_allowed(authorize(principal, Action.LIST_VOLUNTEER_TASKS))
        tasks = self._find({"volunteerId": principal.user_id})
        causes = self.cause_service.causes_by_ids(task.cause_id for task in tasks)
        return [(task, causes.get(task.cause_id)) for task in tasks]

    def list_for_ngo(self, principal: Optional[Principal]) -> List[Tuple[Task, Cause, Optional[User]]]:
        """Tasks on the caller's causes joined with cause and volunteer."""
        ensure_allowed(authorize(principal, Action.LIST_NGO_TASKS))
        causes = {cause.id: cause for cause in self.cause_service.list_for_ngo(principal.user_id)}
        if not causes:
            return []

        tasks = self._find({"causeId": {"$in": list(causes)}})
        volunteers = self.user_service.users_by_ids(task.volunteer_id for task in tasks)
        return [(task, causes[task.cause_id], volunteers.get(task.volunteer_id)) for task in tasks]

    def update_status(self, principal: Optional[Principal], task_id: str,
                      new_status: TaskStatus) -> Tuple[Task, Cause]:
        with tracer.start_as_current_span("tasks.update_status") as span:
            span.set_attributes({"task.id": task_id, "task.requested_status": TaskStatus(new_status).value})
            task, cause = self.load(task_id)
            result = plan_status_change(principal, task, cause.ngo_id, new_status)
            return self._apply(principal, task, result, "status_change"), cause

    def submit_proof(self, principal: Optional[Principal], task_id: str,
                     proof_url: str) -> Tuple[Task, Cause]:
        with tracer.start_as_current_span("tasks.submit_proof") as span:
            span.set_attribute("task.id", task_id)
            task, cause = self.load(task_id)
            result = plan_proof_submission(principal, task, cause.ngo_id, proof_url)
            return self._apply(principal, task, result, "submit_proof"), cause

    def approve(self, principal: Optional[Principal], task_id: str) -> Tuple[Task, Cause]:
        with tracer.start_as_current_span("tasks.approve") as span:
            span.set_attribute("task.id", task_id)
            task, cause = self.load(task_id)
            result = plan_approval(principal, task, cause.ngo_id)
            return self._apply(principal, task, result, "approve"), cause

    def opt_out(self, principal: Optional[Principal], task_id: str) -> None:
        """Remove the caller's application, keeping a snapshot in the audit log."""
        with tracer.start_as_current_span("tasks.opt_out") as span:
            span.set_attribute("task.id", task_id)
            task, cause = self.load(task_id)

            result = plan_opt_out(principal, task, cause.ngo_id)
            if not result.allowed:
                raise_for_denial(result.reason)

            self.mongo_service.delete(TASKS, task.id)
            self.audit_service.log_action(principal, "task", task.id, "opt_out", before=task.to_public())
            logger.info(
                "Volunteer opted out",
                extra={"extra_fields": {"task_id": task.id, "cause_id": cause.id, "status": task.status}}
            )

    def certificate(self, principal: Optional[Principal], task_id: str) -> CertificateData:
        """Certificate renderer input for a completed task."""
        task, cause = self.get_task(principal, task_id)
        if TaskStatus(task.status) != TaskStatus.COMPLETED:
            raise AuthorizationException()

        volunteer = self.user_service.get_user(task.volunteer_id)
        ngo = self.user_service.find_user(cause.ngo_id)
        return build_certificate_data(task, cause, volunteer, ngo)
