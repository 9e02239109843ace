# SPDX-License-Identifier: Apache-2.0

"""
Cause persistence and owner-gated lifecycle operations.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional
from opentelemetry import trace
from pydantic.alias_generators import to_camel
from pymongo import DESCENDING

from ..domain.authorization import authorize
from ..domain.causes import build_cause, plan_cause_update, with_coordinates
from ..middleware.error_handler import NotFoundException, ValidationException, ensure_allowed, raise_for_denial
from ..models.entities import Cause, Principal
from ..models.enums import Action, CauseStatus
from ..models.requests import CauseFilters, CreateCauseRequest, UpdateCauseRequest
from .audit import AuditService
from .geocoding import Geocoder, resolve_coordinates
from .mongodb import MongoDBService, CAUSES, TASKS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


class CauseService:
    """Service for causes with ownership enforcement and cascade deletion."""

    def __init__(self, mongo_service: MongoDBService, audit_service: AuditService, geocoder: Geocoder):
        self.mongo_service = mongo_service
        self.audit_service = audit_service
        self.geocoder = geocoder

    def _find(self, filters: Dict) -> List[Cause]:
        documents = self.mongo_service.find(CAUSES, filters, sort=NEWEST_FIRST)
        return [Cause.from_document(doc) for doc in documents]

    def find_cause(self, cause_id: str) -> Optional[Cause]:
        return Cause.from_document(self.mongo_service.find_one(CAUSES, cause_id))

    def get_cause(self, cause_id: str) -> Cause:
        cause = self.find_cause(cause_id)
        if cause is None:
            raise NotFoundException(f"Cause {cause_id} not found")
        return cause

    def causes_by_ids(self, cause_ids: Iterable[str]) -> Dict[str, Cause]:
        documents = self.mongo_service.find_by_ids(CAUSES, cause_ids)
        return {cause_id: Cause.from_document(doc) for cause_id, doc in documents.items()}

    def list_causes(self, filters: CauseFilters) -> List[Cause]:
        """Public cause listing, newest first."""
        query: Dict = {}
        if filters.category:
            query["category"] = filters.category
        if filters.location:
            query["location"] = {"$regex": re.escape(filters.location), "$options": "i"}
        if filters.status:
            query["status"] = CauseStatus(filters.status).value
        return self._find(query)

    def list_for_ngo(self, ngo_id: str) -> List[Cause]:
        return self._find({"ngoId": ngo_id})

    def list_own(self, principal: Optional[Principal]) -> List[Cause]:
        ensure_allowed(authorize(principal, Action.LIST_OWN_CAUSES))
        return self.list_for_ngo(principal.user_id)

    def create_cause(self, principal: Optional[Principal], request: CreateCauseRequest) -> Cause:
        """Create an open cause owned by the calling NGO."""
        with tracer.start_as_current_span("causes.create") as span:
            ensure_allowed(authorize(principal, Action.CREATE_CAUSE))

            coordinates = resolve_coordinates(self.geocoder, request.location)
            cause = build_cause(principal, request.model_dump(), coordinates)
            self.mongo_service.create(CAUSES, cause.to_document())

            span.set_attributes({"cause.id": cause.id, "cause.geocoded": coordinates is not None})
            logger.info(
                "Cause created",
                extra={"extra_fields": {"cause_id": cause.id, "ngo_id": cause.ngo_id}}
            )
            return cause

    def update_cause(self, principal: Optional[Principal], cause_id: str,
                     request: UpdateCauseRequest) -> Cause:
        """Apply an owner's changes, geocoding again when the location moves."""
        with tracer.start_as_current_span("causes.update") as span:
            span.set_attribute("cause.id", cause_id)
            cause = self.get_cause(cause_id)

            plan = plan_cause_update(principal, cause, request.model_dump(exclude_unset=True))
            if plan.reason:
                raise_for_denial(plan.reason)
            if plan.error_message:
                raise ValidationException(
                    plan.error_message,
                    [{"field": "end_date", "message": plan.error_message, "type": "value_error"}]
                )
            if not plan.changes:
                return cause

            changes = plan.changes
            if plan.relocated:
                changes = with_coordinates(changes, resolve_coordinates(self.geocoder, changes["location"]))

            stored = {
                key: value for key, value in
                Cause.model_validate({**cause.model_dump(), **changes}).model_dump(by_alias=True).items()
                if key in {to_camel(name) for name in changes}
            }
            document = self.mongo_service.update(CAUSES, cause.id, stored)
            if document is None:
                raise NotFoundException(f"Cause {cause_id} not found")

            span.set_attribute("cause.relocated", plan.relocated)
            return Cause.from_document(document)

    def delete_cause(self, principal: Optional[Principal], cause_id: str) -> int:
        """
        Delete a cause and every task that references it.

        Returns:
            Number of tasks removed with the cause
        """
        with tracer.start_as_current_span("causes.delete") as span:
            span.set_attribute("cause.id", cause_id)
            cause = self.get_cause(cause_id)
            ensure_allowed(authorize(principal, Action.DELETE_CAUSE, cause))

            removed_tasks = self.mongo_service.delete_many(TASKS, {"causeId": cause.id})
            self.mongo_service.delete(CAUSES, cause.id)

            self.audit_service.log_action(
                principal, "cause", cause.id, "delete",
                before=cause.to_public(), after={"removed_tasks": removed_tasks}
            )
            span.set_attribute("cause.removed_tasks", removed_tasks)
            logger.info(
                "Cause deleted",
                extra={"extra_fields": {"cause_id": cause.id, "removed_tasks": removed_tasks}}
            )
            return removed_tasks
