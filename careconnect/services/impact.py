# SPDX-License-Identifier: Apache-2.0

"""
Loads the records behind impact statistics and hands them to the aggregator.
"""

from typing import Optional
from opentelemetry import trace

from ..domain.authorization import authorize
from ..domain.impact import calculate_global_stats, calculate_volunteer_impact
from ..middleware.error_handler import ensure_allowed
from ..models.entities import Donation, Principal, Task
from ..models.enums import Action, TaskStatus, UserRole
from ..models.responses import GlobalImpactStats, VolunteerImpact
from .causes import CauseService
from .mongodb import MongoDBService, CAUSES, DONATIONS, TASKS, USERS

tracer = trace.get_tracer(__name__)


class ImpactService:
    """Read-only impact statistics. Every call re-queries the store."""

    def __init__(self, mongo_service: MongoDBService, cause_service: CauseService):
        self.mongo_service = mongo_service
        self.cause_service = cause_service

    def volunteer_impact(self, principal: Optional[Principal]) -> VolunteerImpact:
        with tracer.start_as_current_span("impact.volunteer") as span:
            ensure_allowed(authorize(principal, Action.VIEW_OWN_IMPACT))
            span.set_attribute("user.id", principal.user_id)

            tasks = [Task.from_document(doc) for doc in
                     self.mongo_service.find(TASKS, {"volunteerId": principal.user_id})]
            donations = [Donation.from_document(doc) for doc in
                         self.mongo_service.find(DONATIONS, {"volunteerId": principal.user_id})]
            causes = self.cause_service.causes_by_ids(task.cause_id for task in tasks)

            return calculate_volunteer_impact(tasks, donations, causes)

    def global_stats(self) -> GlobalImpactStats:
        with tracer.start_as_current_span("impact.global"):
            verified = [Task.from_document(doc) for doc in self.mongo_service.find(
                TASKS, {"status": TaskStatus.COMPLETED.value, "approved": True}
            )]
            donations = [Donation.from_document(doc) for doc in self.mongo_service.find(DONATIONS)]

            return calculate_global_stats(
                total_ngos=self.mongo_service.count(USERS, {"role": UserRole.NGO.value}),
                total_volunteers=self.mongo_service.count(USERS, {"role": UserRole.VOLUNTEER.value}),
                total_causes=self.mongo_service.count(CAUSES),
                tasks=verified,
                donations=donations,
            )
