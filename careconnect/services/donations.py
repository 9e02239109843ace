# SPDX-License-Identifier: Apache-2.0

"""
Donation ledger and NGO donation analytics.
"""

import logging
from typing import List, Optional
from opentelemetry import trace
from pymongo import DESCENDING

from ..domain.authorization import authorize
from ..domain.impact import calculate_donation_analytics
from ..middleware.error_handler import ensure_allowed
from ..models.entities import Donation, Principal
from ..models.enums import Action
from ..models.requests import CreateDonationRequest
from ..models.responses import DonationAnalytics
from .causes import CauseService
from .mongodb import MongoDBService, DONATIONS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class DonationService:
    """Append-only donations. There is no update or delete path."""

    def __init__(self, mongo_service: MongoDBService, cause_service: CauseService):
        self.mongo_service = mongo_service
        self.cause_service = cause_service

    def _find(self, filters) -> List[Donation]:
        documents = self.mongo_service.find(
            DONATIONS, filters, sort=[("createdAt", DESCENDING), ("_id", DESCENDING)]
        )
        return [Donation.from_document(doc) for doc in documents]

    def create(self, principal: Optional[Principal], request: CreateDonationRequest) -> Donation:
        """Record a donation from the calling volunteer to an existing cause."""
        with tracer.start_as_current_span("donations.create") as span:
            ensure_allowed(authorize(principal, Action.CREATE_DONATION))
            cause = self.cause_service.get_cause(request.cause_id)

            donation = Donation(cause_id=cause.id, volunteer_id=principal.user_id, amount=request.amount)
            self.mongo_service.create(DONATIONS, donation.to_document())

            span.set_attributes({"donation.id": donation.id, "cause.id": cause.id})
            logger.info(
                "Donation recorded",
                extra={"extra_fields": {
                    "donation_id": donation.id,
                    "cause_id": cause.id,
                    "amount": str(donation.amount)
                }}
            )
            return donation

    def list_own(self, principal: Optional[Principal]) -> List[Donation]:
        ensure_allowed(authorize(principal, Action.LIST_OWN_DONATIONS))
        return self._find({"volunteerId": principal.user_id})

    def list_received(self, principal: Optional[Principal]) -> List[Donation]:
        """Donations to the calling NGO's causes."""
        ensure_allowed(authorize(principal, Action.LIST_RECEIVED_DONATIONS))
        cause_ids = [cause.id for cause in self.cause_service.list_for_ngo(principal.user_id)]
        if not cause_ids:
            return []
        return self._find({"causeId": {"$in": cause_ids}})

    def analytics(self, principal: Optional[Principal]) -> DonationAnalytics:
        ensure_allowed(authorize(principal, Action.LIST_RECEIVED_DONATIONS))
        causes = {cause.id: cause for cause in self.cause_service.list_for_ngo(principal.user_id)}
        if not causes:
            return DonationAnalytics()
        donations = self._find({"causeId": {"$in": list(causes)}})
        return calculate_donation_analytics(reversed(donations), causes)
