# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Audit service for lifecycle mutation logging with OpenTelemetry correlation.
"""

import logging
from typing import Any, Dict, List, Optional
from opentelemetry import trace
from pymongo import DESCENDING

from .mongodb import MongoDBService, AUDIT_LOGS
from ..models.entities import AuditLog, Principal

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AuditService:
    """Service for audit logging with MongoDB persistence."""

    def __init__(self, mongo_service: MongoDBService):
        """Initialize audit service with MongoDB dependency."""
        self.mongo_service = mongo_service
        self.collection_name = AUDIT_LOGS

    def log_action(
        self,
        principal: Optional[Principal],
        entity: str,
        entity_id: str,
        action: str,
        before: Optional[Dict[str, Any]] = None,
        after: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log an audit trail entry with trace correlation and structured logging.

        Args:
            principal: Acting principal, with request details
            entity: Type of entity being acted upon
            entity_id: ID of the specific entity
            action: Action being performed
            before: State before the action (optional)
            after: State after the action (optional)

        Returns:
            str: ID of the created audit log entry
        """
        with tracer.start_as_current_span("audit.log_action") as span:
            span_context = span.get_span_context()

            entry = AuditLog(
                user_id=principal.user_id if principal else None,
                entity=entity,
                entity_id=entity_id,
                action=action,
                before=before,
                after=after,
                ip_address=principal.ip_address if principal else None,
                user_agent=principal.user_agent if principal else None,
                trace_id=format(span_context.trace_id, "032x") if span_context.is_valid else None
            )

            span.set_attributes({
                "audit.entity": entity,
                "audit.action": action,
                "audit.entity_id": entity_id
            })

            try:
                audit_id = self.mongo_service.create(self.collection_name, entry.to_document())
            except Exception as e:
                span.record_exception(e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.error(
                    "Failed to create audit trail entry",
                    extra={"extra_fields": {
                        "entity": entity,
                        "entity_id": entity_id,
                        "action": action,
                        "error": str(e)
                    }},
                    exc_info=True
                )
                raise

            logger.info(
                "Audit trail entry created",
                extra={"extra_fields": {
                    "audit_id": audit_id,
                    "entity": entity,
                    "entity_id": entity_id,
                    "action": action,
                    "user_id": entry.user_id,
                    "trace_id": entry.trace_id
                }}
            )
            return audit_id

    def entries_for(self, entity: str, entity_id: str) -> List[AuditLog]:
        """Audit entries for one entity, newest first."""
        documents = self.mongo_service.find(
            self.collection_name,
            {"entity": entity, "entityId": entity_id},
            sort=[("timestamp", DESCENDING), ("_id", DESCENDING)]
        )
        return [AuditLog.from_document(doc) for doc in documents]
