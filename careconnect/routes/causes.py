# SPDX-License-Identifier: Apache-2.0

"""
Cause endpoints.

Listing and detail views are public; writes are limited to the owning NGO.
Representations advertise only the actions the viewer may perform.
"""

from typing import Iterable, List
from flask import Blueprint, current_app, jsonify
import logging

from ..middleware.auth import current_principal, optional_auth, require_auth
from ..middleware.validation import validate_json, validate_query
from ..models.entities import Cause
from ..models.requests import CauseFilters, CreateCauseRequest, UpdateCauseRequest

logger = logging.getLogger(__name__)

causes_bp = Blueprint('causes', __name__, url_prefix='/api')


def _format_causes(causes: Iterable[Cause]) -> List[dict]:
    """Format causes with their owning NGO's name."""
    causes = list(causes)
    principal = current_principal()
    ngos = current_app.user_service.users_by_ids(cause.ngo_id for cause in causes)
    items = []
    for cause in causes:
        ngo = ngos.get(cause.ngo_id)
        items.append(current_app.hal_formatter.format_cause(
            cause, principal, {"ngo_name": ngo.name if ngo else None}
        ))
    return items


def _cause_collection(causes: Iterable[Cause], path: str):
    return jsonify(current_app.hal_formatter.format_collection(_format_causes(causes), "causes", path))


@causes_bp.get('/causes')
@optional_auth
@validate_query(CauseFilters)
def list_causes(filters: CauseFilters):
    """List causes, newest first, filtered by category, location and status."""
    return _cause_collection(current_app.cause_service.list_causes(filters), "/api/causes")


@causes_bp.post('/causes')
@require_auth
@validate_json(CreateCauseRequest)
def create_cause(body: CreateCauseRequest):
    cause = current_app.cause_service.create_cause(current_principal(), body)
    return jsonify(_format_causes([cause])[0]), 201


@causes_bp.get('/causes/<cause_id>')
@optional_auth
def get_cause(cause_id: str):
    cause = current_app.cause_service.get_cause(cause_id)
    return jsonify(_format_causes([cause])[0])


@causes_bp.patch('/causes/<cause_id>')
@require_auth
@validate_json(UpdateCauseRequest)
def update_cause(body: UpdateCauseRequest, cause_id: str):
    cause = current_app.cause_service.update_cause(current_principal(), cause_id, body)
    return jsonify(_format_causes([cause])[0])


@causes_bp.delete('/causes/<cause_id>')
@require_auth
def delete_cause(cause_id: str):
    """Delete a cause together with all of its tasks."""
    current_app.cause_service.delete_cause(current_principal(), cause_id)
    return '', 204


@causes_bp.get('/ngo/causes')
@require_auth
def list_own_causes():
    return _cause_collection(current_app.cause_service.list_own(current_principal()), "/api/ngo/causes")


@causes_bp.get('/causes/ngo/<ngo_id>')
@optional_auth
def list_ngo_causes(ngo_id: str):
    return _cause_collection(current_app.cause_service.list_for_ngo(ngo_id), f"/api/causes/ngo/{ngo_id}")
