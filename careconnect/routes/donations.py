# SPDX-License-Identifier: Apache-2.0

"""
Donation endpoints and NGO donation analytics.
"""

from flask import Blueprint, current_app, jsonify

from ..middleware.auth import current_principal, require_auth
from ..middleware.validation import validate_json
from ..models.requests import CreateDonationRequest

donations_bp = Blueprint('donations', __name__, url_prefix='/api')


def _donation_collection(donations, path: str):
    formatter = current_app.hal_formatter
    items = [formatter.format_resource(d.to_public(), f"/api/causes/{d.cause_id}") for d in donations]
    return jsonify(formatter.format_collection(items, "donations", path))


@donations_bp.post('/donations')
@require_auth
@validate_json(CreateDonationRequest)
def create_donation(body: CreateDonationRequest):
    """Record a donation from the calling volunteer."""
    donation = current_app.donation_service.create(current_principal(), body)
    return jsonify(current_app.hal_formatter.format_resource(
        donation.to_public(), "/api/volunteer/donations"
    )), 201


@donations_bp.get('/volunteer/donations')
@require_auth
def list_own_donations():
    donations = current_app.donation_service.list_own(current_principal())
    return _donation_collection(donations, "/api/volunteer/donations")


@donations_bp.get('/ngo/donations')
@require_auth
def list_received_donations():
    donations = current_app.donation_service.list_received(current_principal())
    return _donation_collection(donations, "/api/ngo/donations")


@donations_bp.get('/ngo/donations/analytics')
@require_auth
def donation_analytics():
    analytics = current_app.donation_service.analytics(current_principal())
    return jsonify(current_app.hal_formatter.format_resource(
        analytics.model_dump(mode="json"), "/api/ngo/donations/analytics"
    ))
