# SPDX-License-Identifier: Apache-2.0

"""
Impact statistics endpoints.
"""

from flask import Blueprint, current_app, jsonify

from ..middleware.auth import current_principal, require_auth

impact_bp = Blueprint('impact', __name__, url_prefix='/api')


@impact_bp.get('/volunteer/impact')
@require_auth
def volunteer_impact():
    """Hours, donations and causes supported by the calling volunteer."""
    impact = current_app.impact_service.volunteer_impact(current_principal())
    return jsonify(current_app.hal_formatter.format_resource(
        impact.model_dump(mode="json"), "/api/volunteer/impact"
    ))


@impact_bp.get('/impact/stats')
def global_stats():
    stats = current_app.impact_service.global_stats()
    return jsonify(current_app.hal_formatter.format_resource(stats.model_dump(mode="json"), "/api/impact/stats"))
