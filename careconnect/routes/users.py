# SPDX-License-Identifier: Apache-2.0

"""
Account, profile and follow endpoints.
"""

from flask import Blueprint, current_app, jsonify

from ..middleware.auth import current_principal, optional_auth, require_auth
from ..middleware.validation import validate_json
from ..models.requests import UpdateProfileRequest

users_bp = Blueprint('users', __name__, url_prefix='/api')


@users_bp.get('/user')
@require_auth
def get_current_user():
    user = current_app.user_service.current_user(current_principal())
    return jsonify(current_app.hal_formatter.format_resource(user.to_public(), "/api/user"))


@users_bp.patch('/user')
@require_auth
@validate_json(UpdateProfileRequest)
def update_current_user(body: UpdateProfileRequest):
    """Update the caller's profile. Identity fields in the payload are ignored."""
    user = current_app.user_service.update_profile(current_principal(), body)
    return jsonify(current_app.hal_formatter.format_resource(user.to_public(), "/api/user"))


@users_bp.get('/ngos')
@require_auth
def list_ngos():
    formatter = current_app.hal_formatter
    ngos = current_app.user_service.list_ngos(current_principal())
    items = [
        formatter.format_resource(ngo.to_public(exclude={"last_login"}), f"/api/users/{ngo.id}")
        for ngo in ngos
    ]
    return jsonify(formatter.format_collection(items, "ngos", "/api/ngos"))


@users_bp.get('/users/<user_id>')
@optional_auth
def get_profile(user_id: str):
    profile = current_app.user_service.public_profile(user_id, current_principal())
    return jsonify(current_app.hal_formatter.format_resource(profile, f"/api/users/{user_id}"))


@users_bp.post('/users/<user_id>/follow')
@require_auth
def toggle_follow(user_id: str):
    following, follower_count = current_app.user_service.toggle_follow(current_principal(), user_id)
    return jsonify({"following": following, "follower_count": follower_count})
