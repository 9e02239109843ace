# SPDX-License-Identifier: Apache-2.0

"""
Authentication endpoints.

Handles registration, login, token refresh and logout with a Redis-backed
token blocklist.
"""

from flask import Blueprint, current_app, g, jsonify
from opentelemetry import trace
import logging

from ..middleware.auth import current_principal, require_auth
from ..middleware.error_handler import AuthenticationException
from ..middleware.validation import validate_json
from ..models.requests import LoginRequest, RefreshTokenRequest, RegisterRequest
from ..services.auth import TokenValidationError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _session_response(user, tokens):
    body = dict(tokens)
    body["user"] = user.to_public()
    return current_app.hal_formatter.format_resource(body, "/api/user")


@auth_bp.post('/register')
@validate_json(RegisterRequest)
def register(body: RegisterRequest):
    """Create an account and sign it in."""
    user, tokens = current_app.user_service.register(body)
    return jsonify(_session_response(user, tokens)), 201


@auth_bp.post('/login')
@validate_json(LoginRequest)
def login(body: LoginRequest):
    """Authenticate with username and password."""
    user, tokens = current_app.user_service.login(body)
    logger.info("User logged in", extra={"extra_fields": {"user_id": user.id}})
    return jsonify(_session_response(user, tokens))


@auth_bp.post('/refresh')
@validate_json(RefreshTokenRequest)
def refresh(body: RefreshTokenRequest):
    """Exchange a refresh token for a new access token."""
    with tracer.start_as_current_span("auth.refresh_endpoint") as span:
        try:
            payload = current_app.auth_service.validate_token(body.refresh_token, "refresh")
            if current_app.redis_service.is_token_blocked(payload["jti"]):
                raise TokenValidationError("Token has been revoked")
            tokens = current_app.auth_service.refresh_access_token(body.refresh_token)
        except TokenValidationError as e:
            span.set_attribute("auth.refresh_result", "invalid")
            raise AuthenticationException(str(e))

        return jsonify(tokens)


@auth_bp.post('/logout')
@require_auth
def logout():
    """Revoke the presented access token until it expires."""
    principal = current_principal()
    payload = g.token_payload

    ttl = current_app.auth_service.token_ttl(payload)
    current_app.redis_service.block_token(payload["jti"], ttl)

    logger.info(
        "User logged out",
        extra={"extra_fields": {"user_id": principal.user_id, "token_ttl": ttl}}
    )
    return jsonify({"message": "Successfully logged out"})
