# SPDX-License-Identifier: Apache-2.0

"""
Authentication middleware for JWT token validation and principal resolution.

The resolved principal is stored on `flask.g.principal`; anonymous requests
get None. Authorization decisions are left to the resolver in
`careconnect.domain.authorization`.
"""

from functools import wraps
from flask import current_app, g, request
from typing import Any, Callable, Dict, Optional
from opentelemetry import trace
import logging

from ..models.entities import Principal, build_principal
from ..services.auth import TokenValidationError
from .error_handler import AuthenticationException

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthMiddleware:
    """
    JWT authentication middleware for Flask applications.

    Handles token extraction, validation, blocklist checking, and principal
    building for protected endpoints.
    """

    def __init__(self, auth_service, redis_service):
        """
        Initialize the authentication middleware.

        Args:
            auth_service: JWT authentication service
            redis_service: Redis service for token blocklist
        """
        self.auth_service = auth_service
        self.redis_service = redis_service

    def extract_token_from_request(self) -> Optional[str]:
        """
        Extract JWT token from the Authorization header.

        Returns:
            JWT token string or None if not found
        """
        auth_header = request.headers.get('Authorization', '')
        if auth_header.startswith('Bearer '):
            return auth_header[7:].strip() or None
        return None

    def get_request_info(self) -> Dict[str, Any]:
        """Request metadata carried on the principal for auditing."""
        return {
            "ip_address": request.remote_addr,
            "user_agent": request.headers.get('User-Agent', '')
        }

    def build_principal(self, token_payload: Dict[str, Any]) -> Principal:
        """Build the principal variant from a validated token payload."""
        return build_principal(
            user_id=token_payload["sub"],
            role=token_payload["role"],
            username=token_payload.get("username", ""),
            name=token_payload.get("name", ""),
            token_id=token_payload.get("jti"),
            **self.get_request_info()
        )

    def authenticate_request(self) -> Optional[Principal]:
        """
        Resolve the request's principal.

        Returns:
            Principal, or None when no token was presented

        Raises:
            AuthenticationException: Token invalid, expired or revoked
        """
        with tracer.start_as_current_span("auth.middleware.authenticate_request") as span:
            token = self.extract_token_from_request()
            if not token:
                span.set_attribute("auth.result", "anonymous")
                return None

            try:
                payload = self.auth_service.validate_token(token, "access")
                principal = self.build_principal(payload)
            except (TokenValidationError, ValueError) as e:
                span.set_attribute("auth.result", "invalid_token")
                logger.warning(f"Authentication failed: {str(e)}")
                raise AuthenticationException("Invalid or expired token")

            if self.redis_service.is_token_blocked(payload["jti"]):
                span.set_attribute("auth.result", "token_blocked")
                logger.warning("Authentication failed: token is revoked")
                raise AuthenticationException("Token has been revoked")

            g.token_payload = payload
            span.set_attributes({
                "auth.result": "success",
                "user.id": principal.user_id,
                "user.role": principal.role
            })
            return principal


def current_principal() -> Optional[Principal]:
    """Principal resolved for the current request."""
    return g.get("principal")


def optional_auth(f: Callable) -> Callable:
    """Resolve the principal if a token is presented; anonymous is allowed."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.principal = current_app.auth_middleware.authenticate_request()
        return f(*args, **kwargs)
    return decorated_function


def require_auth(f: Callable) -> Callable:
    """Require a valid access token."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        principal = current_app.auth_middleware.authenticate_request()
        if principal is None:
            raise AuthenticationException("Missing authorization token")
        g.principal = principal
        return f(*args, **kwargs)
    return decorated_function
