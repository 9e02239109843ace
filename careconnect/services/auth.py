# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

Tokens are signed with RS256 and carry the account role so every request
can resolve its principal without a database round trip. Passwords are
hashed with bcrypt.
"""

import uuid
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

from ..models.entities import User

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


def generate_dev_key_pair() -> Tuple[str, str]:
    """Generate an RSA key pair (PEM private, PEM public) for development use."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


class AuthService:
    """
    JWT authentication service with RS256 signing and bcrypt password hashing.
    """

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None,
                 access_token_expires: int = 3600, refresh_token_expires: int = 604800,
                 issuer: str = "careconnect-api", bcrypt_rounds: int = 12):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
            access_token_expires: Access token lifetime in seconds
            refresh_token_expires: Refresh token lifetime in seconds
            issuer: Token issuer claim
            bcrypt_rounds: bcrypt cost factor
        """
        if not private_key or not public_key:
            logger.warning("No JWT key pair configured, generating development key pair")
            private_key, public_key = generate_dev_key_pair()

        self.private_key = private_key
        self.public_key = public_key
        self.algorithm = "RS256"
        self.issuer = issuer
        self.access_token_expires = access_token_expires
        self.refresh_token_expires = refresh_token_expires
        self.bcrypt_rounds = bcrypt_rounds

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt with salt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        with tracer.start_as_current_span("auth.hash_password") as span:
            span.set_attribute("auth.operation", "hash_password")

            salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
            hashed = bcrypt.hashpw(password.encode('utf-8'), salt)

            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns:
            True if password matches, False otherwise
        """
        with tracer.start_as_current_span("auth.verify_password") as span:
            span.set_attribute("auth.operation", "verify_password")

            try:
                result = bcrypt.checkpw(
                    password.encode('utf-8'),
                    hashed_password.encode('utf-8')
                )
            except ValueError as e:
                span.set_attribute("auth.verification_result", "error")
                logger.error(f"Password verification error: {str(e)}")
                return False

            span.set_attribute("auth.verification_result", "success" if result else "failed")
            return result

    def _encode(self, payload: Dict[str, Any]) -> str:
        return jwt.encode(payload, self.private_key, algorithm=self.algorithm)

    def _access_payload(self, user_id: str, role: str, username: str, name: str,
                        now: datetime) -> Dict[str, Any]:
        return {
            "sub": user_id,
            "role": role,
            "username": username,
            "name": name,
            "iss": self.issuer,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + timedelta(seconds=self.access_token_expires),
            "type": "access"
        }

    def generate_tokens(self, user: User) -> Dict[str, Any]:
        """
        Generate access and refresh tokens for a user.

        Args:
            user: User entity to generate tokens for

        Returns:
            Dictionary containing access_token, refresh_token, and metadata
        """
        with tracer.start_as_current_span("auth.generate_tokens") as span:
            span.set_attributes({
                "auth.operation": "generate_tokens",
                "user.id": user.id,
                "user.role": user.role
            })

            now = datetime.now(timezone.utc)
            refresh_exp = now + timedelta(seconds=self.refresh_token_expires)

            access_payload = self._access_payload(user.id, user.role, user.username, user.name, now)
            refresh_payload = {
                "sub": user.id,
                "role": user.role,
                "username": user.username,
                "name": user.name,
                "iss": self.issuer,
                "jti": uuid.uuid4().hex,
                "iat": now,
                "exp": refresh_exp,
                "type": "refresh"
            }

            try:
                access_token = self._encode(access_payload)
                refresh_token = self._encode(refresh_payload)
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                span.set_attribute("auth.tokens_generated", "error")
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate tokens: {str(e)}")

            span.set_attribute("auth.tokens_generated", "success")
            logger.info(
                "JWT tokens generated",
                extra={"extra_fields": {"user_id": user.id, "role": user.role}}
            )

            return {
                "access_token": access_token,
                "refresh_token": refresh_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expires
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Args:
            token: JWT token string to validate
            token_type: Expected token type ("access" or "refresh")

        Returns:
            Decoded token payload

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    issuer=self.issuer,
                    options={"verify_exp": True, "require": ["sub", "role", "jti", "exp"]}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "wrong_type")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub"),
                "user.role": payload.get("role")
            })
            return payload

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Generate a new access token using a valid refresh token.

        Raises:
            TokenValidationError: If refresh token is invalid
        """
        with tracer.start_as_current_span("auth.refresh_access_token") as span:
            span.set_attribute("auth.operation", "refresh_access_token")

            payload = self.validate_token(refresh_token, "refresh")
            now = datetime.now(timezone.utc)
            access_token = self._encode(self._access_payload(
                payload["sub"], payload["role"], payload.get("username", ""),
                payload.get("name", ""), now
            ))

            span.set_attribute("auth.refresh_result", "success")
            logger.info(
                "Access token refreshed",
                extra={"extra_fields": {"user_id": payload["sub"]}}
            )

            return {
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expires
            }

    def token_ttl(self, payload: Dict[str, Any]) -> int:
        """Seconds until a decoded token expires, at least 1."""
        remaining = int(payload["exp"] - datetime.now(timezone.utc).timestamp())
        return max(remaining, 1)
