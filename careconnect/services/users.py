# SPDX-License-Identifier: Apache-2.0

"""
User accounts: registration, login, profiles and the follow graph.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple
from opentelemetry import trace
from pydantic.alias_generators import to_camel
from pymongo import ASCENDING
from pymongo.errors import DuplicateKeyError

from ..domain.authorization import authorize
from ..middleware.error_handler import (
    AuthenticationException, ConflictException, NotFoundException, ensure_allowed
)
from ..models.base import utcnow
from ..models.entities import Principal, User
from ..models.enums import Action, UserRole
from ..models.requests import LoginRequest, RegisterRequest, UpdateProfileRequest
from .auth import AuthService
from .mongodb import MongoDBService, FOLLOWS, USERS

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class UserService:
    """Service for user accounts and follows."""

    def __init__(self, mongo_service: MongoDBService, auth_service: AuthService):
        self.mongo_service = mongo_service
        self.auth_service = auth_service

    def find_user(self, user_id: str) -> Optional[User]:
        return User.from_document(self.mongo_service.find_one(USERS, user_id))

    def get_user(self, user_id: str) -> User:
        user = self.find_user(user_id)
        if user is None:
            raise NotFoundException(f"User {user_id} not found")
        return user

    def find_by_username(self, username: str) -> Optional[User]:
        return User.from_document(self.mongo_service.find_one_by(USERS, {"username": username.lower()}))

    def users_by_ids(self, user_ids: Iterable[str]) -> Dict[str, User]:
        documents = self.mongo_service.find_by_ids(USERS, user_ids)
        return {user_id: User.from_document(doc) for user_id, doc in documents.items()}

    def register(self, request: RegisterRequest) -> Tuple[User, Dict[str, Any]]:
        """
        Create an account and issue its first token pair.

        Raises:
            ConflictException: Username already taken
        """
        with tracer.start_as_current_span("users.register") as span:
            span.set_attribute("user.role", request.role)

            if self.find_by_username(request.username):
                raise ConflictException("Username already exists")

            user = User(
                username=request.username,
                password_hash=self.auth_service.hash_password(request.password),
                role=request.role,
                name=request.name,
                email=request.email
            )
            try:
                self.mongo_service.create(USERS, user.to_document())
            except DuplicateKeyError:
                raise ConflictException("Username already exists")

            logger.info(
                "User registered",
                extra={"extra_fields": {"user_id": user.id, "role": user.role}}
            )
            return user, self.auth_service.generate_tokens(user)

    def login(self, request: LoginRequest) -> Tuple[User, Dict[str, Any]]:
        """
        Verify credentials and issue a token pair.

        Raises:
            AuthenticationException: Unknown user or wrong password
        """
        with tracer.start_as_current_span("users.login") as span:
            user = self.find_by_username(request.username)
            if user is None or not self.auth_service.verify_password(request.password, user.password_hash):
                span.set_attribute("auth.result", "invalid_credentials")
                logger.warning("Login failed", extra={"extra_fields": {"username": request.username}})
                raise AuthenticationException("Invalid username or password")

            self.mongo_service.update(USERS, user.id, {"lastLogin": utcnow()})
            span.set_attributes({"auth.result": "success", "user.id": user.id})
            return user, self.auth_service.generate_tokens(user)

    def current_user(self, principal: Optional[Principal]) -> User:
        ensure_allowed(authorize(principal, Action.VIEW_ACCOUNT))
        return self.get_user(principal.user_id)

    def update_profile(self, principal: Optional[Principal], request: UpdateProfileRequest) -> User:
        """Update the caller's own profile fields. Identity fields never change here."""
        ensure_allowed(authorize(principal, Action.UPDATE_PROFILE))

        changes = request.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return self.get_user(principal.user_id)

        current = self.get_user(principal.user_id)
        updated = User.model_validate({**current.model_dump(), **changes})
        stored = {
            key: value for key, value in updated.model_dump(by_alias=True).items()
            if key in {to_camel(name) for name in changes}
        }
        document = self.mongo_service.update(USERS, principal.user_id, stored)
        if document is None:
            raise NotFoundException(f"User {principal.user_id} not found")
        return User.from_document(document)

    def list_ngos(self, principal: Optional[Principal]) -> List[User]:
        ensure_allowed(authorize(principal, Action.LIST_NGOS))
        documents = self.mongo_service.find(USERS, {"role": UserRole.NGO.value}, sort=[("name", ASCENDING)])
        return [User.from_document(doc) for doc in documents]

    def follower_count(self, user_id: str) -> int:
        return self.mongo_service.count(FOLLOWS, {"followingId": user_id})

    def following_count(self, user_id: str) -> int:
        return self.mongo_service.count(FOLLOWS, {"followerId": user_id})

    def is_following(self, follower_id: Optional[str], following_id: str) -> bool:
        if follower_id is None:
            return False
        return self.mongo_service.count(
            FOLLOWS, {"followerId": follower_id, "followingId": following_id}
        ) > 0

    def public_profile(self, user_id: str, principal: Optional[Principal]) -> Dict[str, Any]:
        """Public profile with derived follow counters for the viewer."""
        ensure_allowed(authorize(principal, Action.VIEW_PROFILE))
        user = self.get_user(user_id)

        profile = user.to_public(exclude={"last_login"})
        profile.update({
            "follower_count": self.follower_count(user.id),
            "following_count": self.following_count(user.id),
            "is_following": self.is_following(principal.user_id if principal else None, user.id)
        })
        return profile

    def toggle_follow(self, principal: Optional[Principal], target_id: str) -> Tuple[bool, int]:
        """
        Flip the caller's follow of a user.

        Returns:
            (following after the call, target's follower count)
        """
        with tracer.start_as_current_span("users.toggle_follow") as span:
            ensure_allowed(authorize(principal, Action.FOLLOW_USER, target_id))
            target = self.get_user(target_id)

            following = self.mongo_service.toggle_relation(
                FOLLOWS, {"followerId": principal.user_id, "followingId": target.id}
            )
            span.set_attribute("social.following", following)
            return following, self.follower_count(target.id)
