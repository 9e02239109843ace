# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the CareConnect platform.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Literal, Optional, Union
from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator, ConfigDict
from bson.decimal128 import Decimal128
from .base import BaseEntity, as_naive_utc, utcnow
from .enums import UserRole, CauseStatus, TaskStatus


EMAIL_PATTERN = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'


class User(BaseEntity):
    """User account. The role is fixed at registration."""

    username: str = Field(..., min_length=3, max_length=50, description="Unique login name")
    password_hash: str = Field(..., description="bcrypt password hash")
    role: UserRole = Field(..., description="Capability set of the account")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: Optional[str] = Field(None, description="Contact email")
    bio: Optional[str] = Field(None, max_length=2000, description="Profile biography")
    avatar_url: Optional[str] = Field(None, max_length=2048, description="Avatar image URL")
    banner_url: Optional[str] = Field(None, max_length=2048, description="Profile banner URL")
    phone: Optional[str] = Field(None, max_length=50, description="Contact phone")
    website: Optional[str] = Field(None, max_length=2048, description="Website URL")
    last_login: Optional[datetime] = Field(None, description="Last login timestamp")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if v is None:
            return v
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        """Validate user name."""
        if not v.strip():
            raise ValueError('User name cannot be empty')
        return v.strip()

    def to_public(self, exclude: Optional[set] = None) -> Dict[str, Any]:
        """Public representation, never exposing the password hash."""
        return super().to_public(exclude=(exclude or set()) | {"password_hash"})

    def summary(self) -> Dict[str, Any]:
        """Compact author/volunteer reference embedded in other resources."""
        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
            "avatar_url": self.avatar_url,
        }


class Cause(BaseEntity):
    """Volunteering opportunity owned by exactly one NGO."""

    ngo_id: str = Field(..., description="Owning NGO user ID")
    title: str = Field(..., min_length=1, max_length=200, description="Cause title")
    description: str = Field(..., min_length=1, max_length=5000, description="Cause description")
    category: str = Field(..., min_length=1, max_length=100, description="Free-text category")
    location: str = Field(..., min_length=1, max_length=300, description="Free-text location")
    urgency: int = Field(default=0, ge=0, le=10, description="Urgency score for highlighting")
    status: CauseStatus = Field(default=CauseStatus.OPEN, description="Cause status")
    start_date: Optional[datetime] = Field(None, description="Volunteering window start")
    end_date: Optional[datetime] = Field(None, description="Volunteering window end")
    latitude: Optional[float] = Field(None, description="Geocoded latitude")
    longitude: Optional[float] = Field(None, description="Geocoded longitude")
    image_url: Optional[str] = Field(None, max_length=2048, description="Cover image URL")

    @field_validator('title', 'category', 'location')
    @classmethod
    def validate_not_blank(cls, v):
        """Strip and reject blank strings."""
        if not v.strip():
            raise ValueError('Value cannot be empty')
        return v.strip()

    @model_validator(mode='after')
    def validate_date_window(self):
        """The date window must not end before it starts."""
        if self.start_date and self.end_date and as_naive_utc(self.end_date) < as_naive_utc(self.start_date):
            raise ValueError('end_date cannot be before start_date')
        return self

    def is_open(self) -> bool:
        return self.status == CauseStatus.OPEN


class Task(BaseEntity):
    """One volunteer's engagement with one cause."""

    cause_id: str = Field(..., description="Cause ID")
    volunteer_id: str = Field(..., description="Applying volunteer user ID")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Lifecycle status")
    approved: bool = Field(default=False, description="NGO-verified completion flag")
    proof_url: Optional[str] = Field(None, max_length=2048, description="Proof of work URL")
    start_date: Optional[datetime] = Field(None, description="Volunteering window start")
    end_date: Optional[datetime] = Field(None, description="Volunteering window end")

    @model_validator(mode='after')
    def validate_approval(self):
        """Approval is only meaningful for completed work."""
        if self.approved and self.status != TaskStatus.COMPLETED:
            raise ValueError('Only completed tasks can be approved')
        return self

    def is_verified(self) -> bool:
        """Completed and approved by the owning NGO."""
        return self.status == TaskStatus.COMPLETED and self.approved


class Donation(BaseEntity):
    """Append-only donation ledger entry."""

    cause_id: str = Field(..., description="Cause ID")
    volunteer_id: str = Field(..., description="Donor user ID")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Donated amount")

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_decimal128(cls, v):
        """Stored amounts come back from MongoDB as Decimal128."""
        if isinstance(v, Decimal128):
            return v.to_decimal()
        return v

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)

    def to_document(self) -> Dict[str, Any]:
        document = super().to_document()
        document["amount"] = Decimal128(str(self.amount))
        return document


class Post(BaseEntity):
    """Social feed post."""

    author_id: str = Field(..., description="Author user ID")
    content: str = Field(..., min_length=1, max_length=5000, description="Post body")
    media_url: Optional[str] = Field(None, max_length=2048, description="Attached media URL")


class PostComment(BaseEntity):
    """Append-only comment on a post."""

    post_id: str = Field(..., description="Post ID")
    author_id: str = Field(..., description="Author user ID")
    content: str = Field(..., min_length=1, max_length=2000, description="Comment body")


class AuditLog(BaseEntity):
    """Audit trail entry for lifecycle mutations."""

    user_id: Optional[str] = Field(None, description="Acting user ID")
    entity: str = Field(..., description="Entity type")
    entity_id: str = Field(..., description="Entity ID")
    action: str = Field(..., description="Action performed")
    before: Optional[Dict[str, Any]] = Field(None, description="State before the action")
    after: Optional[Dict[str, Any]] = Field(None, description="State after the action")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")
    trace_id: Optional[str] = Field(None, description="Trace ID for correlation")
    timestamp: datetime = Field(default_factory=utcnow, description="Event timestamp")


class _PrincipalBase(BaseModel):
    """Authenticated caller resolved from an access token."""

    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., description="User ID")
    username: str = Field(..., description="Login name")
    name: str = Field(default="", description="Display name")
    token_id: Optional[str] = Field(None, description="Access token jti")
    ip_address: Optional[str] = Field(None, description="Client IP address")
    user_agent: Optional[str] = Field(None, description="Client user agent")


class NgoPrincipal(_PrincipalBase):
    role: Literal["ngo"] = "ngo"


class VolunteerPrincipal(_PrincipalBase):
    role: Literal["volunteer"] = "volunteer"


Principal = Union[NgoPrincipal, VolunteerPrincipal]


def build_principal(user_id: str, role: str, username: str, name: str = "", **context) -> Principal:
    """Build the principal variant matching a stored role."""
    if role == UserRole.NGO:
        return NgoPrincipal(user_id=user_id, username=username, name=name, **context)
    if role == UserRole.VOLUNTEER:
        return VolunteerPrincipal(user_id=user_id, username=username, name=name, **context)
    raise ValueError(f"Unknown role: {role}")
