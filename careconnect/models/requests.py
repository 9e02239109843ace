# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

import re
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from .base import as_naive_utc
from .entities import EMAIL_PATTERN
from .enums import UserRole, CauseStatus, TaskStatus


URL_PATTERN = r'^(https?://\S+|/\S*)$'


def _validate_url(v):
    if v is None:
        return v
    v = v.strip()
    if not re.match(URL_PATTERN, v):
        raise ValueError('Must be an http(s) URL or an absolute path')
    return v


class RegisterRequest(BaseModel):
    """Request model for account registration."""

    username: str = Field(..., min_length=3, max_length=50, description="Unique login name")
    password: str = Field(..., min_length=8, max_length=128, description="Account password")
    role: UserRole = Field(..., description="Account role")
    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    email: Optional[str] = Field(None, description="Contact email")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        """Usernames are lowercase letters, digits, dots, dashes and underscores."""
        v = v.strip().lower()
        if not re.match(r'^[a-z0-9._-]+$', v):
            raise ValueError('Username may contain only letters, numbers, dots, dashes and underscores')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None:
            return v
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class LoginRequest(BaseModel):
    """Request model for user login."""

    username: str = Field(..., min_length=1, description="Login name")
    password: str = Field(..., min_length=1, description="Account password")

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        return v.strip().lower()


class RefreshTokenRequest(BaseModel):
    """Request model for token refresh."""

    refresh_token: str = Field(..., description="Refresh token")


class UpdateProfileRequest(BaseModel):
    """Profile update. Identity fields in the payload are ignored."""

    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(None, min_length=1, max_length=200, description="Display name")
    email: Optional[str] = Field(None, description="Contact email")
    bio: Optional[str] = Field(None, max_length=2000, description="Profile biography")
    avatar_url: Optional[str] = Field(None, max_length=2048, description="Avatar image URL")
    banner_url: Optional[str] = Field(None, max_length=2048, description="Profile banner URL")
    phone: Optional[str] = Field(None, max_length=50, description="Contact phone")
    website: Optional[str] = Field(None, max_length=2048, description="Website URL")

    check_urls = field_validator('avatar_url', 'banner_url', 'website')(_validate_url)

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        if v is None:
            return v
        if not re.match(EMAIL_PATTERN, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()


class CreateCauseRequest(BaseModel):
    """Request model for creating a cause."""

    title: str = Field(..., min_length=1, max_length=200, description="Cause title")
    description: str = Field(..., min_length=1, max_length=5000, description="Cause description")
    category: str = Field(..., min_length=1, max_length=100, description="Category")
    location: str = Field(..., min_length=1, max_length=300, description="Location")
    urgency: int = Field(default=0, ge=0, le=10, description="Urgency score (0-10)")
    start_date: Optional[datetime] = Field(None, description="Window start")
    end_date: Optional[datetime] = Field(None, description="Window end")
    image_url: Optional[str] = Field(None, max_length=2048, description="Cover image URL")

    check_image_url = field_validator('image_url')(_validate_url)

    @model_validator(mode='after')
    def validate_dates(self):
        if self.start_date and self.end_date and as_naive_utc(self.end_date) < as_naive_utc(self.start_date):
            raise ValueError('end_date cannot be before start_date')
        return self


class UpdateCauseRequest(BaseModel):
    """Request model for updating a cause. Only supplied fields change."""

    title: Optional[str] = Field(None, min_length=1, max_length=200, description="Cause title")
    description: Optional[str] = Field(None, min_length=1, max_length=5000, description="Cause description")
    category: Optional[str] = Field(None, min_length=1, max_length=100, description="Category")
    location: Optional[str] = Field(None, min_length=1, max_length=300, description="Location")
    urgency: Optional[int] = Field(None, ge=0, le=10, description="Urgency score (0-10)")
    status: Optional[CauseStatus] = Field(None, description="open or closed")
    start_date: Optional[datetime] = Field(None, description="Window start")
    end_date: Optional[datetime] = Field(None, description="Window end")
    image_url: Optional[str] = Field(None, max_length=2048, description="Cover image URL")

    check_image_url = field_validator('image_url')(_validate_url)


class ApplyToCauseRequest(BaseModel):
    """Request model for a volunteer application. The window is optional."""

    start_date: Optional[datetime] = Field(None, description="Volunteering window start")
    end_date: Optional[datetime] = Field(None, description="Volunteering window end")


class UpdateTaskStatusRequest(BaseModel):
    """Request model for a task status change."""

    status: TaskStatus = Field(..., description="Requested status")


class SubmitProofRequest(BaseModel):
    """Request model for proof submission."""

    proof_url: str = Field(..., min_length=1, max_length=2048, description="Proof URL")

    check_proof_url = field_validator('proof_url')(_validate_url)


class CreateDonationRequest(BaseModel):
    """Request model for a donation. The donor is always the caller."""

    cause_id: str = Field(..., min_length=1, description="Cause ID")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Amount")


class CreatePostRequest(BaseModel):
    """Request model for a feed post."""

    content: str = Field(..., min_length=1, max_length=5000, description="Post body")
    media_url: Optional[str] = Field(None, max_length=2048, description="Media URL")

    check_media_url = field_validator('media_url')(_validate_url)

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Content cannot be empty')
        return v.strip()


class CreateCommentRequest(BaseModel):
    """Request model for a post comment."""

    content: str = Field(..., min_length=1, max_length=2000, description="Comment body")

    @field_validator('content')
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError('Content cannot be empty')
        return v.strip()


class CauseFilters(BaseModel):
    """Query filters for cause listings."""

    category: Optional[str] = Field(None, description="Exact category")
    location: Optional[str] = Field(None, description="Case-insensitive location substring")
    status: Optional[CauseStatus] = Field(None, description="Cause status")
