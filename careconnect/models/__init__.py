# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for CareConnect.
"""

# Base models
from .base import BaseEntity, generate_object_id, utcnow

# Enumerations
from .enums import UserRole, CauseStatus, TaskStatus, Action, DenyReason

# Core entities
from .entities import (
    User,
    Cause,
    Task,
    Donation,
    Post,
    PostComment,
    AuditLog,
    NgoPrincipal,
    VolunteerPrincipal,
    Principal,
    build_principal
)

# Request models
from .requests import (
    RegisterRequest,
    LoginRequest,
    RefreshTokenRequest,
    UpdateProfileRequest,
    CreateCauseRequest,
    UpdateCauseRequest,
    CauseFilters,
    ApplyToCauseRequest,
    UpdateTaskStatusRequest,
    SubmitProofRequest,
    CreateDonationRequest,
    CreatePostRequest,
    CreateCommentRequest
)

# Response models
from .responses import (
    HalLink,
    AuthTokenResponse,
    TimelineEntry,
    VolunteerImpact,
    GlobalImpactStats,
    CauseDonationTotal,
    DonationTrendPoint,
    DonationAnalytics,
    CertificateData
)
