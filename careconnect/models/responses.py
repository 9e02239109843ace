# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints and read-side aggregates.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, field_serializer


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    title: Optional[str] = Field(None, description="Link title")


class AuthTokenResponse(BaseModel):
    """Token pair issued on login or registration."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class TimelineEntry(BaseModel):
    """Month bucket of volunteer activity."""

    month: str = Field(..., description="Bucket key, YYYY-MM")
    tasks: int = Field(default=0, description="Verified tasks completed in the month")
    donations: Decimal = Field(default=Decimal("0"), description="Amount donated in the month")

    @field_serializer('donations', when_used='json')
    def serialize_donations(self, v: Decimal) -> float:
        return float(v)


class VolunteerImpact(BaseModel):
    """Impact summary for one volunteer."""

    total_hours: int = Field(default=0, description="Hours over verified tasks")
    total_donated: Decimal = Field(default=Decimal("0"), description="Sum of donations")
    causes_supported: int = Field(default=0, description="Distinct causes via tasks or donations")
    categories: Dict[str, int] = Field(default_factory=dict, description="Verified tasks per category")
    timeline: List[TimelineEntry] = Field(default_factory=list, description="Monthly activity")

    @field_serializer('total_donated', when_used='json')
    def serialize_total(self, v: Decimal) -> float:
        return float(v)


class GlobalImpactStats(BaseModel):
    """Platform-wide impact statistics."""

    total_ngos: int = Field(default=0, description="NGO accounts")
    total_volunteers: int = Field(default=0, description="Volunteer accounts")
    total_causes: int = Field(default=0, description="Causes posted")
    causes_completed: int = Field(default=0, description="Verified completed tasks")
    volunteer_hours: int = Field(default=0, description="Hours over verified tasks")
    total_donated: Decimal = Field(default=Decimal("0"), description="Sum of all donations")

    @field_serializer('total_donated', when_used='json')
    def serialize_total(self, v: Decimal) -> float:
        return float(v)


class CauseDonationTotal(BaseModel):
    """Donations received by one cause."""

    cause_id: str = Field(..., description="Cause ID")
    title: str = Field(..., description="Cause title")
    amount: Decimal = Field(default=Decimal("0"), description="Amount received")

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


class DonationTrendPoint(BaseModel):
    """Donations received on one day."""

    date: str = Field(..., description="Day, YYYY-MM-DD")
    amount: Decimal = Field(default=Decimal("0"), description="Amount received")

    @field_serializer('amount', when_used='json')
    def serialize_amount(self, v: Decimal) -> float:
        return float(v)


class DonationAnalytics(BaseModel):
    """Donation analytics for an NGO."""

    total_donations: Decimal = Field(default=Decimal("0"), description="Total received")
    by_cause: List[CauseDonationTotal] = Field(default_factory=list, description="Per cause totals")
    trends: List[DonationTrendPoint] = Field(default_factory=list, description="Daily totals")

    @field_serializer('total_donations', when_used='json')
    def serialize_total(self, v: Decimal) -> float:
        return float(v)


class CertificateData(BaseModel):
    """Input for the certificate renderer."""

    volunteer_name: str = Field(..., description="Volunteer display name")
    cause_title: str = Field(..., description="Cause title")
    ngo_name: str = Field(..., description="NGO display name")
    start_date: Optional[datetime] = Field(None, description="Volunteering window start")
    end_date: Optional[datetime] = Field(None, description="Volunteering window end")
    hours: int = Field(..., description="Credited hours")
    approved: bool = Field(..., description="Whether the NGO verified the work")
