# SPDX-License-Identifier: Apache-2.0

"""
Cause lifecycle: open/closed status and owner-only mutation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..models.base import as_naive_utc
from ..models.entities import Cause, Principal
from ..models.enums import Action, CauseStatus, DenyReason
from .authorization import authorize


@dataclass
class CauseUpdatePlan:
    """Result of planning a cause update."""
    allowed: bool
    changes: Dict[str, Any] = field(default_factory=dict)
    reason: Optional[DenyReason] = None
    error_message: Optional[str] = None
    relocated: bool = False


def build_cause(principal: Principal, fields: Dict[str, Any],
                coordinates: Optional[Tuple[float, float]] = None) -> Cause:
    """Create a new open cause owned by the principal."""
    latitude, longitude = coordinates if coordinates else (None, None)
    return Cause(
        ngo_id=principal.user_id,
        status=CauseStatus.OPEN,
        latitude=latitude,
        longitude=longitude,
        **fields
    )


def plan_cause_update(principal: Optional[Principal], cause: Cause,
                      requested: Dict[str, Any]) -> CauseUpdatePlan:
    """
    Plan a cause update by its owning NGO.

    Args:
        principal: Caller
        cause: Current cause
        requested: Supplied fields (snake_case); unchanged values are dropped

    Returns:
        CauseUpdatePlan; `relocated` is set when the location changes and the
        cause must be geocoded again
    """
    auth = authorize(principal, Action.UPDATE_CAUSE, cause)
    if not auth.allowed:
        return CauseUpdatePlan(allowed=False, reason=auth.reason)

    changes = {
        name: value for name, value in requested.items()
        if value is not None and getattr(cause, name) != value
    }

    start = changes.get("start_date", cause.start_date)
    end = changes.get("end_date", cause.end_date)
    if start and end and as_naive_utc(end) < as_naive_utc(start):
        return CauseUpdatePlan(allowed=False, error_message="end_date cannot be before start_date")

    if "status" in changes:
        changes["status"] = CauseStatus(changes["status"]).value

    return CauseUpdatePlan(allowed=True, changes=changes, relocated="location" in changes)


def with_coordinates(changes: Dict[str, Any], coordinates: Optional[Tuple[float, float]]) -> Dict[str, Any]:
    """Store whatever the geocoder returned, clearing stale coordinates."""
    latitude, longitude = coordinates if coordinates else (None, None)
    return {**changes, "latitude": latitude, "longitude": longitude}
