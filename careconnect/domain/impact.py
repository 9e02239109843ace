# SPDX-License-Identifier: Apache-2.0

"""
Impact and donation analytics.

Pure read-side aggregation over tasks, donations and causes. Missing dates
or causes degrade to best-effort values instead of raising.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ..models.base import utcnow
from ..models.entities import Cause, Donation, Task
from ..models.responses import (
    CauseDonationTotal,
    DonationAnalytics,
    DonationTrendPoint,
    GlobalImpactStats,
    TimelineEntry,
    VolunteerImpact,
)
from .tasks import calculate_task_hours

UNCATEGORIZED = "uncategorized"
REMOVED_CAUSE_TITLE = "Removed cause"


def verified_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Completed tasks the owning NGO approved."""
    return [task for task in tasks if task.is_verified()]


def total_hours(tasks: Iterable[Task]) -> int:
    return sum(calculate_task_hours(task.start_date, task.end_date) for task in verified_tasks(tasks))


def total_amount(donations: Iterable[Donation]) -> Decimal:
    return sum((Decimal(donation.amount) for donation in donations), Decimal("0"))


def _month_key(*candidates: Optional[datetime]) -> str:
    for value in candidates:
        if value is not None:
            return value.strftime("%Y-%m")
    return utcnow().strftime("%Y-%m")


def build_timeline(tasks: Iterable[Task], donations: Iterable[Donation]) -> List[TimelineEntry]:
    """Month buckets of verified tasks and donated amounts, oldest first."""
    buckets: Dict[str, TimelineEntry] = {}

    def bucket(month: str) -> TimelineEntry:
        if month not in buckets:
            buckets[month] = TimelineEntry(month=month)
        return buckets[month]

    for task in verified_tasks(tasks):
        entry = bucket(_month_key(task.updated_at, task.end_date))
        entry.tasks += 1

    for donation in donations:
        entry = bucket(_month_key(donation.created_at))
        entry.donations += Decimal(donation.amount)

    return [buckets[month] for month in sorted(buckets)]


def calculate_volunteer_impact(tasks: Iterable[Task], donations: Iterable[Donation],
                               causes: Dict[str, Cause]) -> VolunteerImpact:
    """
    Aggregate one volunteer's impact.

    Args:
        tasks: All of the volunteer's tasks
        donations: All of the volunteer's donations
        causes: Causes by ID for category lookup; missing causes are tolerated

    Returns:
        VolunteerImpact
    """
    tasks = list(tasks)
    donations = list(donations)
    completed = verified_tasks(tasks)

    categories: Dict[str, int] = defaultdict(int)
    for task in completed:
        cause = causes.get(task.cause_id)
        categories[cause.category if cause else UNCATEGORIZED] += 1

    supported = {task.cause_id for task in completed} | {donation.cause_id for donation in donations}

    return VolunteerImpact(
        total_hours=total_hours(completed),
        total_donated=total_amount(donations),
        causes_supported=len(supported),
        categories=dict(categories),
        timeline=build_timeline(completed, donations),
    )


def calculate_global_stats(total_ngos: int, total_volunteers: int, total_causes: int,
                           tasks: Iterable[Task], donations: Iterable[Donation]) -> GlobalImpactStats:
    """Platform-wide statistics from account counts and all tasks and donations."""
    completed = verified_tasks(tasks)
    return GlobalImpactStats(
        total_ngos=total_ngos,
        total_volunteers=total_volunteers,
        total_causes=total_causes,
        causes_completed=len(completed),
        volunteer_hours=total_hours(completed),
        total_donated=total_amount(donations),
    )


def calculate_donation_analytics(donations: Iterable[Donation], causes: Dict[str, Cause]) -> DonationAnalytics:
    """
    Donation analytics for an NGO.

    Args:
        donations: Donations to the NGO's causes
        causes: The NGO's causes by ID

    Returns:
        DonationAnalytics with per-cause totals and daily trends sorted by date
    """
    by_cause: Dict[str, CauseDonationTotal] = {}
    by_day: Dict[str, Decimal] = defaultdict(Decimal)
    total = Decimal("0")

    for donation in donations:
        amount = Decimal(donation.amount)
        total += amount

        if donation.cause_id not in by_cause:
            cause = causes.get(donation.cause_id)
            by_cause[donation.cause_id] = CauseDonationTotal(
                cause_id=donation.cause_id,
                title=cause.title if cause else REMOVED_CAUSE_TITLE,
            )
        by_cause[donation.cause_id].amount += amount

        day = (donation.created_at or utcnow()).strftime("%Y-%m-%d")
        by_day[day] += amount

    return DonationAnalytics(
        total_donations=total,
        by_cause=list(by_cause.values()),
        trends=[DonationTrendPoint(date=day, amount=by_day[day]) for day in sorted(by_day)],
    )
