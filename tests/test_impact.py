# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for impact and donation aggregation.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from careconnect.domain.impact import (
    REMOVED_CAUSE_TITLE,
    UNCATEGORIZED,
    build_timeline,
    calculate_donation_analytics,
    calculate_global_stats,
    calculate_volunteer_impact,
)
from careconnect.models.entities import Cause, Donation
from careconnect.models.enums import TaskStatus


def _window(days):
    start = datetime(2026, 2, 1)
    return {"start_date": start, "end_date": start + timedelta(days=days)}


class TestVolunteerImpact:
    """Test per-volunteer aggregation."""

    def test_only_verified_tasks_count(self, make_task, sample_cause):
        tasks = [
            make_task(TaskStatus.COMPLETED, approved=True, **_window(3)),
            make_task(TaskStatus.COMPLETED, approved=False, **_window(5)),
            make_task(TaskStatus.IN_PROGRESS, **_window(5)),
        ]

        impact = calculate_volunteer_impact(tasks, [], {sample_cause.id: sample_cause})

        assert impact.total_hours == 12
        assert impact.causes_supported == 1
        assert impact.categories == {"Environment": 1}

    def test_causes_supported_is_deduplicated(self, make_task, sample_cause):
        """A cause supported by both a task and a donation counts once."""
        tasks = [make_task(TaskStatus.COMPLETED, approved=True, **_window(2))]
        donations = [Donation(cause_id=sample_cause.id, volunteer_id="vol-1", amount=Decimal("25"))]

        impact = calculate_volunteer_impact(tasks, donations, {sample_cause.id: sample_cause})

        assert impact.causes_supported == 1
        assert impact.total_donated == Decimal("25")
        assert impact.total_hours == 8

    def test_donation_only_cause_counts(self, sample_cause):
        donations = [
            Donation(cause_id="cause-a", volunteer_id="vol-1", amount=Decimal("10.50")),
            Donation(cause_id="cause-b", volunteer_id="vol-1", amount=Decimal("4.50")),
        ]

        impact = calculate_volunteer_impact([], donations, {})

        assert impact.causes_supported == 2
        assert impact.total_donated == Decimal("15.00")
        assert impact.total_hours == 0

    def test_missing_cause_is_uncategorized(self, make_task):
        tasks = [make_task(TaskStatus.COMPLETED, approved=True)]
        impact = calculate_volunteer_impact(tasks, [], {})
        assert impact.categories == {UNCATEGORIZED: 1}

    def test_empty_history(self):
        impact = calculate_volunteer_impact([], [], {})
        assert impact.total_hours == 0
        assert impact.total_donated == Decimal("0")
        assert impact.timeline == []

    def test_json_amounts_are_numbers(self):
        donations = [Donation(cause_id="c", volunteer_id="v", amount=Decimal("12.25"))]
        data = calculate_volunteer_impact([], donations, {}).model_dump(mode="json")
        assert data["total_donated"] == 12.25


class TestTimeline:
    """Test monthly buckets."""

    def test_months_sorted_and_merged(self, make_task):
        task = make_task(TaskStatus.COMPLETED, approved=True)
        task.updated_at = datetime(2026, 3, 15)
        donations = [
            Donation(cause_id="c", volunteer_id="v", amount=Decimal("5"), created_at=datetime(2026, 3, 2)),
            Donation(cause_id="c", volunteer_id="v", amount=Decimal("7"), created_at=datetime(2026, 1, 20)),
        ]

        timeline = build_timeline([task], donations)

        assert [entry.month for entry in timeline] == ["2026-01", "2026-03"]
        assert timeline[1].tasks == 1
        assert timeline[1].donations == Decimal("5")


class TestGlobalStats:
    """Test platform-wide statistics."""

    def test_global_stats(self, make_task):
        tasks = [
            make_task(TaskStatus.COMPLETED, approved=True, **_window(1)),
            make_task(TaskStatus.COMPLETED, approved=True, **_window(3)),
            make_task(TaskStatus.COMPLETED, approved=False, **_window(3)),
        ]
        donations = [Donation(cause_id="c", volunteer_id="v", amount=Decimal("20"))]

        stats = calculate_global_stats(2, 5, 4, tasks, donations)

        assert stats.total_ngos == 2
        assert stats.total_volunteers == 5
        assert stats.total_causes == 4
        assert stats.causes_completed == 2
        assert stats.volunteer_hours == 16
        assert stats.total_donated == Decimal("20")


class TestDonationAnalytics:
    """Test NGO donation analytics."""

    def test_by_cause_and_trends(self, sample_cause):
        donations = [
            Donation(cause_id=sample_cause.id, volunteer_id="v1", amount=Decimal("10"),
                     created_at=datetime(2026, 4, 2, 10)),
            Donation(cause_id=sample_cause.id, volunteer_id="v2", amount=Decimal("15"),
                     created_at=datetime(2026, 4, 1, 18)),
            Donation(cause_id="deleted-cause", volunteer_id="v1", amount=Decimal("5"),
                     created_at=datetime(2026, 4, 2, 12)),
        ]

        analytics = calculate_donation_analytics(donations, {sample_cause.id: sample_cause})

        assert analytics.total_donations == Decimal("30")
        totals = {entry.cause_id: (entry.title, entry.amount) for entry in analytics.by_cause}
        assert totals[sample_cause.id] == ("Park Cleanup", Decimal("25"))
        assert totals["deleted-cause"] == (REMOVED_CAUSE_TITLE, Decimal("5"))
        assert [(p.date, p.amount) for p in analytics.trends] == [
            ("2026-04-01", Decimal("15")),
            ("2026-04-02", Decimal("15")),
        ]

    def test_no_donations(self):
        analytics = calculate_donation_analytics([], {})
        assert analytics.total_donations == Decimal("0")
        assert analytics.by_cause == [] and analytics.trends == []
