# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for the task lifecycle engine.
"""

import pytest
from datetime import datetime, timedelta, timezone

from careconnect.domain.tasks import (
    TASK_TRANSITIONS,
    application_conflict,
    available_status_changes,
    build_certificate_data,
    calculate_task_hours,
    plan_approval,
    plan_opt_out,
    plan_proof_submission,
    plan_status_change,
    validate_status_transition,
)
from careconnect.models.entities import User
from careconnect.models.enums import CauseStatus, DenyReason, TaskStatus


class TestTransitionTable:
    """Test the lifecycle table."""

    @pytest.mark.parametrize("current,target", [
        (TaskStatus.PENDING, TaskStatus.IN_CONSIDERATION),
        (TaskStatus.PENDING, TaskStatus.APPROVED),
        (TaskStatus.PENDING, TaskStatus.DECLINED),
        (TaskStatus.IN_CONSIDERATION, TaskStatus.APPROVED),
        (TaskStatus.IN_CONSIDERATION, TaskStatus.DECLINED),
        (TaskStatus.APPROVED, TaskStatus.IN_PROGRESS),
        (TaskStatus.APPROVED, TaskStatus.NO_SHOW),
        (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
        (TaskStatus.IN_PROGRESS, TaskStatus.NO_SHOW),
    ])
    def test_valid_transitions(self, current, target):
        assert validate_status_transition(current, target)

    @pytest.mark.parametrize("terminal", [TaskStatus.DECLINED, TaskStatus.COMPLETED, TaskStatus.NO_SHOW])
    def test_terminal_states_have_no_exits(self, terminal):
        assert TASK_TRANSITIONS[terminal] == frozenset()

    def test_string_statuses_accepted(self):
        assert validate_status_transition("pending", "approved")
        assert not validate_status_transition("pending", "completed")


class TestStatusChanges:
    """Test planning explicit status changes."""

    def test_ngo_moves_pending_to_consideration(self, make_task, ngo_principal):
        result = plan_status_change(ngo_principal, make_task(), "ngo-1", TaskStatus.IN_CONSIDERATION)
        assert result.allowed
        assert result.changes.to_update() == {"status": "in_consideration"}

    def test_volunteer_cannot_self_approve(self, make_task, volunteer_principal):
        result = plan_status_change(volunteer_principal, make_task(), "ngo-1", TaskStatus.APPROVED)
        assert not result.allowed
        assert result.reason == DenyReason.ROLE_NOT_PERMITTED

    def test_skipping_states_is_invalid(self, make_task, volunteer_principal):
        result = plan_status_change(volunteer_principal, make_task(), "ngo-1", TaskStatus.IN_PROGRESS)
        assert result.reason == DenyReason.INVALID_TRANSITION

    def test_terminal_state_cannot_be_left(self, make_task, ngo_principal):
        result = plan_status_change(ngo_principal, make_task(TaskStatus.DECLINED), "ngo-1",
                                    TaskStatus.APPROVED)
        assert result.reason == DenyReason.INVALID_TRANSITION

    def test_same_status_is_noop(self, make_task, ngo_principal):
        result = plan_status_change(ngo_principal, make_task(TaskStatus.APPROVED), "ngo-1",
                                    TaskStatus.APPROVED)
        assert result.allowed and result.noop
        assert result.changes.is_empty()

    def test_authorization_checked_before_table(self, make_task, other_ngo_principal):
        result = plan_status_change(other_ngo_principal, make_task(), "ngo-1", TaskStatus.APPROVED)
        assert result.reason == DenyReason.NOT_OWNER

    def test_available_changes_per_side(self, make_task, ngo_principal, volunteer_principal):
        task = make_task(TaskStatus.APPROVED)
        assert available_status_changes(ngo_principal, task, "ngo-1") == [TaskStatus.NO_SHOW]
        assert available_status_changes(volunteer_principal, task, "ngo-1") == [TaskStatus.IN_PROGRESS]
        assert available_status_changes(None, task, "ngo-1") == []


class TestProofAndApproval:
    """Test proof submission and NGO approval."""

    def test_proof_completes_task_atomically(self, make_task, volunteer_principal):
        result = plan_proof_submission(volunteer_principal, make_task(TaskStatus.IN_PROGRESS), "ngo-1",
                                       "https://example.org/proof.jpg")
        assert result.allowed
        assert result.changes.to_update() == {
            "status": "completed",
            "proofUrl": "https://example.org/proof.jpg"
        }

    def test_proof_requires_in_progress(self, make_task, volunteer_principal):
        result = plan_proof_submission(volunteer_principal, make_task(TaskStatus.APPROVED), "ngo-1",
                                       "https://example.org/p.jpg")
        assert result.reason == DenyReason.INVALID_STATE

    def test_proof_replaced_until_approved(self, make_task, volunteer_principal):
        awaiting = make_task(TaskStatus.COMPLETED, proof_url="https://example.org/old.jpg")
        assert plan_proof_submission(volunteer_principal, awaiting, "ngo-1", "https://example.org/new.jpg").allowed

        verified = make_task(TaskStatus.COMPLETED, approved=True)
        result = plan_proof_submission(volunteer_principal, verified, "ngo-1", "https://example.org/new.jpg")
        assert result.reason == DenyReason.INVALID_STATE

    def test_approval_keeps_status(self, make_task, ngo_principal):
        task = make_task(TaskStatus.COMPLETED)
        result = plan_approval(ngo_principal, task, "ngo-1")
        assert result.changes.to_update() == {"approved": True}

    def test_approval_requires_completed(self, make_task, ngo_principal):
        result = plan_approval(ngo_principal, make_task(TaskStatus.IN_PROGRESS), "ngo-1")
        assert result.reason == DenyReason.INVALID_STATE

    def test_approval_is_idempotent(self, make_task, ngo_principal):
        result = plan_approval(ngo_principal, make_task(TaskStatus.COMPLETED, approved=True), "ngo-1")
        assert result.allowed and result.noop

    def test_approval_by_volunteer_denied(self, make_task, volunteer_principal):
        result = plan_approval(volunteer_principal, make_task(TaskStatus.COMPLETED), "ngo-1")
        assert result.reason == DenyReason.ROLE_NOT_PERMITTED


class TestOptOut:
    """Test volunteer withdrawal."""

    @pytest.mark.parametrize("status", [TaskStatus.PENDING, TaskStatus.IN_CONSIDERATION, TaskStatus.APPROVED])
    def test_opt_out_before_work_starts(self, make_task, volunteer_principal, status):
        assert plan_opt_out(volunteer_principal, make_task(status), "ngo-1").allowed

    @pytest.mark.parametrize("status", [TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.DECLINED])
    def test_opt_out_blocked_afterwards(self, make_task, volunteer_principal, status):
        assert plan_opt_out(volunteer_principal, make_task(status), "ngo-1").reason == DenyReason.INVALID_STATE

    def test_ngo_cannot_opt_out(self, make_task, ngo_principal):
        assert plan_opt_out(ngo_principal, make_task(), "ngo-1").reason == DenyReason.ROLE_NOT_PERMITTED


class TestApplicationConflict:
    """Test application preconditions."""

    def test_open_cause_without_tasks(self, sample_cause):
        assert application_conflict(sample_cause, []) is None

    def test_closed_cause(self, sample_cause):
        sample_cause.status = CauseStatus.CLOSED
        assert application_conflict(sample_cause, []) is not None

    def test_active_application_conflicts(self, sample_cause, make_task):
        assert application_conflict(sample_cause, [make_task(TaskStatus.APPROVED)]) is not None

    def test_finished_application_allows_reapply(self, sample_cause, make_task):
        assert application_conflict(sample_cause, [make_task(TaskStatus.DECLINED)]) is None


class TestHours:
    """Test hours computation."""

    def test_three_days(self):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert calculate_task_hours(start, start + timedelta(days=3)) == 12

    def test_partial_day_rounds_up(self):
        start = datetime(2026, 1, 1)
        assert calculate_task_hours(start, start + timedelta(days=1, hours=2)) == 8

    @pytest.mark.parametrize("delta", [timedelta(0), timedelta(days=-2)])
    def test_one_day_floor(self, delta):
        start = datetime(2026, 1, 1)
        assert calculate_task_hours(start, start + delta) == 4

    def test_missing_dates(self):
        assert calculate_task_hours(None, datetime(2026, 1, 1)) == 4

    def test_mixed_awareness(self):
        """Stored naive UTC and aware request values compare as UTC."""
        assert calculate_task_hours(datetime(2026, 1, 1), datetime(2026, 1, 3, tzinfo=timezone.utc)) == 8


class TestCertificate:
    """Test certificate data."""

    def test_certificate_fields(self, make_task, sample_cause):
        start = datetime(2026, 1, 1)
        task = make_task(TaskStatus.COMPLETED, approved=True, start_date=start,
                         end_date=start + timedelta(days=2))
        volunteer = User(username="vol_one", password_hash="x", role="volunteer", name="Vera")
        ngo = User(username="ngo_one", password_hash="x", role="ngo", name="Helping Hands")

        data = build_certificate_data(task, sample_cause, volunteer, ngo)

        assert data.volunteer_name == "Vera"
        assert data.cause_title == "Park Cleanup"
        assert data.ngo_name == "Helping Hands"
        assert data.hours == 8
        assert data.approved is True
