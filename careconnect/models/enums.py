# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the CareConnect platform.
"""

from enum import Enum


class UserRole(str, Enum):
    """Mutually exclusive capability sets of a user account."""
    NGO = "ngo"
    VOLUNTEER = "volunteer"


class CauseStatus(str, Enum):
    """Cause lifecycle status."""
    OPEN = "open"
    CLOSED = "closed"


class TaskStatus(str, Enum):
    """Volunteer task lifecycle status."""
    PENDING = "pending"
    IN_CONSIDERATION = "in_consideration"
    APPROVED = "approved"
    DECLINED = "declined"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    NO_SHOW = "no_show"


class Action(str, Enum):
    """Actions evaluated by the authorization resolver."""
    # Public reads
    LIST_CAUSES = "list_causes"
    VIEW_CAUSE = "view_cause"
    LIST_POSTS = "list_posts"
    LIST_COMMENTS = "list_comments"
    VIEW_PROFILE = "view_profile"
    VIEW_IMPACT_STATS = "view_impact_stats"

    # Account
    VIEW_ACCOUNT = "view_account"
    UPDATE_PROFILE = "update_profile"
    LIST_NGOS = "list_ngos"
    FOLLOW_USER = "follow_user"

    # Causes
    CREATE_CAUSE = "create_cause"
    UPDATE_CAUSE = "update_cause"
    DELETE_CAUSE = "delete_cause"
    LIST_OWN_CAUSES = "list_own_causes"

    # Tasks
    APPLY_TO_CAUSE = "apply_to_cause"
    VIEW_TASK = "view_task"
    LIST_VOLUNTEER_TASKS = "list_volunteer_tasks"
    LIST_NGO_TASKS = "list_ngo_tasks"
    UPDATE_TASK_STATUS = "update_task_status"
    SUBMIT_PROOF = "submit_proof"
    APPROVE_TASK = "approve_task"
    OPT_OUT = "opt_out"

    # Donations and impact
    CREATE_DONATION = "create_donation"
    LIST_OWN_DONATIONS = "list_own_donations"
    LIST_RECEIVED_DONATIONS = "list_received_donations"
    VIEW_OWN_IMPACT = "view_own_impact"

    # Social
    CREATE_POST = "create_post"
    LIKE_POST = "like_post"
    COMMENT_ON_POST = "comment_on_post"


class DenyReason(str, Enum):
    """Reason codes carried by a denied authorization decision."""
    AUTHENTICATION_REQUIRED = "authentication_required"
    ROLE_NOT_PERMITTED = "role_not_permitted"
    NOT_OWNER = "not_owner"
    SELF_FOLLOW = "self_follow"
    INVALID_TRANSITION = "invalid_transition"
    INVALID_STATE = "invalid_state"
