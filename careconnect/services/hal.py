# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
HAL (Hypertext Application Language) response formatting utilities.

Action links are conditional: a representation only advertises the
transitions the viewer is authorized to perform in the resource's current
state, as decided by the authorization resolver and the lifecycle engine.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

from ..domain.authorization import authorize
from ..domain.tasks import available_status_changes, plan_approval, plan_opt_out, plan_proof_submission
from ..models.entities import Cause, Principal, Task
from ..models.enums import Action, TaskStatus
from ..models.responses import HalLink

PROBLEM_BASE_URL = "https://api.careconnect.org/problems"

# Link relation advertised for each reachable task status
STATUS_RELS = {
    TaskStatus.IN_CONSIDERATION: "consider",
    TaskStatus.APPROVED: "accept",
    TaskStatus.DECLINED: "decline",
    TaskStatus.IN_PROGRESS: "start",
    TaskStatus.COMPLETED: "complete",
    TaskStatus.NO_SHOW: "mark-no-show",
}


class HalLinkBuilder:
    """Builder for HAL links with proper URL construction."""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip('/') + '/'

    def build_link(self, path: str, method: str = "GET", title: Optional[str] = None) -> HalLink:
        """Build a HAL link with proper URL construction."""
        return HalLink(href=urljoin(self.base_url, path.lstrip('/')), method=method, title=title)

    def build_self_link(self, resource_path: str) -> HalLink:
        return self.build_link(resource_path, title="Self")


class AffordanceLinkBuilder:
    """Builder for conditional affordance links based on authorization and state."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)

    def build_cause_affordances(self, cause: Cause, principal: Optional[Principal]) -> Dict[str, HalLink]:
        links = {}
        base_path = f"/api/causes/{cause.id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['collection'] = self.link_builder.build_link("/api/causes", title="Causes")
        links['ngo'] = self.link_builder.build_link(f"/api/users/{cause.ngo_id}", title="NGO profile")

        if cause.is_open() and authorize(principal, Action.APPLY_TO_CAUSE).allowed:
            links['apply'] = self.link_builder.build_link(
                f"{base_path}/apply", method="POST", title="Apply to volunteer"
            )

        if authorize(principal, Action.UPDATE_CAUSE, cause).allowed:
            links['edit'] = self.link_builder.build_link(base_path, method="PATCH", title="Edit cause")
            links['delete'] = self.link_builder.build_link(base_path, method="DELETE", title="Delete cause")

        if authorize(principal, Action.CREATE_DONATION).allowed:
            links['donate'] = self.link_builder.build_link(
                "/api/donations", method="POST", title="Donate to cause"
            )

        return links

    def build_task_affordances(self, task: Task, cause_ngo_id: str,
                               principal: Optional[Principal]) -> Dict[str, HalLink]:
        links = {}
        base_path = f"/api/tasks/{task.id}"

        links['self'] = self.link_builder.build_self_link(base_path)
        links['cause'] = self.link_builder.build_link(f"/api/causes/{task.cause_id}", title="Cause")

        for status in available_status_changes(principal, task, cause_ngo_id):
            links[STATUS_RELS[TaskStatus(status)]] = self.link_builder.build_link(
                f"{base_path}/status", method="PATCH", title=f"Set status to {TaskStatus(status).value}"
            )

        if plan_proof_submission(principal, task, cause_ngo_id, "").allowed:
            links['submit-proof'] = self.link_builder.build_link(
                f"{base_path}/proof", method="POST", title="Submit proof of work"
            )

        approval = plan_approval(principal, task, cause_ngo_id)
        if approval.allowed and not approval.noop:
            links['approve'] = self.link_builder.build_link(
                f"{base_path}/approve", method="POST", title="Approve completed work"
            )

        if plan_opt_out(principal, task, cause_ngo_id).allowed:
            links['opt-out'] = self.link_builder.build_link(base_path, method="DELETE", title="Opt out")

        if TaskStatus(task.status) == TaskStatus.COMPLETED:
            links['certificate'] = self.link_builder.build_link(
                f"{base_path}/certificate", title="Certificate data"
            )

        return links


def _links_dict(links: Dict[str, HalLink]) -> Dict[str, Dict[str, Any]]:
    return {rel: link.model_dump(exclude_none=True) for rel, link in links.items()}


class HalResponseBuilder:
    """Main HAL response builder."""

    def __init__(self, base_url: str):
        self.link_builder = HalLinkBuilder(base_url)
        self.affordance_builder = AffordanceLinkBuilder(base_url)

    def build_resource_response(self, data: Dict[str, Any], links: Dict[str, HalLink]) -> Dict[str, Any]:
        response = dict(data)
        response['_links'] = _links_dict(links)
        return response

    def build_collection_response(self, items: List[Dict[str, Any]], name: str,
                                  collection_path: str) -> Dict[str, Any]:
        """Build a HAL collection response with embedded items."""
        return {
            'total': len(items),
            '_links': _links_dict({'self': self.link_builder.build_self_link(collection_path)}),
            '_embedded': {name: items}
        }

    def build_error_response(
        self,
        error_type: str,
        title: str,
        status: int,
        detail: str,
        instance: str,
        validation_errors: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """Build RFC 7807 compliant error response with HAL links."""
        error_response = {
            'type': f"{PROBLEM_BASE_URL}/{error_type}",
            'title': title,
            'status': status,
            'detail': detail,
            'instance': instance
        }

        if validation_errors:
            error_response['validation_errors'] = validation_errors

        links = {}
        if error_type == "authentication-required":
            links['login'] = self.link_builder.build_link("/api/auth/login", method="POST", title="Login")
        if links:
            error_response['_links'] = _links_dict(links)

        return error_response


class HalFormatter:
    """Formats CareConnect resources and errors as HAL documents."""

    def __init__(self, base_url: str):
        self.builder = HalResponseBuilder(base_url)
        self.affordances = self.builder.affordance_builder

    def format_cause(self, cause: Cause, principal: Optional[Principal],
                     extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = cause.to_public()
        data.update(extra or {})
        return self.builder.build_resource_response(
            data, self.affordances.build_cause_affordances(cause, principal)
        )

    def format_task(self, task: Task, cause_ngo_id: str, principal: Optional[Principal],
                    extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        data = task.to_public()
        data.update(extra or {})
        return self.builder.build_resource_response(
            data, self.affordances.build_task_affordances(task, cause_ngo_id, principal)
        )

    def format_post(self, post: Dict[str, Any], principal: Optional[Principal]) -> Dict[str, Any]:
        link_builder = self.builder.link_builder
        comments_path = f"/api/posts/{post['id']}/comments"
        links = {
            'author': link_builder.build_link(f"/api/users/{post['author_id']}", title="Author"),
            'comments': link_builder.build_link(comments_path, title="Comments"),
        }
        if authorize(principal, Action.LIKE_POST).allowed:
            links['like'] = link_builder.build_link(
                f"/api/posts/{post['id']}/like", method="POST", title="Toggle like"
            )
            links['comment'] = link_builder.build_link(comments_path, method="POST", title="Add comment")
        return self.builder.build_resource_response(post, links)

    def format_resource(self, data: Dict[str, Any], path: str) -> Dict[str, Any]:
        """Format any other resource with just a self link."""
        return self.builder.build_resource_response(
            data, {'self': self.builder.link_builder.build_self_link(path)}
        )

    def format_collection(self, items: List[Dict[str, Any]], name: str, path: str) -> Dict[str, Any]:
        return self.builder.build_collection_response(items, name, path)

    def format_validation_error(self, detail: str, instance: str,
                                validation_errors: List[Dict[str, Any]]) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "validation-error", "Validation Error", 400, detail, instance, validation_errors
        )

    def format_authentication_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "authentication-required", "Authentication Required", 401, detail, instance
        )

    def format_authorization_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "forbidden", "Forbidden", 403, detail, instance
        )

    def format_not_found_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-not-found", "Resource Not Found", 404, detail, instance
        )

    def format_conflict_error(self, detail: str, instance: str) -> Dict[str, Any]:
        return self.builder.build_error_response(
            "resource-conflict", "Resource Conflict", 409, detail, instance
        )

    def format_server_error(self, detail: str, instance: str, status: int = 500,
                            error_type: str = "internal-server-error",
                            title: str = "Internal Server Error") -> Dict[str, Any]:
        return self.builder.build_error_response(error_type, title, status, detail, instance)
