# SPDX-License-Identifier: Apache-2.0

"""
Volunteer task endpoints.

Applications, lifecycle transitions, proof submission, NGO approval,
opt-out, audit history and certificate data.
"""

from flask import Blueprint, current_app, jsonify

from ..middleware.auth import current_principal, require_auth
from ..middleware.validation import validate_json
from ..models.requests import ApplyToCauseRequest, SubmitProofRequest, UpdateTaskStatusRequest

tasks_bp = Blueprint('tasks', __name__, url_prefix='/api')


def _task_response(task, cause, extra=None):
    return current_app.hal_formatter.format_task(task, cause.ngo_id, current_principal(), extra)


@tasks_bp.post('/causes/<cause_id>/apply')
@require_auth
@validate_json(ApplyToCauseRequest)
def apply_to_cause(body: ApplyToCauseRequest, cause_id: str):
    """Apply to volunteer for an open cause."""
    task, cause = current_app.task_service.apply(current_principal(), cause_id, body)
    return jsonify(_task_response(task, cause)), 201


@tasks_bp.get('/tasks/<task_id>')
@require_auth
def get_task(task_id: str):
    task, cause = current_app.task_service.get_task(current_principal(), task_id)
    return jsonify(_task_response(task, cause, {"cause": cause.to_public()}))


@tasks_bp.get('/volunteer/tasks')
@require_auth
def list_volunteer_tasks():
    principal = current_principal()
    formatter = current_app.hal_formatter
    items = [
        formatter.format_task(
            task, cause.ngo_id if cause else "", principal,
            {"cause": cause.to_public() if cause else None}
        )
        for task, cause in current_app.task_service.list_for_volunteer(principal)
    ]
    return jsonify(formatter.format_collection(items, "tasks", "/api/volunteer/tasks"))


@tasks_bp.get('/ngo/tasks')
@require_auth
def list_ngo_tasks():
    """Tasks on the caller's causes with cause and volunteer embedded."""
    principal = current_principal()
    formatter = current_app.hal_formatter
    items = [
        formatter.format_task(task, cause.ngo_id, principal, {
            "cause": cause.to_public(),
            "volunteer": volunteer.to_public(exclude={"last_login"}) if volunteer else None
        })
        for task, cause, volunteer in current_app.task_service.list_for_ngo(principal)
    ]
    return jsonify(formatter.format_collection(items, "tasks", "/api/ngo/tasks"))


@tasks_bp.patch('/tasks/<task_id>/status')
@require_auth
@validate_json(UpdateTaskStatusRequest)
def update_task_status(body: UpdateTaskStatusRequest, task_id: str):
    task, cause = current_app.task_service.update_status(current_principal(), task_id, body.status)
    return jsonify(_task_response(task, cause))


@tasks_bp.post('/tasks/<task_id>/proof')
@require_auth
@validate_json(SubmitProofRequest)
def submit_proof(body: SubmitProofRequest, task_id: str):
    task, cause = current_app.task_service.submit_proof(current_principal(), task_id, body.proof_url)
    return jsonify(_task_response(task, cause))


@tasks_bp.post('/tasks/<task_id>/approve')
@require_auth
def approve_task(task_id: str):
    task, cause = current_app.task_service.approve(current_principal(), task_id)
    return jsonify(_task_response(task, cause))


@tasks_bp.delete('/tasks/<task_id>')
@require_auth
def opt_out(task_id: str):
    current_app.task_service.opt_out(current_principal(), task_id)
    return '', 204


@tasks_bp.get('/tasks/<task_id>/history')
@require_auth
def get_task_history(task_id: str):
    """Audit trail of a task, newest first."""
    entries = current_app.task_service.history(current_principal(), task_id)
    items = [entry.to_public(exclude={"ip_address", "user_agent"}) for entry in entries]
    return jsonify(current_app.hal_formatter.format_collection(items, "entries", f"/api/tasks/{task_id}/history"))


@tasks_bp.get('/tasks/<task_id>/certificate')
@require_auth
def get_certificate(task_id: str):
    certificate = current_app.task_service.certificate(current_principal(), task_id)
    return jsonify(current_app.hal_formatter.format_resource(
        certificate.model_dump(mode="json"), f"/api/tasks/{task_id}/certificate"
    ))
