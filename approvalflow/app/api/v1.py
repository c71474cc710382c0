from __future__ import annotations
from functools import wraps
from flask import Blueprint, jsonify, request
from flask_login import login_required, login_user
from werkzeug.exceptions import HTTPException
from ..result import Err, HTTP_STATUS
from ..services import invitations as invitation_service
from ..services import workflows as workflow_service
from ..services.dashboard import dashboard_summary
from ..state import get_state

api_bp = Blueprint("api_v1", __name__)


@api_bp.errorhandler(HTTPException)
def handle_http_error(exc: HTTPException):
    return jsonify({"error": exc.description or exc.name}), exc.code or 500


def error_response(err: Err):
    return jsonify({"error": err.message}), HTTP_STATUS.get(err.kind, 500)


def org_member_required(f):
    """Session auth plus an organization; callers without one see the same answer as a missing record."""
    @wraps(f)
    @login_required
    def wrapped(*args, **kwargs):
        if not get_state().has_organization:
            return error_response(Err.denied())
        return f(*args, **kwargs)
    return wrapped


def _payload() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@api_bp.route("/me", methods=["GET"])
@login_required
def me():
    state = get_state()
    return jsonify({
        "identity": {"id": state.identity.id, "email": state.identity.email, "email_confirmed": state.email_confirmed},
        "user": state.user.to_dict() if state.user else None,
        "organization": state.organization.to_dict() if state.organization else None,
        "role": state.role.to_dict() if state.role else None,
    })


@api_bp.route("/invitations", methods=["GET"])
@org_member_required
def list_invitations():
    state = get_state()
    found = invitation_service.list_invitations(state.identity.id, state.organization.id)
    if not found.ok:
        return error_response(found)
    return jsonify([inv.to_dict(include_related=True) for inv in found.value])


@api_bp.route("/invitations", methods=["POST"])
@org_member_required
def create_invitation():
    state = get_state()
    data = _payload()
    created = invitation_service.create_invitation(
        state.identity.id, state.organization.id, data.get("email", ""), data.get("role", ""), data.get("name")
    )
    if not created.ok:
        return error_response(created)
    return jsonify(created.value.to_dict(include_related=True)), 201


@api_bp.route("/invitations/<token>", methods=["GET"])
def get_invitation(token: str):
    found = invitation_service.get_invitation_by_token(token)
    if not found.ok:
        return error_response(found)
    return jsonify(found.value.to_dict(include_related=True))


@api_bp.route("/invitations/<token>/accept", methods=["POST"])
def accept_invitation(token: str):
    data = _payload()
    accepted = invitation_service.accept_invitation(
        token, data.get("email", ""), data.get("name", ""), data.get("password", "")
    )
    if not accepted.ok:
        return error_response(accepted)
    login_user(accepted.value["identity"])
    return jsonify({
        "user": accepted.value["user"].to_dict(),
        "organization": accepted.value["organization"].to_dict(),
    })


@api_bp.route("/invitations/<invitation_id>/resend", methods=["POST"])
@org_member_required
def resend_invitation(invitation_id: str):
    resent = invitation_service.resend_invitation(get_state().identity.id, invitation_id)
    if not resent.ok:
        return error_response(resent)
    return jsonify(resent.value.to_dict(include_related=True))


@api_bp.route("/invitations/<invitation_id>", methods=["DELETE"])
@org_member_required
def cancel_invitation(invitation_id: str):
    cancelled = invitation_service.cancel_invitation(get_state().identity.id, invitation_id)
    if not cancelled.ok:
        return error_response(cancelled)
    return ("", 204)


@api_bp.route("/workflows", methods=["GET"])
@org_member_required
def list_workflows():
    found = workflow_service.list_workflows(get_state().organization.id)
    if not found.ok:
        return error_response(found)
    return jsonify([wf.to_dict(include_steps=True) for wf in found.value])


@api_bp.route("/workflows", methods=["POST"])
@org_member_required
def create_workflow():
    state = get_state()
    data = _payload()
    steps = data.get("steps")
    if not isinstance(steps, list) or not all(isinstance(s, dict) for s in steps):
        return error_response(Err.validation("steps must be a list of objects."))
    created = workflow_service.create_workflow_with_steps(state.identity.id, state.organization.id, data, steps)
    if not created.ok:
        return error_response(created)
    return jsonify(created.value["workflow"].to_dict(include_steps=True)), 201


@api_bp.route("/workflows/<workflow_id>", methods=["GET"])
@org_member_required
def get_workflow(workflow_id: str):
    found = workflow_service.get_workflow(get_state().organization.id, workflow_id)
    if not found.ok:
        return error_response(found)
    return jsonify(found.value.to_dict(include_steps=True))


@api_bp.route("/workflows/<workflow_id>", methods=["PATCH"])
@org_member_required
def update_workflow(workflow_id: str):
    state = get_state()
    updated = workflow_service.update_workflow(state.identity.id, state.organization.id, workflow_id, _payload())
    if not updated.ok:
        return error_response(updated)
    return jsonify(updated.value.to_dict(include_steps=True))


@api_bp.route("/workflows/<workflow_id>", methods=["DELETE"])
@org_member_required
def delete_workflow(workflow_id: str):
    state = get_state()
    deleted = workflow_service.delete_workflow(state.identity.id, state.organization.id, workflow_id)
    if not deleted.ok:
        return error_response(deleted)
    return ("", 204)


@api_bp.route("/workflow-templates", methods=["GET"])
@login_required
def workflow_templates():
    return jsonify({
        "departments": workflow_service.DEPARTMENTS,
        "workflow_types": workflow_service.WORKFLOW_TYPES,
        "step_templates": workflow_service.STEP_TEMPLATES,
        "industry_templates": workflow_service.INDUSTRY_TEMPLATES,
    })


@api_bp.route("/dashboard", methods=["GET"])
@org_member_required
def dashboard():
    return jsonify(dashboard_summary(get_state().organization.id))
