from __future__ import annotations
from flask import Blueprint, render_template, redirect, url_for, flash
from flask_babel import gettext as _
from ..auth.permissions import onboarding_required, org_admin_required
from ..forms import InviteUserForm, ChangeRoleForm
from ..services import invitations as invitation_service
from ..services import users as user_service
from ..services.invitations import build_accept_url
from ..state import get_state

users_bp = Blueprint("users", __name__, template_folder="../templates")


@users_bp.route("/users")
@onboarding_required
def list_users():
    state = get_state()
    org_id = state.organization.id
    members = user_service.list_users(org_id)
    invitations = []
    if state.is_admin:
        found = invitation_service.list_invitations(state.identity.id, org_id)
        if found.ok:
            invitations = found.value
        else:
            flash(found.message, "error")
    stats = {
        "total": len(members),
        "admins": sum(1 for m in members if m["role"] == "admin"),
        "pending": sum(1 for i in invitations if i.status == "pending"),
    }
    return render_template(
        "users/list.html",
        members=members,
        invitations=invitations,
        stats=stats,
        invite_form=InviteUserForm(),
        role_form=ChangeRoleForm(),
        accept_url=build_accept_url,
    )


@users_bp.route("/users/invite", methods=["POST"])
@onboarding_required
@org_admin_required
def invite_user():
    state = get_state()
    form = InviteUserForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for message in errors:
                flash(message, "error")
        return redirect(url_for("users.list_users"))
    result = invitation_service.create_invitation(
        state.identity.id, state.organization.id, form.email.data, form.role.data, form.name.data
    )
    if not result.ok:
        flash(result.message, "error")
    else:
        flash(_("Invitation sent to %(email)s", email=result.value.email), "success")
    return redirect(url_for("users.list_users"))


@users_bp.route("/users/invitations/<invitation_id>/resend", methods=["POST"])
@onboarding_required
@org_admin_required
def resend_invitation(invitation_id: str):
    result = invitation_service.resend_invitation(get_state().identity.id, invitation_id)
    if not result.ok:
        flash(result.message, "error")
    else:
        flash(_("Invitation resent to %(email)s", email=result.value.email), "success")
    return redirect(url_for("users.list_users"))


@users_bp.route("/users/invitations/<invitation_id>/cancel", methods=["POST"])
@onboarding_required
@org_admin_required
def cancel_invitation(invitation_id: str):
    result = invitation_service.cancel_invitation(get_state().identity.id, invitation_id)
    if not result.ok:
        flash(result.message, "error")
    else:
        flash(_("Invitation cancelled"), "success")
    return redirect(url_for("users.list_users"))


@users_bp.route("/users/<user_id>/role", methods=["POST"])
@onboarding_required
@org_admin_required
def change_role(user_id: str):
    state = get_state()
    form = ChangeRoleForm()
    if not form.validate_on_submit():
        flash(_("Please select a valid role."), "error")
        return redirect(url_for("users.list_users"))
    result = user_service.update_user_role(state.identity.id, state.organization.id, user_id, form.role.data)
    if not result.ok:
        flash(result.message, "error")
    else:
        flash(_("Role updated"), "success")
    return redirect(url_for("users.list_users"))


@users_bp.route("/users/<user_id>/remove", methods=["POST"])
@onboarding_required
@org_admin_required
def remove_user(user_id: str):
    state = get_state()
    result = user_service.remove_user(state.identity.id, state.organization.id, user_id)
    if not result.ok:
        flash(result.message, "error")
    else:
        flash(_("User removed from the organization"), "success")
    return redirect(url_for("users.list_users"))
