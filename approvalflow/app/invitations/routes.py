from __future__ import annotations
from flask import Blueprint, render_template, redirect, url_for, flash, request
from flask_login import login_user
from flask_babel import gettext as _
from ..forms import AcceptInvitationForm
from ..models import INVITATION_ACCEPTED, INVITATION_EXPIRED
from ..services.invitations import accept_invitation, get_invitation_by_token

invitations_bp = Blueprint("invitations", __name__, template_folder="../templates")

STATUS_MESSAGES = {
    INVITATION_ACCEPTED: "This invitation has already been accepted",
    INVITATION_EXPIRED: "This invitation has expired",
}


@invitations_bp.route("/accept-invitation", methods=["GET", "POST"])
def accept():
    token = request.args.get("token") or request.form.get("token")
    resolved = get_invitation_by_token(token)
    if not resolved.ok:
        flash(_("Invalid or expired invitation"), "error")
        return render_template("invitations/invalid.html"), 404
    invitation = resolved.value
    if invitation.status in STATUS_MESSAGES:
        flash(_(STATUS_MESSAGES[invitation.status]), "error")
        return render_template("invitations/invalid.html"), 410

    form = AcceptInvitationForm()
    if request.method == "GET":
        form.email.data = invitation.email
        form.name.data = invitation.name or ""
    elif form.validate_on_submit():
        result = accept_invitation(token, form.email.data, form.name.data, form.password.data)
        if result.ok:
            login_user(result.value["identity"])
            flash(_("Invitation accepted successfully! Welcome to ApprovalFlow!"), "success")
            return redirect(url_for("main.dashboard"))
        flash(result.message, "error")
    else:
        for errors in form.errors.values():
            for message in errors:
                flash(message, "error")
    return render_template("invitations/accept.html", invitation=invitation, form=form, token=token)
