from __future__ import annotations
from flask import Blueprint, render_template, redirect, url_for, flash, request, session
from flask_login import current_user
from flask_babel import gettext as _
from ..forms import OrgDetailsForm, AdminProfileForm
from ..services.organizations import create_organization_with_admin
from ..state import get_state, refresh_state

onboarding_bp = Blueprint("onboarding", __name__, template_folder="../templates")

WIZARD_KEY = "onboarding"


def _wizard() -> dict:
    return session.get(WIZARD_KEY) or {"step": 1, "details": {}, "profile": {}}


def _save(wizard: dict) -> None:
    session[WIZARD_KEY] = wizard
    session.modified = True


def _render(wizard: dict, details_form=None, profile_form=None):
    state = get_state()
    step = wizard["step"]
    if step == 1 and details_form is None:
        details_form = OrgDetailsForm(formdata=None, data=wizard["details"])
    if step == 2 and profile_form is None:
        defaults = {"admin_email": state.identity.email, "admin_name": state.display_name}
        profile_form = AdminProfileForm(formdata=None, data={**defaults, **wizard["profile"]})
    return render_template(
        "onboarding/setup.html",
        step=step,
        wizard=wizard,
        details_form=details_form,
        profile_form=profile_form,
    )


@onboarding_bp.route("/setup", methods=["GET", "POST"])
def setup():
    if not current_user.is_authenticated:
        return redirect(url_for("main.index"))
    state = get_state()
    if state.has_organization:
        return redirect(url_for("main.dashboard"))
    if not state.email_confirmed:
        return render_template("onboarding/confirm_email.html", email=state.identity.email)

    wizard = _wizard()
    if request.method == "GET":
        return _render(wizard)

    action = request.form.get("action", "next")
    step = wizard["step"]
    if action == "back":
        wizard["step"] = max(1, step - 1)
        _save(wizard)
        return _render(wizard)

    if step == 1:
        form = OrgDetailsForm()
        if not form.validate_on_submit():
            return _render(wizard, details_form=form)
        wizard["details"] = {
            "name": form.name.data,
            "industry": form.industry.data,
            "size": form.size.data,
            "description": form.description.data or "",
        }
        wizard["step"] = 2
        _save(wizard)
        return redirect(url_for("onboarding.setup"))

    if step == 2:
        form = AdminProfileForm()
        if not form.validate_on_submit():
            return _render(wizard, profile_form=form)
        wizard["profile"] = {
            "admin_name": form.admin_name.data,
            "admin_email": form.admin_email.data,
            "admin_title": form.admin_title.data,
        }
        wizard["step"] = 3
        _save(wizard)
        return redirect(url_for("onboarding.setup"))

    result = create_organization_with_admin(state.identity, wizard["details"], wizard["profile"])
    if not result.ok:
        flash(_("Organization creation failed: %(error)s", error=result.message), "error")
        return _render(wizard)
    session.pop(WIZARD_KEY, None)
    refresh_state()
    flash(_("Organization created! Your approval workflows are ready to be configured"), "success")
    return redirect(url_for("main.dashboard"))


@onboarding_bp.route("/setup/cancel", methods=["POST"])
def cancel_setup():
    session.pop(WIZARD_KEY, None)
    return redirect(url_for("main.index"))
