from __future__ import annotations
from datetime import datetime, timedelta
from flask import Blueprint, render_template, redirect, url_for, flash, current_app
from flask_login import login_user, logout_user, login_required
from flask_babel import gettext as _
from ..backend import get_backend
from ..forms import SignUpForm, SignInForm, ResendConfirmationForm
from ..models import AuthIdentity
from ..services.email import send_confirmation_email
from ..services.organizations import ensure_user_record
from ..services.users import user_has_organization

auth_bp = Blueprint("auth", __name__, template_folder="../templates")


def _landing_for(identity: AuthIdentity):
    # signed-in users without an organization finish onboarding first
    if user_has_organization(identity.id):
        return redirect(url_for("main.dashboard"))
    return redirect(url_for("onboarding.setup"))


@auth_bp.route("/sign-up", methods=["GET", "POST"])
def sign_up():
    form = SignUpForm()
    if form.validate_on_submit():
        backend = get_backend()
        created = backend.auth.sign_up(form.email.data.strip().lower(), form.password.data, form.name.data.strip())
        if not created.ok:
            flash(created.message, "error")
            return render_template("auth/sign_up.html", form=form)
        identity = created.value
        record = ensure_user_record(identity)
        if not record.ok:
            # the identity exists; the users row is recreated during onboarding
            current_app.logger.warning("users row for %s not created: %s", identity.id, record.message)
            flash(_("Account created, but there was an issue with database setup. Please contact support."), "warning")
        if send_confirmation_email(identity):
            backend.auth.mark_confirmation_sent(identity.id)
        else:
            flash(_("We could not send the confirmation email. Use 'resend confirmation' to try again."), "warning")
        login_user(identity)
        flash(_("Account created! Welcome to ApprovalFlow. Check your inbox to confirm your email."), "success")
        return redirect(url_for("onboarding.setup"))
    for errors in form.errors.values():
        for message in errors:
            flash(message, "error")
    return render_template("auth/sign_up.html", form=form)


@auth_bp.route("/sign-in", methods=["GET", "POST"])
def sign_in():
    form = SignInForm()
    if form.validate_on_submit():
        result = get_backend().auth.sign_in_with_password(form.email.data.strip().lower(), form.password.data)
        if not result.ok:
            flash(result.message, "error")
            return render_template("auth/sign_in.html", form=form)
        login_user(result.value)
        flash(_("Welcome back! Successfully signed in to ApprovalFlow"), "success")
        return _landing_for(result.value)
    return render_template("auth/sign_in.html", form=form)


@auth_bp.route("/sign-out")
@login_required
def sign_out():
    logout_user()
    flash(_("You have been successfully signed out"), "info")
    return redirect(url_for("main.index"))


@auth_bp.route("/confirm/<token>")
def confirm_email(token: str):
    email = AuthIdentity.confirm_token(token)
    if not email:
        flash(_("The confirmation link is invalid or has expired."), "error")
        return redirect(url_for("auth.resend_confirmation"))
    identity = AuthIdentity.query.filter_by(email=email).first()
    if not identity:
        flash(_("User not found."), "error")
        return redirect(url_for("auth.sign_up"))
    if identity.email_confirmed:
        flash(_("Your email is already confirmed."), "info")
        return redirect(url_for("auth.sign_in"))
    confirmed = get_backend().auth.confirm_email(identity.id)
    if not confirmed.ok:
        flash(confirmed.message, "error")
        return redirect(url_for("auth.sign_in"))
    flash(_("Email confirmed. You can now set up your organization."), "success")
    return redirect(url_for("onboarding.setup"))


@auth_bp.route("/resend-confirmation", methods=["GET", "POST"])
def resend_confirmation():
    form = ResendConfirmationForm()
    if form.validate_on_submit():
        identity = AuthIdentity.query.filter_by(email=form.email.data.strip().lower()).first()
        if not identity:
            flash(_("No account was found for that email address."), "warning")
            return render_template("auth/resend_confirmation.html", form=form)
        if identity.email_confirmed:
            flash(_("Your email is already confirmed. Please sign in."), "info")
            return redirect(url_for("auth.sign_in"))

        # rate-limit: 5 minutes
        last = identity.last_confirmation_sent_at
        now = datetime.utcnow()
        cooldown = timedelta(minutes=5)
        if last and now - last < cooldown:
            remaining = cooldown - (now - last)
            flash(_("A confirmation email was sent recently. Try again in %(minutes)s minute(s).",
                    minutes=int(remaining.total_seconds() // 60) + 1), "info")
            return render_template("auth/resend_confirmation.html", form=form)

        if send_confirmation_email(identity, resend=True):
            get_backend().auth.mark_confirmation_sent(identity.id)
            flash(_("Confirmation email sent again. Please check your inbox."), "success")
            return redirect(url_for("auth.sign_in"))
        flash(_("We could not send the confirmation email. Please contact support."), "error")
    return render_template("auth/resend_confirmation.html", form=form)
