from functools import wraps
from flask import abort, flash, redirect, url_for
from flask_login import current_user
from flask_babel import gettext as _
from ..state import get_state


def onboarding_required(f):
    """Signed-in users with an organization only; others are sent to / or /setup."""
    @wraps(f)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            return redirect(url_for("main.index"))
        if not get_state().has_organization:
            return redirect(url_for("onboarding.setup"))
        return f(*args, **kwargs)
    return wrapped


def org_admin_required(f):
    @wraps(f)
    def wrapped(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if not get_state().is_admin:
            flash(_("Only organization admins can do that."), "error")
            return redirect(url_for("main.dashboard"))
        return f(*args, **kwargs)
    return wrapped


def permission_required(permission: str):
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            if not get_state().can(permission):
                abort(403)
            return f(*args, **kwargs)
        return wrapped
    return decorator
