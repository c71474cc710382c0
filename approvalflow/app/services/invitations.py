"""Invitation lifecycle.

States::

    pending --accept--> accepted
    pending --time----> expired      (applied lazily when the invitation is read)
    pending --cancel--> (row deleted)

Nothing ever leaves ``accepted`` or ``expired``. Admin-only operations re-check
the caller's role assignment before any write.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from email_validator import EmailNotValidError, validate_email
from flask import current_app, has_request_context, request

from ..backend import get_backend
from ..models import INVITATION_ACCEPTED, INVITATION_EXPIRED, INVITATION_PENDING, Invitation
from ..result import Err, Ok, Result
from ..saga import Saga
from . import roles
from .email import send_invitation_email
from .users import email_bound_to_organization


def _ttl() -> timedelta:
    return timedelta(days=int(current_app.config.get("INVITATION_TTL_DAYS", 7)))


def _new_token() -> str:
    return str(uuid.uuid4())


def build_accept_url(token: str) -> str:
    base = current_app.config.get("APP_BASE_URL") or ""
    if not base and has_request_context():
        base = request.url_root
    return f"{base.rstrip('/')}/accept-invitation?token={token}"


def normalize_email(email: "str | None") -> "str | None":
    if not isinstance(email, str):
        return None
    try:
        return validate_email(email.strip(), check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        return None


def _apply_expiry(invitation: Invitation) -> Invitation:
    if invitation.status == INVITATION_PENDING and invitation.is_past_expiry():
        # guarded on status so concurrent readers flip it once
        flipped = get_backend().update(
            "invitations", {"status": INVITATION_EXPIRED}, id=invitation.id, status=INVITATION_PENDING
        )
        if flipped.ok and flipped.value:
            current_app.logger.info("invitation %s expired", invitation.id)
    return invitation


def _dispatch(invitation: Invitation) -> None:
    # best effort: a failed send never rolls the invitation back
    try:
        sent = send_invitation_email(
            invitation, invitation.organization, invitation.role, invitation.inviter, build_accept_url(invitation.token)
        )
    except Exception:
        current_app.logger.exception("invitation email for %s raised", invitation.id)
        sent = False
    if not sent:
        current_app.logger.warning("invitation email to %s could not be sent", invitation.email)


def _load_for_admin(caller_id: str, invitation_id: str) -> Result:
    found = get_backend().select_one("invitations", id=invitation_id)
    if not found.ok:
        return found
    invitation = found.value
    if invitation is None:
        return Err.not_found()
    if not roles.is_org_admin(caller_id, invitation.organization_id):
        return Err.denied()
    return Ok(_apply_expiry(invitation))


def create_invitation(caller_id: str, org_id: str, email: str, role_name: str, name: "str | None" = None) -> Result:
    if not roles.is_org_admin(caller_id, org_id):
        return Err.denied()
    normalized = normalize_email(email)
    if normalized is None:
        return Err.validation("Please enter a valid email address.")
    if name is not None and not isinstance(name, str):
        return Err.validation("Name must be text.")
    role = roles.get_role_by_name(role_name) if isinstance(role_name, str) else None
    if role is None:
        return Err.validation("Please select a valid role.")
    if email_bound_to_organization(normalized):
        return Err.conflict("This email already belongs to an organization.")

    backend = get_backend()
    existing = backend.select("invitations", email=normalized, organization_id=org_id, status=INVITATION_PENDING)
    if not existing.ok:
        return existing
    if any(_apply_expiry(inv).status == INVITATION_PENDING for inv in existing.value):
        return Err.conflict("A pending invitation already exists for this email.")

    inserted = backend.insert(
        "invitations",
        {
            "email": normalized,
            "name": (name or "").strip() or None,
            "role_id": role.id,
            "organization_id": org_id,
            "invited_by": caller_id,
            "token": _new_token(),
            "status": INVITATION_PENDING,
            "expires_at": datetime.utcnow() + _ttl(),
        },
    )
    if not inserted.ok:
        return inserted
    invitation = inserted.value[0]
    current_app.logger.info("invitation %s created for %s (role=%s, org=%s)", invitation.id, normalized, role.name, org_id)
    _dispatch(invitation)
    return Ok(invitation)


def get_invitation_by_token(token: "str | None") -> Result:
    if not token:
        return Err.not_found("Invalid or expired invitation.")
    found = get_backend().select_one("invitations", token=token)
    if not found.ok:
        return found
    if found.value is None:
        return Err.not_found("Invalid or expired invitation.")
    return Ok(_apply_expiry(found.value))


def accept_invitation(token: str, email: str, name: str, password: str) -> Result:
    """Join the invitation's organization with the invited role.

    A new invitee gets a fresh, confirmed identity. An email that already has an
    identity but no organization (signed up without onboarding, or removed from
    an organization) must present that identity's password and is bound in place.
    """
    if not all(isinstance(value, str) for value in (email, name, password)):
        return Err.validation("Email, name and password must be text.")
    resolved = get_invitation_by_token(token)
    if not resolved.ok:
        return resolved
    invitation = resolved.value
    if invitation.status == INVITATION_ACCEPTED:
        return Err.validation("This invitation has already been accepted.")
    # the lazy flip can fail and leave the row pending, so the deadline is checked as well
    if invitation.status == INVITATION_EXPIRED or invitation.is_past_expiry():
        return Err.validation("This invitation has expired.")
    if email.strip() != invitation.email:
        return Err.validation("The email address does not match this invitation.")
    name = name.strip()
    if not name:
        return Err.validation("Name is required.")
    min_length = int(current_app.config.get("MIN_PASSWORD_LENGTH", 6))
    if len(password) < min_length:
        return Err.validation(f"Password must be at least {min_length} characters.")

    backend = get_backend()
    invitation_id = invitation.id
    org_id = invitation.organization_id
    role_id = invitation.role_id
    invited_by = invitation.invited_by
    invited_email = invitation.email

    existing = backend.auth.get_user_by_email(invited_email)
    previous_user = None
    if existing is not None:
        if not backend.auth.sign_in_with_password(invited_email, password).ok:
            return Err.validation("An account with this email already exists. Enter its password to join.")
        found = backend.select_one("users", id=existing.id)
        if not found.ok:
            return found
        previous_user = found.value
        if previous_user is not None and previous_user.organization_id:
            return Err.conflict("This email already belongs to an organization.")
    previous_name = previous_user.name if previous_user is not None else None

    def first(result: Result) -> Result:
        return Ok(result.value[0]) if result.ok else result

    def unbind_user(ctx: dict, user) -> Result:
        if previous_user is None:
            return backend.delete("users", id=user.id)
        return backend.update("users", {"organization_id": None, "name": previous_name}, id=user.id)

    def mark_accepted(ctx: dict) -> Result:
        if invitation.is_past_expiry():
            return Err.validation("This invitation has expired.")
        updated = backend.update(
            "invitations",
            {"status": INVITATION_ACCEPTED, "accepted_at": datetime.utcnow()},
            id=invitation_id,
            status=INVITATION_PENDING,
        )
        if updated.ok and not updated.value:
            return Err.conflict("This invitation is no longer pending.")
        return first(updated)

    saga = Saga("accept_invitation")
    if existing is None:
        saga.add_step(
            "identity",
            lambda ctx: backend.auth.sign_up(invited_email, password, name, confirmed=True),
            compensate=lambda ctx, identity: backend.auth.admin_delete_user(identity.id),
        )
        saga.add_step(
            "user",
            lambda ctx: first(
                backend.insert(
                    "users",
                    {"id": ctx["identity"].id, "email": invited_email, "name": name, "organization_id": org_id},
                )
            ),
            compensate=lambda ctx, user: backend.delete("users", id=user.id),
        )
    else:
        saga.add_step("identity", lambda ctx: backend.auth.confirm_email(existing.id))
        saga.add_step(
            "user",
            lambda ctx: backend.upsert(
                "users", {"id": existing.id, "email": invited_email, "name": name, "organization_id": org_id}
            ),
            compensate=unbind_user,
        )
    saga.add_step(
        "user_role",
        lambda ctx: first(
            backend.insert(
                "user_roles",
                {"user_id": ctx["user"].id, "role_id": role_id, "organization_id": org_id, "assigned_by": invited_by},
            )
        ),
        compensate=lambda ctx, assignment: backend.delete("user_roles", id=assignment.id),
    )
    saga.add_step("invitation", mark_accepted)

    outcome = saga.execute()
    if not outcome.ok:
        return outcome
    user = outcome.value["user"]
    current_app.logger.info(
        "invitation %s accepted by %s (%s identity)", invitation_id, user.id, "new" if existing is None else "existing"
    )
    return Ok({"user": user, "organization": user.organization, "identity": outcome.value["identity"]})


def resend_invitation(caller_id: str, invitation_id: str) -> Result:
    loaded = _load_for_admin(caller_id, invitation_id)
    if not loaded.ok:
        return loaded
    invitation = loaded.value
    if invitation.status != INVITATION_PENDING:
        return Err.validation("Only pending invitations can be resent.")
    updated = get_backend().update(
        "invitations",
        {"token": _new_token(), "expires_at": datetime.utcnow() + _ttl()},
        id=invitation.id,
        status=INVITATION_PENDING,
    )
    if not updated.ok:
        return updated
    if not updated.value:
        return Err.conflict("This invitation is no longer pending.")
    invitation = updated.value[0]
    current_app.logger.info("invitation %s reissued", invitation.id)
    _dispatch(invitation)
    return Ok(invitation)


def cancel_invitation(caller_id: str, invitation_id: str) -> Result:
    loaded = _load_for_admin(caller_id, invitation_id)
    if not loaded.ok:
        return loaded
    invitation = loaded.value
    if invitation.status != INVITATION_PENDING:
        return Err.validation("Only pending invitations can be cancelled.")
    deleted = get_backend().delete("invitations", id=invitation.id, status=INVITATION_PENDING)
    if not deleted.ok:
        return deleted
    current_app.logger.info("invitation %s cancelled by %s", invitation_id, caller_id)
    return Ok(deleted.value)


def list_invitations(caller_id: str, org_id: str) -> Result:
    if not roles.is_org_admin(caller_id, org_id):
        return Err.denied()
    found = get_backend().select("invitations", order_by="created_at", descending=True, organization_id=org_id)
    if not found.ok:
        return found
    return Ok([_apply_expiry(inv) for inv in found.value])


def expire_stale_invitations() -> int:
    """Flip every pending invitation past its expiry to ``expired``."""
    now = datetime.utcnow()
    stale = Invitation.query.filter(Invitation.status == INVITATION_PENDING, Invitation.expires_at < now).all()
    count = 0
    for invitation in stale:
        flipped = get_backend().update(
            "invitations", {"status": INVITATION_EXPIRED}, id=invitation.id, status=INVITATION_PENDING
        )
        if flipped.ok and flipped.value:
            count += 1
    current_app.logger.info("expire_stale_invitations: %s invitation(s) expired", count)
    return count
