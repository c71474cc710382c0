from __future__ import annotations

from flask import current_app

from ..backend import get_backend
from ..models import User, UserRole
from ..result import Err, Ok, Result
from . import roles


def get_user_with_organization(identity_id: str) -> Result:
    backend = get_backend()
    found = backend.select_one("users", id=identity_id)
    if not found.ok:
        return found
    user = found.value
    if user is None:
        return Err.not_found("User not found.")
    organization = user.organization
    if user.organization_id and organization is None:
        return Err.consistency("User is bound to an organization that no longer exists.")
    return Ok({"user": user, "organization": organization})


def user_has_organization(identity_id: "str | None") -> bool:
    if not identity_id:
        return False
    found = get_backend().select_one("users", id=identity_id)
    return bool(found.ok and found.value and found.value.organization_id)


def email_bound_to_organization(email: str) -> bool:
    # point lookup; the unique constraint on users.email backs it up
    found = get_backend().select_one("users", email=email)
    return bool(found.ok and found.value and found.value.organization_id)


def list_users(org_id: str) -> list[dict]:
    users = User.query.filter_by(organization_id=org_id).order_by(User.created_at).all()
    assignments = {r.user_id: r.role for r in UserRole.query.filter_by(organization_id=org_id).all()}
    out = []
    for u in users:
        role = assignments.get(u.id)
        out.append({"user": u, "role": role.name if role else None})
    return out


def update_user_role(caller_id: str, org_id: str, user_id: str, role_name: str) -> Result:
    if not roles.is_org_admin(caller_id, org_id):
        return Err.denied()
    role = roles.get_role_by_name(role_name)
    if role is None:
        return Err.validation("Unknown role.")
    if caller_id == user_id and role.name != roles.ADMIN:
        return Err.validation("You cannot remove your own admin role.")
    backend = get_backend()
    member = backend.select_one("users", id=user_id, organization_id=org_id)
    if not member.ok:
        return member
    if member.value is None:
        return Err.not_found()
    updated = backend.update("user_roles", {"role_id": role.id, "assigned_by": caller_id}, user_id=user_id, organization_id=org_id)
    if not updated.ok:
        return updated
    if not updated.value:
        inserted = backend.insert(
            "user_roles", {"user_id": user_id, "role_id": role.id, "organization_id": org_id, "assigned_by": caller_id}
        )
        if not inserted.ok:
            return inserted
    current_app.logger.info("user %s in org %s now has role %s", user_id, org_id, role.name)
    return Ok(role)


def remove_user(caller_id: str, org_id: str, user_id: str) -> Result:
    if not roles.is_org_admin(caller_id, org_id):
        return Err.denied()
    if caller_id == user_id:
        return Err.validation("You cannot remove yourself from the organization.")
    backend = get_backend()
    member = backend.select_one("users", id=user_id, organization_id=org_id)
    if not member.ok:
        return member
    if member.value is None:
        return Err.not_found()
    removed = backend.delete("user_roles", user_id=user_id, organization_id=org_id)
    if not removed.ok:
        return removed
    unbound = backend.update("users", {"organization_id": None}, id=user_id)
    if not unbound.ok:
        return unbound
    current_app.logger.info("user %s removed from org %s by %s", user_id, org_id, caller_id)
    return Ok(member.value)
