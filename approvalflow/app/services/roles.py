from __future__ import annotations

from flask import current_app

from .. import db
from ..models import Role, UserRole

ADMIN = "admin"
MANAGER = "manager"
USER = "user"
VIEWER = "viewer"

# name -> (description, permissions)
DEFAULT_ROLES = {
    ADMIN: ("Full access to users, invitations and workflows", ["users:manage", "invitations:manage", "workflows:write", "workflows:read"]),
    MANAGER: ("Creates and maintains workflows", ["workflows:write", "workflows:read"]),
    USER: ("Creates workflows", ["workflows:write", "workflows:read"]),
    VIEWER: ("Read-only access", ["workflows:read"]),
}


def seed_roles() -> int:
    """Insert missing default roles. Returns the number of roles created."""
    created = 0
    for name, (description, permissions) in DEFAULT_ROLES.items():
        if Role.query.filter_by(name=name).first():
            continue
        role = Role()
        role.name = name
        role.description = description
        role.permissions = permissions
        db.session.add(role)
        created += 1
    db.session.commit()
    current_app.logger.info("seed_roles: %s role(s) created", created)
    return created


def get_role_by_name(name: str) -> "Role | None":
    return Role.query.filter_by(name=(name or "").lower()).first()


def get_role_in_org(user_id: "str | None", org_id: "str | None") -> "Role | None":
    if not user_id or not org_id:
        return None
    row = UserRole.query.filter_by(user_id=user_id, organization_id=org_id).first()
    return row.role if row else None


def is_org_admin(user_id: "str | None", org_id: "str | None") -> bool:
    role = get_role_in_org(user_id, org_id)
    return bool(role and role.name == ADMIN)


def has_permission(user_id: "str | None", org_id: "str | None", permission: str) -> bool:
    role = get_role_in_org(user_id, org_id)
    return bool(role and permission in (role.permissions or []))
