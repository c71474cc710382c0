"""Per-request application state: who is signed in and which organization they act in.

Built once per request in ``before_request`` and read through ``get_state()``
instead of re-querying in every view.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import current_app, g
from flask_login import current_user

from .models import AuthIdentity, Organization, Role, User
from .result import ErrorKind
from .services import roles
from .services.users import get_user_with_organization


@dataclass
class AppState:
    identity: Optional[AuthIdentity] = None
    user: Optional[User] = None
    organization: Optional[Organization] = None
    role: Optional[Role] = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def email_confirmed(self) -> bool:
        return bool(self.identity and self.identity.email_confirmed)

    @property
    def has_organization(self) -> bool:
        return self.organization is not None

    @property
    def is_admin(self) -> bool:
        return bool(self.role and self.role.name == roles.ADMIN)

    def can(self, permission: str) -> bool:
        return bool(self.role and permission in (self.role.permissions or []))

    @property
    def display_name(self) -> str:
        if self.user and self.user.name:
            return self.user.name
        if self.identity:
            return self.identity.name or self.identity.email
        return ""


def build_state() -> AppState:
    if not current_user.is_authenticated:
        return AppState()
    identity = current_user._get_current_object()
    found = get_user_with_organization(identity.id)
    if not found.ok:
        if found.kind == ErrorKind.CONSISTENCY:
            current_app.logger.warning("state for %s: %s", identity.id, found.message)
        return AppState(identity=identity)
    user = found.value["user"]
    organization = found.value["organization"]
    role = roles.get_role_in_org(identity.id, organization.id) if organization else None
    return AppState(identity=identity, user=user, organization=organization, role=role)


def load_state() -> None:
    g.app_state = build_state()


def refresh_state() -> AppState:
    g.app_state = build_state()
    return g.app_state


def get_state() -> AppState:
    if "app_state" not in g:
        g.app_state = build_state()
    return g.app_state
