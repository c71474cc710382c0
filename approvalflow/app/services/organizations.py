from __future__ import annotations

from flask import current_app

from ..backend import get_backend
from ..result import Err, Ok, Result
from ..saga import Saga
from . import roles

INDUSTRIES = [
    "Technology", "Healthcare", "Finance", "Manufacturing", "Retail", "Education",
    "Government", "Non-profit", "Real Estate", "Consulting", "Other",
]

COMPANY_SIZES = [
    "1-10 employees", "11-50 employees", "51-200 employees",
    "201-1000 employees", "1000+ employees",
]


def validate_org_details(details: dict) -> "Err | None":
    if not (details.get("name") or "").strip():
        return Err.validation("Organization name is required.")
    if details.get("industry") not in INDUSTRIES:
        return Err.validation("Please select your industry.")
    if details.get("size") not in COMPANY_SIZES:
        return Err.validation("Please select your company size.")
    return None


def validate_admin_profile(profile: dict) -> "Err | None":
    for key, label in (("admin_name", "Full name"), ("admin_email", "Email"), ("admin_title", "Job title")):
        if not (profile.get(key) or "").strip():
            return Err.validation(f"{label} is required.")
    return None


def create_organization_with_admin(identity, details: dict, profile: dict) -> Result:
    """Create the organization and bind the caller to it as admin.

    Writes: organization row, the caller's ``users`` row (upsert) and the admin
    role assignment. A failure in a later write removes the earlier ones.
    """
    if identity is None:
        return Err.validation("No authenticated user found.")
    if not identity.email_confirmed:
        return Err.validation("Please confirm your email address before creating an organization.")
    invalid = validate_org_details(details) or validate_admin_profile(profile)
    if invalid is not None:
        return invalid

    backend = get_backend()
    current = backend.select_one("users", id=identity.id)
    if not current.ok:
        return current
    previous = current.value
    if previous is not None and previous.organization_id:
        return Err.conflict("You already belong to an organization.")
    admin_role = roles.get_role_by_name(roles.ADMIN)
    if admin_role is None:
        current_app.logger.error("admin role missing; run `flask roles seed`")
        return Err.backend("Roles are not configured. Please contact support.")
    previous_name = previous.name if previous is not None else None

    def create_org(ctx: dict) -> Result:
        inserted = backend.insert(
            "organizations",
            {
                "name": details["name"].strip(),
                "industry": details["industry"],
                "size": details["size"],
                "description": (details.get("description") or "").strip() or None,
                "admin_id": identity.id,
            },
        )
        return Ok(inserted.value[0]) if inserted.ok else inserted

    def bind_user(ctx: dict) -> Result:
        return backend.upsert(
            "users",
            {
                "id": identity.id,
                "email": identity.email,
                "name": profile["admin_name"].strip(),
                "organization_id": ctx["organization"].id,
            },
        )

    def unbind_user(ctx: dict, user) -> Result:
        if previous is None:
            return backend.delete("users", id=identity.id)
        return backend.update("users", {"organization_id": None, "name": previous_name}, id=identity.id)

    def assign_admin(ctx: dict) -> Result:
        inserted = backend.insert(
            "user_roles",
            {
                "user_id": identity.id,
                "role_id": admin_role.id,
                "organization_id": ctx["organization"].id,
                "assigned_by": identity.id,
            },
        )
        return Ok(inserted.value[0]) if inserted.ok else inserted

    saga = Saga("create_organization")
    saga.add_step("organization", create_org, compensate=lambda ctx, org: backend.delete("organizations", id=org.id))
    saga.add_step("user", bind_user, compensate=unbind_user)
    saga.add_step("user_role", assign_admin)
    outcome = saga.execute()
    if not outcome.ok:
        return outcome
    organization = outcome.value["organization"]
    current_app.logger.info("organization %s created by %s", organization.id, identity.id)
    return Ok({"organization": organization, "user": outcome.value["user"]})


def ensure_user_record(identity) -> Result:
    """Make sure a signed-up identity has its (organization-less) ``users`` row."""
    backend = get_backend()
    found = backend.select_one("users", id=identity.id)
    if not found.ok or found.value is not None:
        return found
    inserted = backend.insert("users", {"id": identity.id, "email": identity.email, "name": identity.name})
    return Ok(inserted.value[0]) if inserted.ok else inserted
