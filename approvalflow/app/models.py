from __future__ import annotations
import uuid
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from itsdangerous import URLSafeTimedSerializer
from flask import current_app
from . import db


def _uuid() -> str:
    return str(uuid.uuid4())


def _iso(value: "datetime | None") -> "str | None":
    return value.isoformat() + "Z" if value else None


INVITATION_PENDING = "pending"
INVITATION_ACCEPTED = "accepted"
INVITATION_EXPIRED = "expired"

WORKFLOW_STATUSES = ("draft", "active", "archived")


class AuthIdentity(UserMixin, db.Model):
    """Sign-in identity. The matching ``users`` row reuses its id as primary key."""

    __tablename__ = "auth_identities"
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    email_confirmed = db.Column(db.Boolean, default=False, nullable=False)
    confirmed_at = db.Column(db.DateTime, nullable=True)
    # track when the last confirmation email was sent to allow rate-limiting resends
    last_confirmation_sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def generate_confirmation_token(self) -> str:
        serializer = URLSafeTimedSerializer(current_app.config["SECRET_KEY"])
        return serializer.dumps(self.email, salt=current_app.config.get("SECURITY_PASSWORD_SALT"))

    @staticmethod
    def confirm_token(token: str, expiration: "int | None" = None) -> "str | None":
        expiration = expiration or current_app.config.get("CONFIRM_TOKEN_EXPIRATION", 86400)
        serializer = URLSafeTimedSerializer(current_app.config["SECRET_KEY"])
        try:
            email = serializer.loads(token, salt=current_app.config.get("SECURITY_PASSWORD_SALT"), max_age=expiration)
        except Exception:
            return None
        return email


class Organization(db.Model):
    __tablename__ = "organizations"
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(128), nullable=False)
    industry = db.Column(db.String(64), nullable=True)
    size = db.Column(db.String(64), nullable=True)
    description = db.Column(db.Text, nullable=True)
    admin_id = db.Column(db.String(36), db.ForeignKey("auth_identities.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    members = db.relationship("User", back_populates="organization")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "industry": self.industry,
            "size": self.size,
            "description": self.description,
            "admin_id": self.admin_id,
            "created_at": _iso(self.created_at),
        }


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.String(36), db.ForeignKey("auth_identities.id"), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    organization_id = db.Column(db.String(36), db.ForeignKey("organizations.id"), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    organization = db.relationship("Organization", back_populates="members")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "organization_id": self.organization_id,
            "created_at": _iso(self.created_at),
        }


class Role(db.Model):
    __tablename__ = "roles"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), unique=True, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    permissions = db.Column(db.JSON, nullable=False, default=list)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description, "permissions": list(self.permissions or [])}


class UserRole(db.Model):
    __tablename__ = "user_roles"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False)
    organization_id = db.Column(db.String(36), db.ForeignKey("organizations.id"), nullable=False, index=True)
    assigned_by = db.Column(db.String(36), db.ForeignKey("auth_identities.id"), nullable=True)
    assigned_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    role = db.relationship("Role")
    user = db.relationship("User")

    __table_args__ = (db.UniqueConstraint("user_id", "organization_id", name="uq_user_roles_user_org"),)


class Invitation(db.Model):
    __tablename__ = "invitations"
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=True)
    role_id = db.Column(db.Integer, db.ForeignKey("roles.id"), nullable=False)
    organization_id = db.Column(db.String(36), db.ForeignKey("organizations.id"), nullable=False, index=True)
    invited_by = db.Column(db.String(36), db.ForeignKey("auth_identities.id"), nullable=False)
    token = db.Column(db.String(36), unique=True, nullable=False, index=True, default=_uuid)
    status = db.Column(db.String(16), nullable=False, default=INVITATION_PENDING)
    expires_at = db.Column(db.DateTime, nullable=False)
    accepted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    role = db.relationship("Role")
    organization = db.relationship("Organization", backref="invitations")
    inviter = db.relationship("AuthIdentity")

    def is_past_expiry(self, now: "datetime | None" = None) -> bool:
        return self.expires_at < (now or datetime.utcnow())

    def to_dict(self, include_related: bool = False) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role_id": self.role_id,
            "organization_id": self.organization_id,
            "invited_by": self.invited_by,
            "token": self.token,
            "status": self.status,
            "expires_at": _iso(self.expires_at),
            "accepted_at": _iso(self.accepted_at),
            "created_at": _iso(self.created_at),
        }
        if include_related:
            # keyed like the joined tables so clients can read e.g. roles.name
            data["roles"] = {"id": self.role.id, "name": self.role.name} if self.role else None
            data["organizations"] = {"id": self.organization.id, "name": self.organization.name} if self.organization else None
            data["inviter"] = {"name": self.inviter.name, "email": self.inviter.email} if self.inviter else None
        return data


class Workflow(db.Model):
    __tablename__ = "workflows"
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    department = db.Column(db.String(64), nullable=True)
    type = db.Column(db.String(128), nullable=True)
    description = db.Column(db.Text, nullable=True)
    organization_id = db.Column(db.String(36), db.ForeignKey("organizations.id"), nullable=False, index=True)
    created_by = db.Column(db.String(36), db.ForeignKey("auth_identities.id"), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="active")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    steps = db.relationship(
        "WorkflowStep",
        back_populates="workflow",
        order_by="WorkflowStep.order_index",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_steps: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "department": self.department,
            "type": self.type,
            "description": self.description,
            "organization_id": self.organization_id,
            "created_by": self.created_by,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }
        if include_steps:
            data["steps"] = [s.to_dict() for s in self.steps]
        return data


class WorkflowStep(db.Model):
    __tablename__ = "workflow_steps"
    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    workflow_id = db.Column(db.String(36), db.ForeignKey("workflows.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    approver_email = db.Column(db.String(255), nullable=False)
    order_index = db.Column(db.Integer, nullable=False)
    required = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    workflow = db.relationship("Workflow", back_populates="steps")

    __table_args__ = (db.UniqueConstraint("workflow_id", "order_index", name="uq_workflow_steps_order"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "workflow_id": self.workflow_id,
            "name": self.name,
            "approver_email": self.approver_email,
            "order_index": self.order_index,
            "required": self.required,
        }
