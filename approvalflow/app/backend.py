"""Thin typed wrapper over the persistence and authentication backend.

Every call is a self-contained round trip: it commits on success and rolls back
on failure, so multi-step operations built on top of it are *not* atomic and
must compensate explicitly (see ``saga.py``).
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import db
from .models import (
    AuthIdentity,
    Invitation,
    Organization,
    Role,
    User,
    UserRole,
    Workflow,
    WorkflowStep,
)
from .result import Err, Ok, Result

TABLES: dict[str, Any] = {
    "organizations": Organization,
    "users": User,
    "workflows": Workflow,
    "workflow_steps": WorkflowStep,
    "roles": Role,
    "user_roles": UserRole,
    "invitations": Invitation,
}


class BackendError(LookupError):
    pass


def _model(table: str):
    try:
        return TABLES[table]
    except KeyError:
        raise BackendError(f"unknown table: {table}")


class AuthClient:
    """Identity operations: sign-up, password sign-in, confirmation, admin delete."""

    def sign_up(self, email: str, password: str, name: "str | None" = None, confirmed: bool = False) -> Result:
        if self.get_user_by_email(email):
            return Err.conflict("An account with this email already exists. Please sign in instead.")
        identity = AuthIdentity()
        identity.email = email
        identity.name = name
        identity.set_password(password)
        identity.email_confirmed = confirmed
        if confirmed:
            identity.confirmed_at = datetime.utcnow()
        try:
            db.session.add(identity)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.warning("sign_up lost a race on auth_identities.email for %s", email)
            return Err.conflict("An account with this email already exists. Please sign in instead.")
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("sign_up failed for %s", email)
            return Err.backend("Database error saving new user. Please try again.")
        return Ok(identity)

    def sign_in_with_password(self, email: str, password: str) -> Result:
        identity = self.get_user_by_email(email)
        if identity is None or not identity.check_password(password):
            return Err.validation("Invalid login credentials.")
        return Ok(identity)

    def get_user_by_email(self, email: str) -> "AuthIdentity | None":
        return AuthIdentity.query.filter_by(email=email).first()

    def get_user(self, identity_id: "str | None") -> "AuthIdentity | None":
        if not identity_id:
            return None
        return db.session.get(AuthIdentity, str(identity_id))

    def confirm_email(self, identity_id: str) -> Result:
        identity = self.get_user(identity_id)
        if identity is None:
            return Err.not_found("User not found.")
        if identity.email_confirmed:
            return Ok(identity)
        identity.email_confirmed = True
        identity.confirmed_at = datetime.utcnow()
        return self._commit(identity, "confirm_email")

    def mark_confirmation_sent(self, identity_id: str) -> Result:
        identity = self.get_user(identity_id)
        if identity is None:
            return Err.not_found("User not found.")
        identity.last_confirmation_sent_at = datetime.utcnow()
        return self._commit(identity, "mark_confirmation_sent")

    def admin_delete_user(self, identity_id: str) -> Result:
        identity = self.get_user(identity_id)
        if identity is None:
            return Ok(0)
        try:
            db.session.delete(identity)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("admin_delete_user failed for %s", identity_id)
            return Err.backend()
        return Ok(1)

    def _commit(self, identity: AuthIdentity, op: str) -> Result:
        try:
            db.session.add(identity)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("%s failed for %s", op, identity.id)
            return Err.backend()
        return Ok(identity)


class Backend:
    """Table CRUD plus the ``auth`` client."""

    def __init__(self) -> None:
        self.auth = AuthClient()

    def insert(self, table: str, rows: "dict | Iterable[dict]") -> Result:
        model = _model(table)
        if isinstance(rows, dict):
            rows = [rows]
        objs = []
        for row in rows:
            obj = model()
            for key, value in row.items():
                setattr(obj, key, value)
            objs.append(obj)
        try:
            db.session.add_all(objs)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.exception("insert into %s violated a constraint", table)
            return Err.conflict(f"A conflicting {table} record already exists.")
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("insert into %s failed", table)
            return Err.backend()
        return Ok(objs)

    def select(self, table: str, order_by: "str | None" = None, descending: bool = False, **filters) -> Result:
        model = _model(table)
        try:
            q = model.query.filter_by(**filters)
            if order_by:
                column = getattr(model, order_by)
                q = q.order_by(column.desc() if descending else column)
            return Ok(q.all())
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("select from %s failed", table)
            return Err.backend()

    def select_one(self, table: str, **filters) -> Result:
        """Maybe-single lookup: ``Ok(None)`` when nothing matches."""
        model = _model(table)
        try:
            return Ok(model.query.filter_by(**filters).first())
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("select_one from %s failed", table)
            return Err.backend()

    def update(self, table: str, values: dict, **filters) -> Result:
        model = _model(table)
        try:
            objs = model.query.filter_by(**filters).all()
            for obj in objs:
                for key, value in values.items():
                    setattr(obj, key, value)
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            current_app.logger.exception("update of %s violated a constraint", table)
            return Err.conflict(f"A conflicting {table} record already exists.")
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("update of %s failed", table)
            return Err.backend()
        return Ok(objs)

    def upsert(self, table: str, row: dict) -> Result:
        model = _model(table)
        existing = db.session.get(model, row["id"]) if row.get("id") is not None else None
        if existing is None:
            inserted = self.insert(table, row)
            return Ok(inserted.value[0]) if inserted.ok else inserted
        values = {k: v for k, v in row.items() if k != "id"}
        updated = self.update(table, values, id=row["id"])
        return Ok(updated.value[0]) if updated.ok else updated

    def delete(self, table: str, **filters) -> Result:
        if not filters:
            raise BackendError("refusing to delete without filters")
        model = _model(table)
        try:
            objs = model.query.filter_by(**filters).all()
            # per-object delete so relationship cascades apply
            for obj in objs:
                db.session.delete(obj)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("delete from %s failed", table)
            return Err.backend()
        return Ok(len(objs))


def get_backend() -> Backend:
    return current_app.extensions["backend"]
