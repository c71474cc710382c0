import sys
import os
from types import SimpleNamespace

import pytest

# ensure repository root is on sys.path so `approvalflow` can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# Config reads these at import time and refuses to start without them
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('SECRET_KEY', 'test-secret')
from approvalflow.app import create_app, db
from approvalflow.app.config import Config
from approvalflow.app.models import AuthIdentity, User, UserRole
from approvalflow.app.services.organizations import create_organization_with_admin
from approvalflow.app.services.roles import get_role_by_name, seed_roles

PASSWORD = 'secret123'


# Config attributes are Final, so the test config is a standalone class rather than a subclass.
class TestConfig:
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    SECRET_KEY = getattr(Config, "SECRET_KEY", "test-secret")
    EMAIL_PROVIDER = "log"
    APP_BASE_URL = "http://localhost"
    INVITATION_TTL_DAYS = 7
    MIN_PASSWORD_LENGTH = 6


def create_identity(email, password=PASSWORD, name=None, confirmed=True):
    identity = AuthIdentity()
    identity.email = email
    identity.name = name
    identity.set_password(password)
    identity.email_confirmed = confirmed
    db.session.add(identity)
    db.session.commit()
    return identity


def add_member(org_id, email, role_name, name=None):
    """Identity + users row + role assignment, as if the person had accepted an invitation."""
    identity = create_identity(email, name=name)
    user = User()
    user.id = identity.id
    user.email = email
    user.name = name
    user.organization_id = org_id
    db.session.add(user)
    assignment = UserRole()
    assignment.user_id = identity.id
    assignment.role_id = get_role_by_name(role_name).id
    assignment.organization_id = org_id
    db.session.add(assignment)
    db.session.commit()
    return SimpleNamespace(id=identity.id, email=email, password=PASSWORD, org_id=org_id)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    identity = create_identity('ada@acme.com', name='Ada Admin')
    result = create_organization_with_admin(
        identity,
        {"name": "Acme", "industry": "Technology", "size": "11-50 employees", "description": ""},
        {"admin_name": "Ada Admin", "admin_email": "ada@acme.com", "admin_title": "CTO"},
    )
    assert result.ok, result
    return SimpleNamespace(id=identity.id, email=identity.email, password=PASSWORD, org_id=result.value["organization"].id)


@pytest.fixture
def login(client):
    def _login(email, password=PASSWORD):
        return client.post('/sign-in', data={'email': email, 'password': password})
    return _login


@pytest.fixture
def make_member(admin):
    def _make(email, role_name='user', name=None, org_id=None):
        return add_member(org_id or admin.org_id, email, role_name, name=name)
    return _make


@pytest.fixture
def make_identity(app):
    return create_identity
