from approvalflow.app import db
from approvalflow.app.backend import Backend
from approvalflow.app.models import AuthIdentity, Organization, User
from approvalflow.app.result import Err, ErrorKind
from approvalflow.app.services.organizations import create_organization_with_admin, ensure_user_record
from approvalflow.app.services.roles import get_role_in_org, is_org_admin

DETAILS = {"name": "Globex", "industry": "Finance", "size": "51-200 employees", "description": "Banking"}
PROFILE = {"admin_name": "Gina Globex", "admin_email": "gina@globex.com", "admin_title": "COO"}


def test_create_organization_binds_caller_as_admin(make_identity):
    identity = make_identity('gina@globex.com')
    result = create_organization_with_admin(identity, DETAILS, PROFILE)
    assert result.ok, result
    org = result.value["organization"]
    user = result.value["user"]
    assert org.admin_id == identity.id
    assert user.organization_id == org.id
    assert user.name == "Gina Globex"
    assert is_org_admin(identity.id, org.id)
    assert get_role_in_org(identity.id, org.id).name == "admin"


def test_unconfirmed_email_cannot_create_organization(make_identity):
    identity = make_identity('gina@globex.com', confirmed=False)
    result = create_organization_with_admin(identity, DETAILS, PROFILE)
    assert result.kind == ErrorKind.VALIDATION
    assert Organization.query.count() == 0


def test_member_of_an_organization_cannot_create_another(admin):
    identity = db.session.get(AuthIdentity, admin.id)
    result = create_organization_with_admin(identity, DETAILS, PROFILE)
    assert result.kind == ErrorKind.CONFLICT
    assert Organization.query.count() == 1


def test_details_and_profile_are_validated(make_identity):
    identity = make_identity('gina@globex.com')
    assert create_organization_with_admin(identity, dict(DETAILS, name=" "), PROFILE).kind == ErrorKind.VALIDATION
    assert create_organization_with_admin(identity, dict(DETAILS, industry="Space"), PROFILE).kind == ErrorKind.VALIDATION
    assert create_organization_with_admin(identity, DETAILS, dict(PROFILE, admin_title="")).kind == ErrorKind.VALIDATION


def test_admin_assignment_failure_rolls_back_organization(make_identity, monkeypatch):
    identity = make_identity('gina@globex.com', name='Gina')
    assert ensure_user_record(identity).ok
    original = Backend.insert

    def failing_insert(self, table, rows):
        if table == 'user_roles':
            return Err.backend()
        return original(self, table, rows)

    monkeypatch.setattr(Backend, 'insert', failing_insert)
    result = create_organization_with_admin(identity, DETAILS, PROFILE)
    assert result.kind == ErrorKind.BACKEND
    assert Organization.query.count() == 0
    user = db.session.get(User, identity.id)
    assert user.organization_id is None
    assert user.name == 'Gina'


def test_failure_without_prior_user_row_removes_it(make_identity, monkeypatch):
    identity = make_identity('gina@globex.com')
    original = Backend.insert

    def failing_insert(self, table, rows):
        if table == 'user_roles':
            return Err.backend()
        return original(self, table, rows)

    monkeypatch.setattr(Backend, 'insert', failing_insert)
    assert not create_organization_with_admin(identity, DETAILS, PROFILE).ok
    assert db.session.get(User, identity.id) is None


def test_setup_wizard_end_to_end(client):
    rv = client.post('/sign-up', data={
        'name': 'Olga', 'email': 'olga@globex.com', 'password': 'secret123', 'confirm': 'secret123'
    })
    assert rv.status_code == 302
    assert rv.headers['Location'].endswith('/setup')

    # unconfirmed accounts are held at the confirmation notice
    rv = client.get('/setup')
    assert 'Confirm your email' in rv.get_data(as_text=True)

    identity = AuthIdentity.query.filter_by(email='olga@globex.com').one()
    rv = client.get(f'/confirm/{identity.generate_confirmation_token()}')
    assert rv.status_code == 302
    assert identity.email_confirmed is True

    rv = client.post('/setup', data={'action': 'next', **DETAILS})
    assert rv.status_code == 302
    rv = client.get('/setup')
    assert 'Admin profile' in rv.get_data(as_text=True)

    # back keeps the entered details
    rv = client.post('/setup', data={'action': 'back'})
    assert 'Globex' in rv.get_data(as_text=True)
    client.post('/setup', data={'action': 'next', **DETAILS})

    rv = client.post('/setup', data={'action': 'next', **PROFILE})
    assert rv.status_code == 302
    rv = client.get('/setup')
    assert 'Review' in rv.get_data(as_text=True)

    rv = client.post('/setup', data={'action': 'complete'})
    assert rv.status_code == 302
    assert rv.headers['Location'].endswith('/dashboard')

    org = Organization.query.one()
    assert org.name == 'Globex'
    assert is_org_admin(identity.id, org.id)
    rv = client.get('/dashboard')
    assert rv.status_code == 200
    assert 'Total Workflows' in rv.get_data(as_text=True)


def test_setup_step_one_requires_fields(client, make_identity, login):
    make_identity('olga@globex.com')
    login('olga@globex.com')
    rv = client.post('/setup', data={'action': 'next', 'name': '', 'industry': 'Finance', 'size': '51-200 employees'})
    assert rv.status_code == 200
    assert 'Organization details' in rv.get_data(as_text=True)
    assert Organization.query.count() == 0


def test_pages_behind_onboarding_redirect_to_setup(client, make_identity, login):
    make_identity('olga@globex.com')
    login('olga@globex.com')
    rv = client.get('/dashboard')
    assert rv.status_code == 302
    assert rv.headers['Location'].endswith('/setup')
