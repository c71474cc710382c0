from datetime import datetime

import pytest

from approvalflow.app import db
from approvalflow.app.config import _required
from approvalflow.app.models import AuthIdentity, User


def test_missing_backend_setting_is_fatal(monkeypatch):
    monkeypatch.delenv('APPROVALFLOW_UNSET_SETTING', raising=False)
    with pytest.raises(RuntimeError):
        _required('APPROVALFLOW_UNSET_SETTING')


def test_health(client):
    rv = client.get('/health')
    assert rv.status_code == 200


def test_landing_page_for_anonymous_visitors(client):
    rv = client.get('/')
    assert rv.status_code == 200
    assert 'Pricing' in rv.get_data(as_text=True)


def test_sign_up_creates_identity_and_user_row(client, monkeypatch):
    sent = []
    monkeypatch.setattr(
        'approvalflow.app.auth.routes.send_confirmation_email',
        lambda identity, resend=False: sent.append(identity.email) or True,
    )
    rv = client.post('/sign-up', data={
        'name': 'Tess', 'email': 'Tess@Example.com', 'password': 'secret123', 'confirm': 'secret123'
    })
    assert rv.status_code == 302
    identity = AuthIdentity.query.filter_by(email='tess@example.com').one()
    assert identity.email_confirmed is False
    assert identity.last_confirmation_sent_at is not None
    assert db.session.get(User, identity.id).organization_id is None
    assert sent == ['tess@example.com']


def test_sign_up_rejects_mismatched_passwords(client):
    rv = client.post('/sign-up', data={
        'name': 'Tess', 'email': 'tess@example.com', 'password': 'secret123', 'confirm': 'other123'
    })
    assert rv.status_code == 200
    assert 'Passwords do not match' in rv.get_data(as_text=True)
    assert AuthIdentity.query.count() == 0


def test_duplicate_sign_up_is_reported(client, make_identity):
    make_identity('tess@example.com')
    rv = client.post('/sign-up', data={
        'name': 'Tess', 'email': 'tess@example.com', 'password': 'secret123', 'confirm': 'secret123'
    })
    assert rv.status_code == 200
    assert 'already exists' in rv.get_data(as_text=True)
    assert AuthIdentity.query.count() == 1


def test_sign_in_lands_on_dashboard_for_members(client, admin, login):
    rv = login(admin.email)
    assert rv.status_code == 302
    assert rv.headers['Location'].endswith('/dashboard')


def test_sign_in_with_wrong_password(client, make_identity, login):
    make_identity('tess@example.com')
    rv = login('tess@example.com', 'wrong-password')
    assert rv.status_code == 200
    assert 'Invalid login credentials.' in rv.get_data(as_text=True)


def test_invalid_confirmation_token(client):
    rv = client.get('/confirm/not-a-token')
    assert rv.status_code == 302
    assert rv.headers['Location'].endswith('/resend-confirmation')


def test_resend_confirmation_is_rate_limited(client, make_identity, monkeypatch):
    sent = []
    monkeypatch.setattr(
        'approvalflow.app.auth.routes.send_confirmation_email',
        lambda identity, resend=False: sent.append(resend) or True,
    )
    identity = make_identity('tess@example.com', confirmed=False)
    identity.last_confirmation_sent_at = datetime.utcnow()
    db.session.commit()

    rv = client.post('/resend-confirmation', data={'email': 'tess@example.com'})
    assert rv.status_code == 200
    assert 'sent recently' in rv.get_data(as_text=True)
    assert sent == []

    identity.last_confirmation_sent_at = None
    db.session.commit()
    rv = client.post('/resend-confirmation', data={'email': 'tess@example.com'})
    assert rv.status_code == 302
    assert sent == [True]


def test_every_blueprint_is_registered(app):
    assert {'main', 'auth', 'onboarding', 'users', 'invitations', 'workflows', 'api_v1'} <= set(app.blueprints)
