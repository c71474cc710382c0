import smtplib
from types import SimpleNamespace

import requests

from approvalflow.app.services import email as mail
from approvalflow.app.services.invitations import create_invitation


def capture_posts(monkeypatch, status_code=202, exc=None):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({'url': url, 'headers': headers, 'json': json, 'timeout': timeout})
        if exc is not None:
            raise exc
        return SimpleNamespace(status_code=status_code, text='rejected')

    monkeypatch.setattr(mail.requests, 'post', fake_post)
    return calls


def fake_smtp(monkeypatch, fail_on_send=False):
    sessions = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host, self.port = host, port
            self.calls = []
            sessions.append(self)

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            self.calls.append('quit')
            return False

        def starttls(self):
            self.calls.append('starttls')

        def login(self, username, password):
            self.calls.append(('login', username, password))

        def send_message(self, msg):
            if fail_on_send:
                raise smtplib.SMTPRecipientsRefused({})
            self.message = msg
            self.calls.append('send')

    monkeypatch.setattr(mail.smtplib, 'SMTP', FakeSMTP)
    return sessions


def test_log_provider_always_succeeds(app):
    assert mail.send_email('Hi', 'a@acme.com', 'body') is True


def test_unknown_provider_fails(app):
    app.config['EMAIL_PROVIDER'] = 'pigeon'
    assert mail.send_email('Hi', 'a@acme.com', 'body') is False


def test_resend_posts_json_payload(app, monkeypatch):
    app.config.update(EMAIL_PROVIDER='resend', RESEND_API_KEY='re_key', MAIL_DEFAULT_SENDER='flow@acme.com')
    calls = capture_posts(monkeypatch)

    assert mail.send_email('Hi', 'a@acme.com', 'plain', '<p>html</p>') is True
    assert len(calls) == 1
    assert calls[0]['url'] == mail.RESEND_ENDPOINT
    assert calls[0]['headers'] == {'Authorization': 'Bearer re_key'}
    assert calls[0]['json'] == {
        'from': 'flow@acme.com', 'to': ['a@acme.com'], 'subject': 'Hi', 'text': 'plain', 'html': '<p>html</p>',
    }


def test_resend_without_key_does_not_call_out(app, monkeypatch):
    app.config.update(EMAIL_PROVIDER='resend', RESEND_API_KEY='')
    calls = capture_posts(monkeypatch)
    assert mail.send_email('Hi', 'a@acme.com', 'plain') is False
    assert calls == []


def test_resend_failures_return_false(app, monkeypatch):
    app.config.update(EMAIL_PROVIDER='resend', RESEND_API_KEY='re_key')
    capture_posts(monkeypatch, status_code=422)
    assert mail.send_email('Hi', 'a@acme.com', 'plain') is False

    capture_posts(monkeypatch, exc=requests.ConnectionError('down'))
    assert mail.send_email('Hi', 'a@acme.com', 'plain') is False


def test_smtp_uses_tls_and_login(app, monkeypatch):
    app.config.update(
        EMAIL_PROVIDER='smtp', MAIL_SERVER='mail.acme.com', MAIL_PORT=587, MAIL_USE_TLS=True,
        MAIL_USERNAME='flow', MAIL_PASSWORD='pw', MAIL_DEFAULT_SENDER='flow@acme.com',
    )
    sessions = fake_smtp(monkeypatch)

    assert mail.send_email('Hi', 'a@acme.com', 'plain', '<p>html</p>') is True
    server = sessions[0]
    assert (server.host, server.port) == ('mail.acme.com', 587)
    assert server.calls == ['starttls', ('login', 'flow', 'pw'), 'send', 'quit']
    assert server.message['To'] == 'a@acme.com'
    assert server.message['From'] == 'flow@acme.com'
    assert server.message.is_multipart()


def test_smtp_without_credentials_skips_login(app, monkeypatch):
    app.config.update(EMAIL_PROVIDER='smtp', MAIL_USE_TLS=False, MAIL_USERNAME='', MAIL_PASSWORD='')
    sessions = fake_smtp(monkeypatch)
    assert mail.send_email('Hi', 'a@acme.com', 'plain') is True
    assert sessions[0].calls == ['send', 'quit']


def test_smtp_failure_returns_false(app, monkeypatch):
    app.config['EMAIL_PROVIDER'] = 'smtp'
    fake_smtp(monkeypatch, fail_on_send=True)
    assert mail.send_email('Hi', 'a@acme.com', 'plain') is False


def test_invitation_email_carries_accept_link(app, admin, monkeypatch):
    app.config.update(EMAIL_PROVIDER='resend', RESEND_API_KEY='re_key')
    calls = capture_posts(monkeypatch)

    inv = create_invitation(admin.id, admin.org_id, 'new@acme.com', 'manager').value
    payload = calls[0]['json']
    assert payload['to'] == ['new@acme.com']
    assert payload['subject'] == "You're invited to join Acme on ApprovalFlow"
    assert f'http://localhost/accept-invitation?token={inv.token}' in payload['text']
    assert 'as manager' in payload['text']
