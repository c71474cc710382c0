from __future__ import annotations

import smtplib
from email.message import EmailMessage
from html import escape

import requests
from flask import current_app, url_for

RESEND_ENDPOINT = "https://api.resend.com/emails"


def _sender() -> str:
    return current_app.config.get("MAIL_DEFAULT_SENDER") or "ApprovalFlow <no-reply@approvalflow.app>"


def _deliver_log(subject: str, recipient: str, body: str, html: "str | None") -> bool:
    current_app.logger.info("email to=%s subject=%r\n%s", recipient, subject, body)
    return True


def _deliver_resend(subject: str, recipient: str, body: str, html: "str | None") -> bool:
    api_key = current_app.config.get("RESEND_API_KEY")
    if not api_key:
        current_app.logger.error("EMAIL_PROVIDER=resend but RESEND_API_KEY is not set")
        return False
    payload = {"from": _sender(), "to": [recipient], "subject": subject, "text": body}
    if html:
        payload["html"] = html
    try:
        resp = requests.post(
            RESEND_ENDPOINT,
            headers={"Authorization": f"Bearer {api_key}"},
            json=payload,
            timeout=10,
        )
    except requests.RequestException:
        current_app.logger.exception("Resend request for %s failed", recipient)
        return False
    if resp.status_code in (200, 202):
        return True
    current_app.logger.error("Resend rejected email to %s: %s %s", recipient, resp.status_code, resp.text)
    return False


def _deliver_smtp(subject: str, recipient: str, body: str, html: "str | None") -> bool:
    cfg = current_app.config
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = _sender()
    msg["To"] = recipient
    msg.set_content(body)
    if html:
        msg.add_alternative(html, subtype="html")
    try:
        with smtplib.SMTP(str(cfg.get("MAIL_SERVER") or "localhost"), int(cfg.get("MAIL_PORT") or 25), timeout=10) as server:
            if cfg.get("MAIL_USE_TLS"):
                server.starttls()
            if cfg.get("MAIL_USERNAME") and cfg.get("MAIL_PASSWORD"):
                server.login(cfg["MAIL_USERNAME"], cfg["MAIL_PASSWORD"])
            server.send_message(msg)
    except (smtplib.SMTPException, OSError):
        current_app.logger.exception("SMTP delivery to %s failed", recipient)
        return False
    return True


PROVIDERS = {"log": _deliver_log, "resend": _deliver_resend, "smtp": _deliver_smtp}


def send_email(subject: str, recipient: str, body: str, html: str | None = None) -> bool:
    """Deliver through the configured ``EMAIL_PROVIDER``; False when it could not be sent."""
    provider = current_app.config.get("EMAIL_PROVIDER", "log")
    deliver = PROVIDERS.get(provider)
    if deliver is None:
        current_app.logger.error("unknown EMAIL_PROVIDER %r", provider)
        return False
    return deliver(subject, recipient, body, html)


def send_invitation_email(invitation, organization, role, inviter, accept_url: str) -> bool:
    org_name = organization.name if organization else "an organization"
    inviter_name = (inviter.name or inviter.email) if inviter else "A teammate"
    role_name = role.name if role else "member"
    subject = f"You're invited to join {org_name} on ApprovalFlow"
    body = (
        f"{inviter_name} invited you to join {org_name} as {role_name}.\n\n"
        f"Accept the invitation: {accept_url}\n\n"
        f"This link expires on {invitation.expires_at:%Y-%m-%d}."
    )
    html = (
        "<div style=\"font-family: sans-serif\">"
        f"<h2>Join {escape(org_name)} on ApprovalFlow</h2>"
        f"<p>{escape(inviter_name)} invited you to join <strong>{escape(org_name)}</strong> "
        f"as <strong>{escape(role_name)}</strong>.</p>"
        f"<p><a href=\"{escape(accept_url)}\">Accept invitation</a></p>"
        f"<p>This link expires on {invitation.expires_at:%Y-%m-%d}.</p>"
        "</div>"
    )
    return send_email(subject, invitation.email, body, html)


def send_confirmation_email(identity, resend: bool = False) -> bool:
    token = identity.generate_confirmation_token()
    confirm_url = url_for("auth.confirm_email", token=token, _external=True)
    subject = "[ApprovalFlow] Confirm your email" + (" (resend)" if resend else "")
    body = f"Click the link below to confirm your email address:\n\n{confirm_url}\n"
    return send_email(subject, identity.email, body)
