from datetime import datetime, timedelta

from approvalflow.app import db
from approvalflow.app.models import Role
from approvalflow.app.services.invitations import create_invitation


def test_roles_seed_is_idempotent(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['roles', 'seed'])
    assert result.exit_code == 0
    assert '0 role(s) created' in result.output
    assert sorted(r.name for r in Role.query.all()) == ['admin', 'manager', 'user', 'viewer']


def test_invitations_expire_command(app, admin):
    inv = create_invitation(admin.id, admin.org_id, 'late@acme.com', 'user').value
    inv.expires_at = datetime.utcnow() - timedelta(days=1)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=['invitations', 'expire'])
    assert result.exit_code == 0
    assert '1 invitation(s) expired' in result.output
    assert inv.status == 'expired'
