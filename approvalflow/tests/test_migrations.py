import sqlalchemy as sa
from flask_migrate import upgrade

from approvalflow.app import create_app, db
from approvalflow.app.models import Role


def test_initial_migration_builds_unique_indexes(tmp_path):
    class MigrationConfig:
        TESTING = True
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'migrated.db'}"
        SECRET_KEY = "test-secret"
        WTF_CSRF_ENABLED = False

    app = create_app(MigrationConfig)
    with app.app_context():
        upgrade()
        inspector = sa.inspect(db.engine)
        for table, index in (
            ('auth_identities', 'ix_auth_identities_email'),
            ('users', 'ix_users_email'),
            ('invitations', 'ix_invitations_token'),
        ):
            indexes = {ix['name']: bool(ix['unique']) for ix in inspector.get_indexes(table)}
            assert indexes[index] is True, table
            assert inspector.get_unique_constraints(table) == [], table
        assert not {ix['name']: ix['unique'] for ix in inspector.get_indexes('invitations')}['ix_invitations_email']
        assert sorted(r.name for r in Role.query.all()) == ['admin', 'manager', 'user', 'viewer']
        db.session.remove()
