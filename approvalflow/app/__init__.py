import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_login import LoginManager
from flask_wtf import CSRFProtect
from flask_babel import Babel
from .config import Config

db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
csrf = CSRFProtect()
babel = Babel()


def create_app(config=None):
    app = Flask(__name__, static_folder="static", template_folder="templates")
    app.config.from_object(config or Config)

    # Configure logging
    import logging
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    app.logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    formatter = logging.Formatter('[%(asctime)s] %(levelname)s in %(module)s: %(message)s')
    handler.setFormatter(formatter)
    app.logger.addHandler(handler)

    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations"))
    login_manager.init_app(app)
    # unauthenticated pages go back to sign-in; the JSON API answers 401 instead of redirecting
    login_manager.login_view = "auth.sign_in"  # type: ignore
    login_manager.login_message_category = "warning"  # type: ignore
    login_manager.blueprint_login_views["api_v1"] = None  # type: ignore

    from .models import AuthIdentity

    @login_manager.user_loader
    def load_user(user_id: str):
        return db.session.get(AuthIdentity, str(user_id))

    csrf.init_app(app)

    def get_locale():
        from flask import request
        return request.accept_languages.best_match(app.config.get("SUPPORTED_LOCALES", ("en",))) or "en"

    babel.init_app(app, locale_selector=get_locale)

    from .backend import Backend
    app.extensions["backend"] = Backend()

    from .state import get_state, load_state
    app.before_request(load_state)

    @app.context_processor
    def inject_state():
        return {"state": get_state()}

    @app.after_request
    def set_security_headers(response):
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    @app.route("/health", methods=["GET"])
    def health_check():
        return ("OK", 200)

    from .main.routes import main_bp
    from .auth.routes import auth_bp
    from .onboarding.routes import onboarding_bp
    from .users.routes import users_bp
    from .invitations.routes import invitations_bp
    from .workflows.routes import workflows_bp
    from .api.v1 import api_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(onboarding_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(invitations_bp)
    app.register_blueprint(workflows_bp)
    # JSON API uses session auth and is exempt from form CSRF tokens
    csrf.exempt(api_bp)
    app.register_blueprint(api_bp, url_prefix="/api/v1")

    from .cli import invitations_cli, roles_cli
    app.cli.add_command(roles_cli)
    app.cli.add_command(invitations_cli)

    return app
