import os
from typing import Final

basedir = os.path.abspath(os.path.dirname(__file__))


def _required(name: str) -> str:
    try:
        return os.environ[name]
    except KeyError:
        raise RuntimeError(f"{name} environment variable is required")


class Config:
    # Backend endpoint and key. Both are mandatory; the app refuses to start without them.
    SQLALCHEMY_DATABASE_URI: Final[str] = _required("DATABASE_URL")
    SECRET_KEY: Final[str] = _required("SECRET_KEY")
    SQLALCHEMY_TRACK_MODIFICATIONS: Final[bool] = False
    SESSION_COOKIE_HTTPONLY: Final[bool] = True
    SESSION_COOKIE_SECURE: Final[bool] = os.getenv("FLASK_ENV") == "production"
    SESSION_COOKIE_SAMESITE: Final[str] = os.getenv("SESSION_COOKIE_SAMESITE", "Lax")
    REMEMBER_COOKIE_HTTPONLY: Final[bool] = True
    REMEMBER_COOKIE_SECURE: Final[bool] = os.getenv("FLASK_ENV") == "production"
    LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO")
    # Public base URL used in invitation links. Empty means "derive from the request".
    APP_BASE_URL: Final[str] = os.getenv("APP_BASE_URL", "")
    INVITATION_TTL_DAYS: Final[int] = int(os.getenv("INVITATION_TTL_DAYS", "7"))
    MIN_PASSWORD_LENGTH: Final[int] = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))
    # Mail settings. The default provider only writes composed messages to the log.
    EMAIL_PROVIDER: Final[str] = os.getenv("EMAIL_PROVIDER", "log")
    RESEND_API_KEY: Final[str] = os.getenv("RESEND_API_KEY", "")
    MAIL_SERVER: Final[str] = os.getenv("MAIL_SERVER", "localhost")
    MAIL_PORT: Final[int] = int(os.getenv("MAIL_PORT", "587"))
    MAIL_USE_TLS: Final[bool] = bool(os.getenv("MAIL_USE_TLS", "True") == "True")
    MAIL_USERNAME: Final[str] = os.getenv("MAIL_USERNAME", "")
    MAIL_PASSWORD: Final[str] = os.getenv("MAIL_PASSWORD", "")
    MAIL_DEFAULT_SENDER: Final[str] = os.getenv("MAIL_DEFAULT_SENDER", "no-reply@approvalflow.app")
    # Token settings for email confirmation
    SECURITY_PASSWORD_SALT: Final[str] = os.getenv("SECURITY_PASSWORD_SALT", "change-this-salt")
    CONFIRM_TOKEN_EXPIRATION: Final[int] = int(os.getenv("CONFIRM_TOKEN_EXPIRATION", "86400"))
    WTF_CSRF_TIME_LIMIT: Final[int] = int(os.getenv("WTF_CSRF_TIME_LIMIT", "86400"))
    BABEL_DEFAULT_LOCALE: Final[str] = os.getenv("BABEL_DEFAULT_LOCALE", "en")
    SUPPORTED_LOCALES: Final[tuple] = ("en",)
