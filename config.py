# config.py
import os
import re
from pathlib import Path


# ---- base directories -------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent
INSTANCE_DIR = os.environ.get("FLASK_INSTANCE_PATH", str(BASE_DIR / "instance"))

# signing key used when JWT_SECRET is not provided (local development only)
DEV_JWT_SECRET = "dev-jwt-secret-change-me"


# ---- tiny helpers -----------------------------------------------------------
def _to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "on", "y"}


_SENDER_RE = re.compile(r'^\s*(?P<name>.*?)\s*<\s*(?P<addr>[^>]+)\s*>\s*$')


def _parse_sender(val: str | None, fallback_name: str, fallback_addr: str):
    """
    Accepts either:
      - "Display Name <addr@example.com>"
      - "addr@example.com"
      - None -> falls back to (fallback_name, fallback_addr)
    Returns:
      - (name, addr) tuple, or
      - plain email string
    """
    if not val:
        return (fallback_name, fallback_addr)
    m = _SENDER_RE.match(val)
    if m:
        name = m.group("name").strip() or fallback_name
        addr = m.group("addr").strip() or fallback_addr
        return (name, addr)
    if "@" in val and "<" not in val and ">" not in val:
        return val.strip()
    return (fallback_name, fallback_addr)


def _database_url() -> str:
    raw = os.getenv("DATABASE_URL", "").strip()
    # Render / Heroku give postgres://; normalize to postgresql+psycopg2://
    if raw.startswith("postgres://"):
        raw = raw.replace("postgres://", "postgresql+psycopg2://", 1)
    if not raw:
        raw = "sqlite:///" + str(Path(INSTANCE_DIR) / "vpnstore.db")
    return raw


# ----------------------------------------------------------------------------
class Config:
    """
    Base configuration loaded by the app factory via:
      app.config.from_object("config.Config")
    """

    # ------------ Core / Security ------------
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret")
    IS_PRODUCTION = os.getenv("APP_ENV", "development").strip().lower() == "production"
    MAINTENANCE_MODE = int(os.getenv("MAINTENANCE_MODE", "0"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # ------------ Session tokens ------------
    JWT_SECRET = os.getenv("JWT_SECRET", DEV_JWT_SECRET)
    JWT_ISSUER = os.getenv("JWT_ISSUER", "vpnstore")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "vpnstore-users")
    TOKEN_LIFETIME_SECONDS = int(os.getenv("TOKEN_LIFETIME_SECONDS", str(24 * 60 * 60)))
    TOKEN_LEEWAY_SECONDS = int(os.getenv("TOKEN_LEEWAY_SECONDS", "30"))

    # ------------ Login throttling ------------
    LOGIN_MAX_ATTEMPTS = int(os.getenv("LOGIN_MAX_ATTEMPTS", "5"))
    LOGIN_LOCKOUT_SECONDS = int(os.getenv("LOGIN_LOCKOUT_SECONDS", str(15 * 60)))

    # ------------ Cookies ------------
    COOKIE_DOMAIN = os.getenv("COOKIE_DOMAIN") or None
    SESSION_COOKIE_SAMESITE = "Strict"
    SESSION_COOKIE_SECURE = IS_PRODUCTION

    # ------------ Database ------------
    SQLALCHEMY_DATABASE_URI = _database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # ------------ Default admin (seeded on boot only when both are set) ------------
    DEFAULT_ADMIN_EMAIL = (os.getenv("DEFAULT_ADMIN_EMAIL") or "").strip().lower()
    DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD") or ""

    # ------------ Mail ------------
    MAIL_SERVER = os.getenv("MAIL_SERVER", os.getenv("SMTP_HOST", "smtp.gmail.com"))
    MAIL_PORT = int(os.getenv("MAIL_PORT", os.getenv("SMTP_PORT", "587")))
    MAIL_USE_TLS = _to_bool(os.getenv("MAIL_USE_TLS", "1"))
    MAIL_USE_SSL = _to_bool(os.getenv("MAIL_USE_SSL", "0"))
    MAIL_USERNAME = os.getenv("MAIL_USERNAME", os.getenv("SMTP_USER", ""))
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD", os.getenv("SMTP_PASS", ""))
    MAIL_DEFAULT_SENDER = _parse_sender(
        os.getenv("MAIL_DEFAULT_SENDER") or os.getenv("FROM_EMAIL"),
        "VPN Key Store",
        MAIL_USERNAME or "noreply@vpnstore.local",
    )
    MAIL_SUPPRESS_SEND = _to_bool(os.getenv("MAIL_SUPPRESS_SEND", "0"), default=False)
    MAIL_ASYNC = _to_bool(os.getenv("MAIL_ASYNC", "1"), default=True)

    # ------------ Uploads / Backups ------------
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", str(Path(INSTANCE_DIR) / "uploads" / "payment-proofs"))
    MAX_PROOF_BYTES = int(os.getenv("MAX_PROOF_BYTES", str(5 * 1024 * 1024)))
    BACKUP_DIR = os.getenv("BACKUP_DIR", str(Path(INSTANCE_DIR) / "backups"))

    # dev default; production can override to https
    PREFERRED_URL_SCHEME = os.getenv("PREFERRED_URL_SCHEME", "http")


class TestingConfig(Config):
    TESTING = True
    IS_PRODUCTION = False
    MAINTENANCE_MODE = 0
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET = "test-jwt-secret-9f2c4e7a1b6d8035e4f1a2b3c4d5e6f708192a3b4c5d6e7f8091a2b3c4d5e6f7"
    MAIL_SUPPRESS_SEND = True
    MAIL_ASYNC = False
    DEFAULT_ADMIN_EMAIL = ""
    DEFAULT_ADMIN_PASSWORD = ""
