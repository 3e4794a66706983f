# vpnstore/__init__.py
import logging
import uuid
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from flask import Flask, g, request
from werkzeug.middleware.proxy_fix import ProxyFix

from vpnstore.extensions import db, mail, migrate

load_dotenv(find_dotenv(), override=False)  # picks up .env locally


def create_app(config_object="config.Config", clock=None):
    app = Flask(__name__, instance_relative_config=True)
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)

    # 1) Base config object (config.py at project root)
    app.config.from_object(config_object)

    # 2) Instance overrides (instance/config.py), skipped for tests
    if not app.config.get("TESTING"):
        app.config.from_pyfile("config.py", silent=True)

    # 3) Environment overrides (e.g., FLASK_SQLALCHEMY_DATABASE_URI)
    app.config.from_prefixed_env()

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # 4) Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    from vpnstore.auth import tokens
    tokens.init_app(app, clock=clock)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    @app.before_request
    def _trace_in():
        g.reqid = str(uuid.uuid4())[:8]
        # never log bodies; they carry passwords and credentials
        app.logger.info(
            "[%s] → %s %s ep=%s args=%s",
            g.reqid, request.method, request.path, request.endpoint, dict(request.args),
        )

    @app.after_request
    def _trace_out(resp):
        rid = getattr(g, "reqid", "????")
        loc = resp.headers.get("Location", "")
        if loc:
            app.logger.info("[%s] ← %s redirect to %s", rid, resp.status, loc)
        else:
            app.logger.info("[%s] ← %s", rid, resp.status)
        return resp

    from vpnstore.errors import register_error_handlers
    from vpnstore.maintenance import install_maintenance_gate
    register_error_handlers(app)
    install_maintenance_gate(app)

    # 5) Blueprints
    from vpnstore.admin import admin_bp
    from vpnstore.auth.routes import auth_bp
    from vpnstore.public.routes import public_bp
    from vpnstore.storefront.routes import storefront_bp

    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(storefront_bp)
    app.register_blueprint(admin_bp)

    from vpnstore.cli import register_cli
    register_cli(app)

    # 6) Tables + optional default admin
    with app.app_context():
        from vpnstore import models  # noqa: F401  (register tables)
        db.create_all()
        _seed_default_admin(app)

    return app


def _seed_default_admin(app):
    email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").strip().lower()
    password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not email or not password:
        return
    from vpnstore.models import User
    if User.query.filter_by(email=email).first():
        return
    u = User(name="Admin", email=email, role="admin", is_active=True)
    u.set_password(password)
    db.session.add(u)
    db.session.commit()
    app.logger.info("seeded default admin %s", email)
