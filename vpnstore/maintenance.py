# vpnstore/maintenance.py
from flask import current_app, redirect, render_template_string, request, url_for

from vpnstore.extensions import db

EXEMPT_PREFIXES = ("/admin", "/api", "/maintenance", "/static", "/favicon.ico", "/healthz")

MAINTENANCE_PAGE = """
<html style="text-align:center;padding-top:20vh;font-family:sans-serif">
<h1>We'll be right back</h1>
<p>{{ site_name }} is undergoing scheduled maintenance.</p>
{% if contact_email %}<p>Questions? Contact <a href="mailto:{{ contact_email }}">{{ contact_email }}</a></p>{% endif %}
</html>
"""


def _exempt(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in EXEMPT_PREFIXES)


def maintenance_active() -> bool:
    if str(current_app.config.get("MAINTENANCE_MODE", "0")).strip().lower() in {"1", "true", "yes", "on"}:
        return True
    from vpnstore.services.settings import is_maintenance_mode
    return is_maintenance_mode()


def install_maintenance_gate(app):
    @app.before_request
    def _maintenance_gate():
        if _exempt(request.path or "/"):
            return None
        try:
            active = maintenance_active()
        except Exception as e:
            # an unreadable flag never locks the site
            db.session.rollback()
            app.logger.warning("[maintenance] settings unavailable, allowing request: %s", e)
            return None
        if active:
            return redirect(url_for("public_bp.maintenance"))
        return None


def render_maintenance_page():
    site_name, contact_email = "VPN Key Store", None
    try:
        from vpnstore.services.settings import get_settings
        s = get_settings()
        site_name, contact_email = s.site_name or site_name, s.contact_email
    except Exception as e:
        db.session.rollback()
        current_app.logger.warning("[maintenance] settings unavailable for page: %s", e)
    html = render_template_string(MAINTENANCE_PAGE, site_name=site_name, contact_email=contact_email)
    return html, 503, {"Retry-After": "3600"}
