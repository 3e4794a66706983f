# vpnstore/admin/__init__.py
from flask import Blueprint, g

from vpnstore.auth.guard import require_admin
from vpnstore.auth.session_utils import apply_security_headers

admin_bp = Blueprint("admin_bp", __name__, url_prefix="/api/admin")


@admin_bp.before_request
def _guard():
    # runs before any lookup, so a missing token is a 401 whether or not the target exists
    g.identity = require_admin()


@admin_bp.after_request
def _headers(resp):
    return apply_security_headers(resp)


from vpnstore.admin import orders, products, system, users  # noqa: E402,F401
