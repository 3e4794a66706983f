# vpnstore/auth/guard.py
from __future__ import annotations

import functools
from dataclasses import dataclass

from flask import g, request as flask_request

from vpnstore.auth.tokens import validate_token
from vpnstore.errors import AdminAccessRequired, AuthenticationRequired

ADMIN_COOKIE = "admin-token"
USER_COOKIE = "user-token"
LEGACY_COOKIE = "auth-token"

# admin and user sessions can live side by side in one browser; order matters
COOKIE_PRECEDENCE = (ADMIN_COOKIE, USER_COOKIE, LEGACY_COOKIE)


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    role: str
    token_type: str
    session_id: str | None
    token: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def extract_token(request=None, cookies=COOKIE_PRECEDENCE) -> str | None:
    req = request or flask_request
    auth_header = req.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token
    for name in cookies:
        value = req.cookies.get(name)
        if value:
            return value
    return None


def _user_id(raw):
    try:
        return int(raw)
    except (TypeError, ValueError):
        return raw


def require_auth(request=None) -> Identity:
    token = extract_token(request)
    payload = validate_token(token) if token else None
    if not payload:
        raise AuthenticationRequired("Authentication required")
    return Identity(
        user_id=_user_id(payload["userId"]),
        email=payload["email"],
        role=payload["role"],
        token_type=payload.get("type") or "user",
        session_id=payload.get("sessionId"),
        token=token,
    )


def require_admin(request=None) -> Identity:
    identity = require_auth(request)
    if identity.role != "admin":
        raise AdminAccessRequired("Admin access required")
    return identity


def login_required(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        g.identity = require_auth()
        return view(*args, **kwargs)
    return wrapper


def admin_required(view):
    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        g.identity = require_admin()
        return view(*args, **kwargs)
    return wrapper
