# vpnstore/auth/session_utils.py
from flask import current_app

from vpnstore.auth.guard import ADMIN_COOKIE, LEGACY_COOKIE, USER_COOKIE

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}


def _cookie_kwargs() -> dict:
    cfg = current_app.config
    prod = bool(cfg.get("IS_PRODUCTION"))
    return {
        "httponly": True,
        "secure": prod,
        "samesite": "Strict",
        "path": "/",
        "domain": cfg.get("COOKIE_DOMAIN") if prod else None,
    }


def set_token_cookie(resp, name: str, token: str):
    resp.set_cookie(name, token, max_age=int(current_app.config.get("TOKEN_LIFETIME_SECONDS", 86400)),
                    **_cookie_kwargs())
    return resp


def clear_token_cookies(resp, *names: str):
    kw = _cookie_kwargs()
    for name in names or (USER_COOKIE, ADMIN_COOKIE, LEGACY_COOKIE):
        resp.delete_cookie(name, path=kw["path"], domain=kw["domain"], secure=kw["secure"],
                           httponly=True, samesite="Strict")
    return resp


def apply_security_headers(resp, no_store: bool = False):
    for k, v in SECURITY_HEADERS.items():
        resp.headers[k] = v
    if no_store:
        resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    return resp
