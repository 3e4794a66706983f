# vpnstore/auth/routes.py
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import IntegrityError

from vpnstore.auth.forms import LoginForm, RegisterForm
from vpnstore.auth.guard import ADMIN_COOKIE, LEGACY_COOKIE, USER_COOKIE, extract_token, login_required
from vpnstore.auth.session_utils import apply_security_headers, clear_token_cookies, set_token_cookie
from vpnstore.auth.tokens import check_rate_limit, issue_token, record_login_attempt, revoke_token, validate_token
from vpnstore.errors import (
    AuthenticationRequired, Conflict, Forbidden, InvalidCredentials, RateLimited, ValidationError,
)
from vpnstore.extensions import db
from vpnstore.models import User

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/auth")


@auth_bp.after_request
def _headers(resp):
    return apply_security_headers(resp)


@auth_bp.post("/register")
def register():
    form = RegisterForm.from_json(request.get_json(silent=True))
    if not form.validate():
        raise ValidationError(form.first_error())

    email = form.email.data.strip().lower()
    if User.query.filter_by(email=email).first():
        raise Conflict("An account with this email already exists")

    user = User(name=form.name.data.strip(), email=email, role="user", is_active=True)
    user.set_password(form.password.data)
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("An account with this email already exists")

    current_app.logger.info("[auth] registered user id=%s", user.id)
    return jsonify(ok=True, message="Registration successful", user=user.to_dict()), 201


def _authenticate(email: str, password: str) -> User:
    """Shared by both logins: throttle, look up, check password and active flag."""
    status = check_rate_limit(email)
    if not status.allowed:
        current_app.logger.warning("[auth] login locked out for %s", email)
        raise RateLimited(
            f"Too many failed attempts. Please wait {status.lockout_minutes} minutes.",
            lockoutMinutes=status.lockout_minutes,
        )

    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        record_login_attempt(email, False)
        remaining = status.remaining_attempts - 1 if status.remaining_attempts else None
        raise InvalidCredentials("Invalid email or password", remainingAttempts=remaining)

    if not user.is_active:
        record_login_attempt(email, False)
        raise InvalidCredentials("This account has been disabled. Please contact support.")
    return user


def _login_response(user: User, token_type: str, cookie: str):
    token = issue_token(user.id, user.email, user.role, token_type)
    resp = jsonify(ok=True, message="Login successful", user=user.to_dict(), token=token)
    set_token_cookie(resp, cookie, token)
    current_app.logger.info("[auth] %s login user id=%s", token_type, user.id)
    return resp


def _credentials():
    form = LoginForm.from_json(request.get_json(silent=True))
    if not form.validate():
        raise ValidationError("Email and password are required")
    return form.email.data.strip().lower(), form.password.data


@auth_bp.post("/login")
def login():
    email, password = _credentials()
    user = _authenticate(email, password)
    if user.is_admin:
        raise Forbidden("Admin accounts must sign in through the admin login")
    record_login_attempt(email, True)
    return _login_response(user, "user", USER_COOKIE)


@auth_bp.post("/admin-login")
def admin_login():
    email, password = _credentials()
    user = _authenticate(email, password)
    if not user.is_admin:
        raise Forbidden("Admin access required")
    record_login_attempt(email, True)
    return _login_response(user, "admin", ADMIN_COOKIE)


def _logout(*cookies):
    # only the session this route owns; a second session in the same browser stays live
    token = extract_token(cookies=cookies)
    if token:
        payload = validate_token(token)
        revoke_token(token)
        current_app.logger.info("[auth] logout user id=%s", payload.get("userId") if payload else None)
    resp = jsonify(ok=True, message="Logged out")
    clear_token_cookies(resp, *cookies)
    return apply_security_headers(resp, no_store=True)


@auth_bp.post("/logout")
def logout():
    return _logout(USER_COOKIE, LEGACY_COOKIE)


@auth_bp.post("/admin-logout")
def admin_logout():
    return _logout(ADMIN_COOKIE)


@auth_bp.get("/me")
@login_required
def me():
    user = db.session.get(User, g.identity.user_id)
    if user is None or not user.is_active:
        raise AuthenticationRequired("Authentication required")
    return jsonify(ok=True, user=user.to_dict())
