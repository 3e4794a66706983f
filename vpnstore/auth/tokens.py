# vpnstore/auth/tokens.py
"""
Password hashing, signed session tokens and login throttling.

Rate-limit counters and the revocation list are held in process memory behind a
lock. Each worker process keeps its own copy and a restart clears both. Running
several processes needs a shared store that implements the same four calls
(check_rate_limit, record_attempt, revoke, is_revoked).
"""
from __future__ import annotations

import logging
import math
import secrets
import threading
import time
from typing import Callable, NamedTuple

import jwt
from flask import current_app
from werkzeug.security import check_password_hash, generate_password_hash

log = logging.getLogger(__name__)

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ("userId", "email", "role")
TOKEN_TYPES = ("user", "admin")

# werkzeug's salted scrypt (N=2**15, r=8, p=1)
PASSWORD_METHOD = "scrypt"


# ---- passwords --------------------------------------------------------------
def hash_password(plaintext: str) -> str:
    if not plaintext:
        raise ValueError("password is required")
    return generate_password_hash(plaintext, method=PASSWORD_METHOD)


def verify_password(plaintext: str, pw_hash: str | None) -> bool:
    if not plaintext or not pw_hash:
        return False
    try:
        return check_password_hash(pw_hash, plaintext)
    except (ValueError, TypeError):
        # malformed / tampered hash string
        return False


# ---- throttling + revocation ------------------------------------------------
class RateLimitStatus(NamedTuple):
    allowed: bool
    remaining_attempts: int | None = None
    lockout_minutes: int | None = None


def _norm_identifier(identifier: str | None) -> str:
    return (identifier or "").strip().lower()


class InMemoryAuthState:
    def __init__(self, max_attempts: int = 5, lockout_seconds: int = 15 * 60,
                 clock: Callable[[], float] = time.time):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self.clock = clock
        self._lock = threading.Lock()
        self._attempts: dict[str, list] = {}     # identifier -> [failures, last_failure_ts]
        self._revoked: dict[str, float] = {}     # token -> expiry ts (for pruning)

    def check_rate_limit(self, identifier: str) -> RateLimitStatus:
        key = _norm_identifier(identifier)
        now = self.clock()
        with self._lock:
            entry = self._attempts.get(key)
            if entry is None:
                return RateLimitStatus(True, self.max_attempts)

            failures, last = entry
            if now - last > self.lockout_seconds:
                del self._attempts[key]
                return RateLimitStatus(True, self.max_attempts)

            if failures >= self.max_attempts:
                remaining = self.lockout_seconds - (now - last)
                return RateLimitStatus(False, 0, max(1, math.ceil(remaining / 60)))

            return RateLimitStatus(True, self.max_attempts - failures)

    def record_attempt(self, identifier: str, success: bool) -> None:
        key = _norm_identifier(identifier)
        now = self.clock()
        with self._lock:
            if success:
                self._attempts.pop(key, None)
                return
            entry = self._attempts.get(key)
            if entry is None or now - entry[1] > self.lockout_seconds:
                entry = [0, now]
            entry[0] += 1
            entry[1] = now
            self._attempts[key] = entry

    def revoke(self, token: str, expires_at: float | None = None) -> None:
        if not token:
            return
        now = self.clock()
        with self._lock:
            # drop entries that would fail expiry checks anyway
            for t in [t for t, exp in self._revoked.items() if exp < now]:
                del self._revoked[t]
            self._revoked[token] = expires_at if expires_at is not None else now + 7 * 24 * 3600

    def is_revoked(self, token: str) -> bool:
        with self._lock:
            return token in self._revoked

    def reset(self) -> None:
        with self._lock:
            self._attempts.clear()
            self._revoked.clear()


# ---- tokens -----------------------------------------------------------------
class TokenService:
    def __init__(self, secret: str, state: InMemoryAuthState, *, lifetime: int = 24 * 60 * 60,
                 leeway: int = 30, issuer: str | None = None, audience: str | None = None):
        if not secret:
            raise ValueError("a signing secret is required")
        self._secret = secret
        self.state = state
        self.lifetime = lifetime
        self.leeway = leeway
        self.issuer = issuer
        self.audience = audience

    def now(self) -> float:
        return self.state.clock()

    def issue(self, user_id, email: str, role: str, token_type: str = "user") -> str:
        if token_type not in TOKEN_TYPES:
            raise ValueError(f"unknown token type {token_type!r}")
        issued_at = int(self.now())
        claims = {
            "userId": user_id,
            "email": email,
            "role": role,
            "type": token_type,
            "sessionId": secrets.token_hex(16),
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        if self.issuer:
            claims["iss"] = self.issuer
        if self.audience:
            claims["aud"] = self.audience
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def validate(self, token: str | None) -> dict | None:
        """Return the claims, or None. Callers never learn why a token failed."""
        if not token:
            return None
        if self.state.is_revoked(token):
            log.info("token rejected: revoked")
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                # expiry is checked below against our own clock
                options={"verify_exp": False, "verify_iat": False, "require": ["exp", "iat"]},
            )
        except jwt.InvalidTokenError as e:
            log.info("token rejected: %s", e.__class__.__name__)
            return None

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or exp + self.leeway < self.now():
            log.info("token rejected: expired")
            return None
        if any(not payload.get(k) for k in REQUIRED_CLAIMS):
            log.info("token rejected: missing required claims")
            return None
        return payload

    def revoke(self, token: str | None) -> None:
        if not token:
            return
        expires_at = None
        try:
            unverified = jwt.decode(token, options={"verify_signature": False})
            exp = unverified.get("exp")
            if isinstance(exp, (int, float)):
                expires_at = float(exp) + self.leeway
        except jwt.InvalidTokenError:
            pass
        self.state.revoke(token, expires_at)


# ---- app wiring -------------------------------------------------------------
_STATE_KEY = "vpnstore.auth_state"
_TOKENS_KEY = "vpnstore.tokens"


def init_app(app, clock: Callable[[], float] | None = None) -> None:
    from config import DEV_JWT_SECRET

    secret = app.config.get("JWT_SECRET") or DEV_JWT_SECRET
    if secret == DEV_JWT_SECRET:
        if app.config.get("IS_PRODUCTION"):
            raise RuntimeError("JWT_SECRET must be set in production.")
        app.logger.warning("JWT_SECRET not set; using the development fallback key.")

    state = InMemoryAuthState(
        max_attempts=int(app.config.get("LOGIN_MAX_ATTEMPTS", 5)),
        lockout_seconds=int(app.config.get("LOGIN_LOCKOUT_SECONDS", 15 * 60)),
        clock=clock or time.time,
    )
    app.extensions[_STATE_KEY] = state
    app.extensions[_TOKENS_KEY] = TokenService(
        secret,
        state,
        lifetime=int(app.config.get("TOKEN_LIFETIME_SECONDS", 24 * 60 * 60)),
        leeway=int(app.config.get("TOKEN_LEEWAY_SECONDS", 30)),
        issuer=app.config.get("JWT_ISSUER"),
        audience=app.config.get("JWT_AUDIENCE"),
    )


def get_auth_state() -> InMemoryAuthState:
    return current_app.extensions[_STATE_KEY]


def get_token_service() -> TokenService:
    return current_app.extensions[_TOKENS_KEY]


def issue_token(user_id, email: str, role: str, token_type: str = "user") -> str:
    return get_token_service().issue(user_id, email, role, token_type)


def validate_token(token: str | None) -> dict | None:
    return get_token_service().validate(token)


def revoke_token(token: str | None) -> None:
    get_token_service().revoke(token)


def check_rate_limit(identifier: str) -> RateLimitStatus:
    return get_auth_state().check_rate_limit(identifier)


def record_login_attempt(identifier: str, success: bool) -> None:
    get_auth_state().record_attempt(identifier, success)
