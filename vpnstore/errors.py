# vpnstore/errors.py
from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

from vpnstore.extensions import db


class StoreError(Exception):
    """Base for every error the API reports with a machine-checkable kind."""

    kind = "internal"
    status_code = 500

    def __init__(self, message: str = "", **extra):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"ok": False, "error": self.kind, "message": self.message}
        body.update({k: v for k, v in self.extra.items() if v is not None})
        return body


class ValidationError(StoreError):
    kind = "validation_error"
    status_code = 400


class AuthenticationRequired(StoreError):
    kind = "authentication_required"
    status_code = 401


class InvalidCredentials(AuthenticationRequired):
    pass


class AdminAccessRequired(StoreError):
    kind = "admin_access_required"
    status_code = 403


class Forbidden(StoreError):
    kind = "forbidden"
    status_code = 403


class NotFound(StoreError):
    kind = "not_found"
    status_code = 404


class Conflict(StoreError):
    kind = "conflict"
    status_code = 409


class DuplicateTransaction(Conflict):
    status_code = 400

    def __init__(self, message="Transaction ID already exists. Please use a unique transaction ID.", **extra):
        extra.setdefault("reason", "duplicate_transaction")
        super().__init__(message, **extra)


class PaymentAlreadySubmitted(Conflict):
    status_code = 400

    def __init__(self, message="Payment already submitted for this order", **extra):
        extra.setdefault("reason", "payment_exists")
        super().__init__(message, **extra)


class PreconditionFailed(StoreError):
    kind = "precondition_failed"
    status_code = 400


class RateLimited(StoreError):
    kind = "rate_limited"
    status_code = 429


class Internal(StoreError):
    kind = "internal"
    status_code = 500


def register_error_handlers(app):
    @app.errorhandler(StoreError)
    def _store_error(err: StoreError):
        if err.status_code >= 500:
            current_app.logger.error("[%s] %s", err.kind, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(HTTPException)
    def _http_error(err: HTTPException):
        if not request.path.startswith("/api"):
            return err
        body = {"ok": False, "error": (err.name or "error").lower().replace(" ", "_"),
                "message": err.description}
        return jsonify(body), err.code

    @app.errorhandler(Exception)
    def _unexpected(err: Exception):
        db.session.rollback()
        current_app.logger.exception("unhandled error on %s %s: %s", request.method, request.path, err)
        return jsonify(Internal("Internal server error").to_dict()), 500
