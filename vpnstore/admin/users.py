# vpnstore/admin/users.py
from flask import current_app, g, jsonify, request

from vpnstore.admin import admin_bp
from vpnstore.errors import Forbidden
from vpnstore.schemas import PasswordReset, UserPatch, changed_fields, parse
from vpnstore.services import orders, users


@admin_bp.get("/users")
def list_users():
    args = request.args
    return jsonify(ok=True, **users.list_users(
        page=args.get("page", 1), limit=args.get("limit", 20),
        search=args.get("search"), role=args.get("role"),
    ))


@admin_bp.get("/users/<int:user_id>")
def user_detail(user_id):
    user = users.get_user(user_id)
    history = orders.user_orders(user.id, page=1, limit=10)
    return jsonify(ok=True, user=user.to_dict(), orders=history["orders"], stats=history["stats"])


@admin_bp.put("/users/<int:user_id>")
def update_user(user_id):
    body = parse(UserPatch, request.get_json(silent=True))
    changes = changed_fields(body)
    if user_id == g.identity.user_id and (changes.get("role") == "user" or changes.get("is_active") is False):
        raise Forbidden("You cannot demote or deactivate your own account")
    user = users.update_user(user_id, changes)
    return jsonify(ok=True, message="User updated", user=user.to_dict())


@admin_bp.delete("/users/<int:user_id>")
def delete_user(user_id):
    users.delete_user(user_id)
    current_app.logger.info("[admin] user %s deleted by admin=%s", user_id, g.identity.user_id)
    return jsonify(ok=True, message="User deleted")


@admin_bp.put("/users/<int:user_id>/password")
def reset_user_password(user_id):
    body = parse(PasswordReset, request.get_json(silent=True))
    users.set_password(users.get_user(user_id), body.new_password)
    return jsonify(ok=True, message="Password updated")
