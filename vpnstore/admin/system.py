# vpnstore/admin/system.py
from flask import current_app, g, jsonify, request

from vpnstore.admin import admin_bp
from vpnstore.auth.forms import PasswordChangeForm
from vpnstore.errors import AuthenticationRequired, NotFound, ValidationError
from vpnstore.schemas import ClearDatabase, SettingsPatch, changed_fields, parse
from vpnstore.services import backup, dashboard, settings, users
from vpnstore.services.backup import CLEAR_CONFIRMATION


@admin_bp.get("/verify")
def verify():
    ident = g.identity
    return jsonify(ok=True, user={"id": ident.user_id, "email": ident.email, "role": ident.role,
                                  "tokenType": ident.token_type})


@admin_bp.get("/dashboard")
def dashboard_view():
    return jsonify(ok=True, **dashboard.dashboard())


@admin_bp.put("/change-password")
def change_password():
    form = PasswordChangeForm.from_json(request.get_json(silent=True))
    if not form.validate():
        raise ValidationError(form.first_error())
    try:
        user = users.get_user(g.identity.user_id)
    except NotFound:
        raise AuthenticationRequired("Authentication required")
    users.change_password(user, form.current_password.data, form.new_password.data)
    return jsonify(ok=True, message="Password changed successfully")


@admin_bp.get("/settings")
def get_settings():
    return jsonify(ok=True, settings=settings.get_settings().to_dict())


@admin_bp.put("/settings")
def update_settings():
    body = parse(SettingsPatch, request.get_json(silent=True))
    changes = changed_fields(body)
    row = settings.update_settings(changes)
    if "maintenance_mode" in changes:
        current_app.logger.warning("[admin] maintenance mode set to %s by admin=%s",
                                   row.maintenance_mode, g.identity.user_id)
    return jsonify(ok=True, message="Settings updated", settings=row.to_dict())


@admin_bp.get("/backup")
def list_backups():
    return jsonify(ok=True, **backup.list_backups())


@admin_bp.post("/backup")
def create_backup():
    result = backup.create_backup()
    return jsonify(ok=True, message="Backup created successfully", **result)


@admin_bp.get("/clear-database")
def clear_database_preview():
    return jsonify(ok=True, currentCounts=backup.database_counts(),
                   warning="This operation will permanently delete all data except admin accounts")


@admin_bp.post("/clear-database")
def clear_database():
    body = parse(ClearDatabase, request.get_json(silent=True))
    if body.confirmation != CLEAR_CONFIRMATION:
        raise ValidationError(f'Confirmation required. Please type "{CLEAR_CONFIRMATION}" to confirm.')
    counts = backup.clear_database(actor=f"admin={g.identity.user_id}")
    return jsonify(ok=True, message="Database cleared successfully", deletedCounts=counts,
                   clearedBy=g.identity.user_id)
