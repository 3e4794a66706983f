# vpnstore/services/users.py
import logging
import math

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from vpnstore.errors import Conflict, Forbidden, NotFound, ValidationError
from vpnstore.extensions import db
from vpnstore.models import Order, User
from vpnstore.services.catalog import clamp_page

log = logging.getLogger(__name__)

MIN_PASSWORD = 6


def get_user(user_id) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def change_password(user: User, current_password: str, new_password: str) -> None:
    if not user.check_password(current_password or ""):
        raise ValidationError("Current password is incorrect")
    set_password(user, new_password)


def set_password(user: User, new_password: str) -> None:
    if not new_password or len(new_password) < MIN_PASSWORD:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD} characters")
    user.set_password(new_password)
    db.session.commit()
    log.info("users: password changed for id=%s", user.id)


def list_users(page=1, limit=20, search=None, role=None) -> dict:
    page, limit = clamp_page(page, limit, default_limit=20)
    q = User.query
    if role in ("user", "admin"):
        q = q.filter(User.role == role)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(or_(func.lower(User.email).like(like), func.lower(User.name).like(like)))
    total = q.count()
    rows = q.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()

    counts = dict(
        db.session.query(Order.user_id, func.count(Order.id))
        .filter(Order.user_id.in_([u.id for u in rows]))
        .group_by(Order.user_id)
        .all()
    ) if rows else {}

    users = []
    for u in rows:
        d = u.to_dict()
        d["orderCount"] = counts.get(u.id, 0)
        users.append(d)
    return {
        "users": users,
        "total": total,
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if total else 0,
    }


def update_user(user_id, changes: dict) -> User:
    user = get_user(user_id)
    for attr in ("name", "email", "role", "is_active"):
        if changes.get(attr) is not None:
            setattr(user, attr, changes[attr])
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("An account with this email already exists")
    log.info("users: updated id=%s fields=%s", user.id, sorted(k for k, v in changes.items() if v is not None))
    return user


def delete_user(user_id) -> None:
    user = get_user(user_id)
    if user.is_admin:
        raise Forbidden("Admin accounts cannot be deleted")
    if Order.query.filter_by(user_id=user.id).count():
        raise Conflict("User has orders; deactivate the account instead")
    db.session.delete(user)
    db.session.commit()
    log.info("users: deleted id=%s", user_id)
