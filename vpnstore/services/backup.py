# vpnstore/services/backup.py
"""
JSON snapshots of the store and the "clear everything but the admins" reset.

A snapshot is a single file ``backup-<UTC timestamp>.json`` under BACKUP_DIR:

    {"timestamp": ..., "version": "1.0",
     "data": {"orders": [...], "users": [...], "products": [...],
              "payments": [...], "settings": [...]},
     "stats": {"totalOrders": n, ...}}

Password hashes are never written out.
"""
import json
import logging
from pathlib import Path

from flask import current_app

from vpnstore.extensions import db
from vpnstore.models import Order, Payment, Product, Settings, User
from vpnstore.utils.dates import iso, utcnow

log = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
CLEAR_CONFIRMATION = "CLEAR"


def _backup_dir() -> Path:
    path = Path(current_app.config["BACKUP_DIR"])
    path.mkdir(parents=True, exist_ok=True)
    return path


def snapshot() -> dict:
    orders = [o.to_dict(with_user=True) for o in Order.query.order_by(Order.id).all()]
    users = [u.to_dict() for u in User.query.order_by(User.id).all()]
    products = [p.to_dict() for p in Product.query.order_by(Product.id).all()]
    payments = [p.to_dict() for p in Payment.query.order_by(Payment.id).all()]
    settings = [s.to_dict() for s in Settings.query.order_by(Settings.id).all()]
    return {
        "timestamp": iso(utcnow()),
        "version": BACKUP_VERSION,
        "data": {
            "orders": orders,
            "users": users,
            "products": products,
            "payments": payments,
            "settings": settings,
        },
        "stats": {
            "totalOrders": len(orders),
            "totalUsers": len(users),
            "totalProducts": len(products),
            "totalPayments": len(payments),
        },
    }


def create_backup() -> dict:
    data = snapshot()
    stamp = utcnow().strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    filename = f"backup-{stamp}.json"
    path = _backup_dir() / filename
    with path.open("w", encoding="utf-8") as fh:
        json.dump(data, fh, ensure_ascii=False, indent=2)
    log.info("backup: wrote %s (%s)", path, data["stats"])
    return {"filename": filename, "timestamp": data["timestamp"], "stats": data["stats"]}


def list_backups() -> dict:
    directory = Path(current_app.config["BACKUP_DIR"])
    if not directory.is_dir():
        return {"backups": [], "totalBackups": 0}
    backups = []
    for f in directory.glob("backup-*.json"):
        st = f.stat()
        backups.append({"filename": f.name, "size": st.st_size, "modified": st.st_mtime})
    backups.sort(key=lambda b: b["modified"], reverse=True)
    return {"backups": backups, "totalBackups": len(backups)}


def database_counts() -> dict:
    return {
        "orders": Order.query.count(),
        "users": User.query.filter(User.role != "admin").count(),
        "products": Product.query.count(),
        "payments": Payment.query.count(),
    }


def clear_database(actor: str | None = None) -> dict:
    """Delete orders, payments, products and non-admin users. Settings stay."""
    try:
        counts = {
            "payments": Payment.query.delete(synchronize_session=False),
            "orders": Order.query.delete(synchronize_session=False),
            "products": Product.query.delete(synchronize_session=False),
            "users": User.query.filter(User.role != "admin").delete(synchronize_session=False),
        }
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    db.session.expire_all()
    log.warning("backup: database cleared by %s deleted=%s", actor or "cli", counts)
    return counts
