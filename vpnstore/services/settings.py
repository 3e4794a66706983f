# vpnstore/services/settings.py
"""
Settings repository. The store keeps one row of site configuration; callers
always go through here and always read it fresh from the database.
"""
import copy
import logging

from sqlalchemy.exc import IntegrityError

from vpnstore.extensions import db
from vpnstore.models import Settings
from vpnstore.models.settings import CONTENT_FIELDS, DEFAULT_PAYMENT_METHODS

log = logging.getLogger(__name__)

PUBLIC_FIELDS = (
    "siteName", "siteDescription", "contactEmail", "contactPhone",
    "promoBannerText", "promoBannerEnabled", "maintenanceMode",
    "heroTitle", "heroSubtitle", "featuresTitle", "featuresSubtitle",
    "productsTitle", "productsSubtitle", "testimonialsTitle", "testimonialsSubtitle",
    "aboutUsText", "termsOfServiceText", "privacyPolicyText", "refundPolicyText",
    "faqContent", "footerText", "socialLinks",
)


SETTINGS_ID = 1


def _current() -> Settings | None:
    return db.session.get(Settings, SETTINGS_ID)


def get_settings() -> Settings:
    row = _current()
    if row is None:
        row = Settings(id=SETTINGS_ID, payment_methods=copy.deepcopy(DEFAULT_PAYMENT_METHODS), social_links={})
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError:
            # another request created the row first
            db.session.rollback()
            log.info("settings: default row already created, reloading")
            return db.session.get(Settings, SETTINGS_ID)
        log.info("settings: created default settings row id=%s", row.id)
    return row


def update_settings(changes: dict) -> Settings:
    """Apply a partial update. ``changes`` uses attribute names (snake_case)."""
    row = get_settings()
    for attr, value in changes.items():
        if attr == "payment_methods":
            row.payment_methods = [dict(m) for m in (value or [])]
        elif attr == "social_links":
            row.social_links = dict(value or {})
        elif attr in CONTENT_FIELDS:
            setattr(row, attr, value)
        else:
            log.warning("settings: ignoring unknown field %s", attr)
    db.session.commit()
    log.info("settings: updated fields=%s", sorted(changes))
    return row


def public_settings() -> dict:
    full = get_settings().to_dict()
    out = {k: full.get(k) for k in PUBLIC_FIELDS}
    out["paymentMethods"] = payment_directory()
    return out


def payment_directory() -> list[dict]:
    """Active payment methods, without account numbers."""
    methods = get_settings().payment_methods or []
    return [
        {"id": m.get("id"), "name": m.get("name"), "logo": m.get("logo", "")}
        for m in methods
        if m.get("isActive", True)
    ]


def payment_method_details() -> list[dict]:
    """Active methods including account details, for customers paying an order."""
    return [dict(m) for m in (get_settings().payment_methods or []) if m.get("isActive", True)]


def is_maintenance_mode() -> bool:
    row = _current()
    return bool(row.maintenance_mode) if row is not None else False
