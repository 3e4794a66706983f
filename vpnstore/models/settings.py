# vpnstore/models/settings.py
from datetime import datetime

from vpnstore.extensions import db
from vpnstore.utils.dates import iso

DEFAULT_PAYMENT_METHODS = [
    {"id": "kpay", "name": "KBZ Pay", "logo": "💳", "number": "09123456789",
     "accountName": "VPN Key Store", "phoneNumber": "09123456789", "isActive": True},
    {"id": "wavepay", "name": "Wave Pay", "logo": "🌊", "number": "09987654321",
     "accountName": "VPN Key Store", "phoneNumber": "09987654321", "isActive": True},
    {"id": "ayapay", "name": "AYA Pay", "logo": "🏦", "number": "09456789123",
     "accountName": "VPN Key Store", "phoneNumber": "09456789123", "isActive": True},
    {"id": "cbpay", "name": "CB Pay", "logo": "💰", "number": "09789123456",
     "accountName": "VPN Key Store", "phoneNumber": "09789123456", "isActive": True},
]

DEFAULT_PROMO_BANNER = "Buy 1 Year Plan - Get 1 Month Free. Limited Time Offer!"

# python attribute -> wire key, for the plain text/bool fields
CONTENT_FIELDS = {
    "site_name": "siteName",
    "site_description": "siteDescription",
    "contact_email": "contactEmail",
    "contact_phone": "contactPhone",
    "promo_banner_text": "promoBannerText",
    "promo_banner_enabled": "promoBannerEnabled",
    "maintenance_mode": "maintenanceMode",
    "hero_title": "heroTitle",
    "hero_subtitle": "heroSubtitle",
    "features_title": "featuresTitle",
    "features_subtitle": "featuresSubtitle",
    "products_title": "productsTitle",
    "products_subtitle": "productsSubtitle",
    "testimonials_title": "testimonialsTitle",
    "testimonials_subtitle": "testimonialsSubtitle",
    "about_us_text": "aboutUsText",
    "terms_of_service_text": "termsOfServiceText",
    "privacy_policy_text": "privacyPolicyText",
    "refund_policy_text": "refundPolicyText",
    "faq_content": "faqContent",
    "footer_text": "footerText",
}


class Settings(db.Model):
    """Single-row site configuration. Absence means defaults; see services.settings."""
    __tablename__ = "store_settings"
    id = db.Column(db.Integer, primary_key=True)
    payment_methods = db.Column(db.JSON, nullable=False, default=list)
    site_name = db.Column(db.String(200), default="VPN Key Store")
    site_description = db.Column(db.String(500), default="Premium VPN Services")
    contact_email = db.Column(db.String(320), default="support@vpnstore.local")
    contact_phone = db.Column(db.String(40), default="09123456789")
    promo_banner_text = db.Column(db.Text, default=DEFAULT_PROMO_BANNER)
    promo_banner_enabled = db.Column(db.Boolean, nullable=False, default=True)
    maintenance_mode = db.Column(db.Boolean, nullable=False, default=False)
    hero_title = db.Column(db.String(300))
    hero_subtitle = db.Column(db.String(500))
    features_title = db.Column(db.String(300))
    features_subtitle = db.Column(db.String(500))
    products_title = db.Column(db.String(300))
    products_subtitle = db.Column(db.String(500))
    testimonials_title = db.Column(db.String(300))
    testimonials_subtitle = db.Column(db.String(500))
    about_us_text = db.Column(db.Text)
    terms_of_service_text = db.Column(db.Text)
    privacy_policy_text = db.Column(db.Text)
    refund_policy_text = db.Column(db.Text)
    faq_content = db.Column(db.Text)
    footer_text = db.Column(db.Text)
    social_links = db.Column(db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self) -> dict:
        out = {wire: getattr(self, attr) for attr, wire in CONTENT_FIELDS.items()}
        out["paymentMethods"] = list(self.payment_methods or [])
        out["socialLinks"] = dict(self.social_links or {})
        out["updatedAt"] = iso(self.updated_at)
        return out
