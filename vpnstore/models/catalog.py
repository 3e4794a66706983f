# vpnstore/models/catalog.py
from datetime import datetime

from vpnstore.extensions import db
from vpnstore.utils.dates import iso

CATEGORIES = ("Premium", "Standard")


class Product(db.Model):
    __tablename__ = "store_product"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    provider = db.Column(db.String(120), nullable=False)
    duration = db.Column(db.String(60), nullable=False)
    price = db.Column(db.Float, nullable=False)
    original_price = db.Column(db.Float, nullable=True)
    features = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(20), nullable=False, default="Standard")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    stock = db.Column(db.Integer, nullable=False, default=0)
    logo = db.Column(db.String(500), nullable=False, default="")
    rating = db.Column(db.Float, nullable=False, default=5)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("price >= 0", name="ck_product_price"),
        db.CheckConstraint("stock >= 0", name="ck_product_stock"),
        db.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_product_rating"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "duration": self.duration,
            "price": self.price,
            "originalPrice": self.original_price,
            "features": list(self.features or []),
            "category": self.category,
            "isActive": bool(self.is_active),
            "stock": self.stock,
            "logo": self.logo or "",
            "rating": self.rating,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
