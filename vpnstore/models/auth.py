# vpnstore/models/auth.py
from datetime import datetime

from vpnstore.extensions import db
from vpnstore.utils.dates import iso

ROLES = ("user", "admin")


class User(db.Model):
    __tablename__ = "user"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(320), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default="user")
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'admin')", name="ck_user_role"),
    )

    orders = db.relationship("Order", back_populates="user", lazy="select")

    @property
    def is_admin(self) -> bool:
        return (self.role or "").lower() == "admin"

    def set_password(self, password: str) -> None:
        from vpnstore.auth.tokens import hash_password
        self.password_hash = hash_password(password)

    def check_password(self, password: str) -> bool:
        from vpnstore.auth.tokens import verify_password
        return verify_password(password, self.password_hash)

    def to_dict(self) -> dict:
        # never expose password_hash
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "isActive": bool(self.is_active),
            "createdAt": iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.id} {self.email} role={self.role}>"
