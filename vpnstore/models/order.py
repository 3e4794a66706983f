# vpnstore/models/order.py
from datetime import datetime

from vpnstore.extensions import db
from vpnstore.utils.dates import iso

ORDER_STATUSES = ("pending_payment", "payment_submitted", "verified", "completed", "cancelled")
PAYMENT_STATUSES = ("pending_verification", "verified", "rejected")


class Order(db.Model):
    """
    A customer's purchase. Line items are copied by value at checkout, so later
    product edits never touch historical orders.
    """
    __tablename__ = "store_order"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    items = db.Column(db.JSON, nullable=False, default=list)
    total = db.Column(db.Float, nullable=False)
    status = db.Column(db.String(30), nullable=False, default="pending_payment", index=True)
    # at most one payment per order; the payment row also carries a unique order_id
    payment_id = db.Column(db.Integer, unique=True, nullable=True)
    order_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    completed_at = db.Column(db.DateTime, nullable=True)

    # delivered VPN credentials
    vpn_username = db.Column(db.String(255))
    vpn_password = db.Column(db.String(255))
    vpn_server_info = db.Column(db.Text)
    vpn_expiry_date = db.Column(db.DateTime)
    vpn_delivered_at = db.Column(db.DateTime)
    vpn_delivered_by = db.Column(db.String(64))

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending_payment', 'payment_submitted', 'verified', 'completed', 'cancelled')",
            name="ck_order_status",
        ),
    )

    user = db.relationship("User", back_populates="orders", lazy="joined")
    payment = db.relationship(
        "Payment",
        primaryjoin="foreign(Order.payment_id) == Payment.id",
        uselist=False,
        viewonly=True,
        lazy="select",
    )

    @property
    def vpn_credentials(self) -> dict | None:
        if not self.vpn_username and not self.vpn_delivered_at:
            return None
        return {
            "username": self.vpn_username,
            "password": self.vpn_password,
            "serverInfo": self.vpn_server_info,
            "expiryDate": iso(self.vpn_expiry_date),
            "deliveredAt": iso(self.vpn_delivered_at),
            "deliveredBy": self.vpn_delivered_by,
        }

    def to_dict(self, with_payment: bool = False, with_user: bool = False) -> dict:
        out = {
            "id": self.id,
            "userId": self.user_id,
            "items": list(self.items or []),
            "total": self.total,
            "status": self.status,
            "paymentId": self.payment_id,
            "orderDate": iso(self.order_date),
            "completedAt": iso(self.completed_at),
            "vpnCredentials": self.vpn_credentials,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }
        if with_user and self.user is not None:
            out["user"] = {"id": self.user.id, "name": self.user.name, "email": self.user.email}
        if with_payment:
            out["payment"] = self.payment.to_dict() if self.payment is not None else None
        return out

    def __repr__(self):
        return f"<Order {self.id} user={self.user_id} status={self.status}>"


class Payment(db.Model):
    """A customer's claim of a manual transfer, waiting on an admin decision."""
    __tablename__ = "store_payment"
    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("store_order.id"), unique=True, nullable=False)
    user_id = db.Column(db.Integer, nullable=False, index=True)
    payment_method = db.Column(db.String(60), nullable=False)
    transaction_id = db.Column(db.String(120), unique=True, nullable=False)
    sender_name = db.Column(db.String(120), nullable=False)
    sender_phone = db.Column(db.String(40), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    payment_screenshot = db.Column(db.String(500))
    status = db.Column(db.String(30), nullable=False, default="pending_verification", index=True)
    submitted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    verified_at = db.Column(db.DateTime)
    verified_by = db.Column(db.String(64))
    rejection_reason = db.Column(db.Text)
    verification_notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.CheckConstraint(
            "status IN ('pending_verification', 'verified', 'rejected')",
            name="ck_payment_status",
        ),
    )

    order = db.relationship("Order", foreign_keys=[order_id], lazy="select")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "orderId": self.order_id,
            "userId": self.user_id,
            "paymentMethod": self.payment_method,
            "transactionId": self.transaction_id,
            "senderName": self.sender_name,
            "senderPhone": self.sender_phone,
            "amount": self.amount,
            "paymentScreenshot": self.payment_screenshot,
            "status": self.status,
            "submittedAt": iso(self.submitted_at),
            "verifiedAt": iso(self.verified_at),
            "verifiedBy": self.verified_by,
            "rejectionReason": self.rejection_reason,
            "verificationNotes": self.verification_notes,
        }

    def __repr__(self):
        return f"<Payment {self.id} order={self.order_id} tx={self.transaction_id} status={self.status}>"
