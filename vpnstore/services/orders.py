# vpnstore/services/orders.py
"""
Order / payment lifecycle.

    pending_payment --submit--> payment_submitted --accept--> verified --deliver--> completed
                                                 +--reject--> cancelled

The payment row moves pending_verification -> verified | rejected alongside it.
Every function takes the acting Identity; route code has already checked that
admin-only calls come from an admin.
"""
import logging
import math
from datetime import timezone

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError

from vpnstore.errors import (
    AuthenticationRequired, DuplicateTransaction, Forbidden, NotFound,
    PaymentAlreadySubmitted, PreconditionFailed, ValidationError,
)
from vpnstore.extensions import db
from vpnstore.models import ORDER_STATUSES, PAYMENT_STATUSES, Order, Payment, User
from vpnstore.services.catalog import active_product, clamp_page
from vpnstore.utils.dates import utcnow
from vpnstore.utils.mailer import send_order_confirmation_email, send_vpn_credentials_email

log = logging.getLogger(__name__)

DEFAULT_SERVER_INFO = "VPN Server Details"
TOTAL_TOLERANCE = 0.01


def _get_order(order_id) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def _transaction_taken(tx: str) -> bool:
    return Payment.query.filter_by(transaction_id=tx).first() is not None


def _actor(identity) -> str:
    return str(identity.user_id)


# ---------------------------------------------------------------------------
# Customer side
# ---------------------------------------------------------------------------
def create_order(identity, items, user_id=None, total=None) -> Order:
    if user_id not in (None, "") and str(user_id) != str(identity.user_id):
        raise Forbidden("You can only create orders for your own account")

    owner = db.session.get(User, identity.user_id)
    if owner is None or not owner.is_active:
        raise AuthenticationRequired("Account not found or inactive")

    if not items:
        raise ValidationError("Order must contain at least one item")

    lines = []
    for raw in items:
        item = dict(raw)
        try:
            quantity = int(item.get("quantity", 1))
            price = float(item.get("price"))
        except (TypeError, ValueError):
            raise ValidationError("Each item needs a numeric price and quantity")
        if quantity < 1 or price < 0:
            raise ValidationError("Item quantity must be at least 1 and price cannot be negative")

        line = {
            "id": str(item.get("id")),
            "name": item.get("name"),
            "price": price,
            "duration": item.get("duration"),
            "quantity": quantity,
        }
        # copy by value from the catalog when the id names a live product
        product = active_product(line["id"])
        if product is not None:
            line.update(name=product.name, price=product.price, duration=product.duration)
        lines.append(line)

    computed = round(sum(line["price"] * line["quantity"] for line in lines), 2)
    if total is not None and abs(float(total) - computed) > TOTAL_TOLERANCE:
        raise ValidationError(f"Order total does not match items (expected {computed})")

    now = utcnow()
    order = Order(user_id=owner.id, items=lines, total=computed, status="pending_payment", order_date=now)
    db.session.add(order)
    db.session.commit()
    log.info("order: created id=%s user=%s total=%s items=%d", order.id, owner.id, computed, len(lines))
    return order


def submit_payment(identity, order_id, *, payment_method, transaction_id, sender_name, sender_phone,
                   amount=None, payment_screenshot=None) -> Payment:
    order = _get_order(order_id)
    # same answer as a missing order, so ids of other people's orders are not confirmed
    if order.user_id != identity.user_id:
        raise NotFound("Order not found")
    if order.payment_id is not None:
        raise PaymentAlreadySubmitted()
    if order.status != "pending_payment":
        raise PreconditionFailed(f"Order is {order.status}; payment can no longer be submitted")

    tx = (transaction_id or "").strip()
    if not tx:
        raise ValidationError("transactionId is required")
    if _transaction_taken(tx):
        raise DuplicateTransaction()

    now = utcnow()
    payment = Payment(
        order_id=order.id,
        user_id=identity.user_id,
        payment_method=payment_method,
        transaction_id=tx,
        sender_name=sender_name,
        sender_phone=sender_phone,
        amount=order.total if amount is None else float(amount),
        payment_screenshot=payment_screenshot,
        status="pending_verification",
        submitted_at=now,
    )

    # the unique constraints on transaction_id / order_id and the guarded UPDATE
    # decide concurrent submissions; the checks above only give nicer errors
    try:
        db.session.add(payment)
        db.session.flush()
        result = db.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.payment_id.is_(None), Order.status == "pending_payment")
            .values(payment_id=payment.id, status="payment_submitted", updated_at=now)
        )
        if result.rowcount != 1:
            db.session.rollback()
            raise PaymentAlreadySubmitted()
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if Payment.query.filter_by(transaction_id=tx).first() is not None:
            raise DuplicateTransaction()
        raise PaymentAlreadySubmitted()

    log.info("payment: submitted id=%s order=%s user=%s method=%s",
             payment.id, order.id, identity.user_id, payment_method)
    return payment


# ---------------------------------------------------------------------------
# Admin side
# ---------------------------------------------------------------------------
def _reviewable(order_id):
    order = _get_order(order_id)
    payment = order.payment
    if payment is None:
        raise PreconditionFailed("Order has no submitted payment")
    if order.status != "payment_submitted" or payment.status != "pending_verification":
        raise PreconditionFailed(f"Payment for an order in {order.status} cannot be reviewed")
    return order, payment


def accept_payment(identity, order_id, notes=None) -> Order:
    order, payment = _reviewable(order_id)
    now = utcnow()
    payment.status = "verified"
    payment.verified_at = now
    payment.verified_by = _actor(identity)
    if notes:
        payment.verification_notes = notes
    order.status = "verified"
    db.session.commit()
    log.info("payment: verified id=%s order=%s by admin=%s", payment.id, order.id, identity.user_id)

    if order.user is not None:
        try:
            send_order_confirmation_email(order.user.email, order)
        except Exception:
            log.exception("payment: confirmation email failed for order=%s", order.id)
    return order


def reject_payment(identity, order_id, reason=None) -> Order:
    order, payment = _reviewable(order_id)
    now = utcnow()
    payment.status = "rejected"
    payment.verified_at = now
    payment.verified_by = _actor(identity)
    payment.rejection_reason = reason or None
    order.status = "cancelled"
    db.session.commit()
    log.info("payment: rejected id=%s order=%s by admin=%s", payment.id, order.id, identity.user_id)
    return order


def verify_payment(identity, payment_id, status, notes=None) -> Order:
    payment = db.session.get(Payment, payment_id)
    if payment is None:
        raise NotFound("Payment not found")
    if status == "approved":
        status = "verified"
    if status == "verified":
        return accept_payment(identity, payment.order_id, notes=notes)
    if status == "rejected":
        return reject_payment(identity, payment.order_id, reason=notes)
    raise ValidationError("status must be 'verified' or 'rejected'")


def deliver_credentials(identity, order_id, credentials: dict) -> Order:
    order = _get_order(order_id)
    if order.status != "verified":
        raise PreconditionFailed("Credentials can only be delivered for verified orders")

    username = (credentials.get("username") or "").strip()
    password = credentials.get("password") or ""
    if not username or not password:
        raise ValidationError("VPN username and password are required")

    expiry = credentials.get("expiry_date")
    if expiry is not None and expiry.tzinfo is not None:
        expiry = expiry.astimezone(timezone.utc).replace(tzinfo=None)

    now = utcnow()
    order.vpn_username = username
    order.vpn_password = password
    order.vpn_server_info = credentials.get("server_info") or DEFAULT_SERVER_INFO
    order.vpn_expiry_date = expiry
    order.vpn_delivered_at = now
    order.vpn_delivered_by = _actor(identity)
    order.status = "completed"
    order.completed_at = now
    db.session.commit()
    log.info("order: delivered id=%s by admin=%s", order.id, identity.user_id)

    # the delivery is recorded; a failed notification does not undo it
    if order.user is not None:
        try:
            send_vpn_credentials_email(order.user.email, order)
        except Exception:
            log.exception("order: credentials email failed for order=%s", order.id)
    return order


def override_status(identity, order_id, status) -> Order:
    if status not in ORDER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ORDER_STATUSES)}")
    order = _get_order(order_id)
    previous = order.status
    order.status = status
    if status == "completed" and order.completed_at is None:
        order.completed_at = utcnow()
    db.session.commit()
    log.warning("[override] order=%s %s -> %s by admin=%s", order.id, previous, status, identity.user_id)
    return order


def delete_order(identity, order_id) -> None:
    order = _get_order(order_id)
    payment = Payment.query.filter_by(order_id=order.id).first()
    if payment is not None:
        db.session.delete(payment)
    db.session.delete(order)
    db.session.commit()
    log.info("order: deleted id=%s (payment=%s) by admin=%s",
             order_id, payment.id if payment else None, identity.user_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_order_for(identity, order_id) -> Order:
    order = db.session.get(Order, order_id)
    # other people's orders look exactly like missing ones
    if order is None or (not identity.is_admin and order.user_id != identity.user_id):
        raise NotFound("Order not found")
    return order


def _page_meta(total, page, limit):
    return {"total": total, "currentPage": page, "totalPages": math.ceil(total / limit) if total else 0}


def list_orders(page=1, limit=20, status=None, search=None) -> dict:
    page, limit = clamp_page(page, limit, default_limit=20)
    q = Order.query.join(User, Order.user_id == User.id)
    if status and status != "all":
        if status not in ORDER_STATUSES:
            raise ValidationError("Unknown order status")
        q = q.filter(Order.status == status)
    if search:
        like = f"%{search.strip().lower()}%"
        conds = [func.lower(User.email).like(like), func.lower(User.name).like(like)]
        if search.strip().isdigit():
            conds.append(Order.id == int(search.strip()))
        q = q.filter(or_(*conds))

    total = q.count()
    rows = q.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return {"orders": [o.to_dict(with_payment=True, with_user=True) for o in rows],
            **_page_meta(total, page, limit)}


def list_payments(page=1, limit=20, status=None, search=None) -> dict:
    page, limit = clamp_page(page, limit, default_limit=20)
    q = Payment.query
    if status and status != "all":
        if status == "approved":
            status = "verified"
        if status not in PAYMENT_STATUSES:
            raise ValidationError("Unknown payment status")
        q = q.filter(Payment.status == status)
    if search:
        like = f"%{search.strip().lower()}%"
        q = q.filter(or_(
            func.lower(Payment.transaction_id).like(like),
            func.lower(Payment.sender_name).like(like),
            Payment.sender_phone.like(like),
        ))

    total = q.count()
    rows = q.order_by(Payment.submitted_at.desc(), Payment.id.desc()).offset((page - 1) * limit).limit(limit).all()
    users = {u.id: u for u in User.query.filter(User.id.in_({p.user_id for p in rows})).all()} if rows else {}

    out = []
    for p in rows:
        d = p.to_dict()
        u = users.get(p.user_id)
        d["user"] = {"id": u.id, "name": u.name, "email": u.email} if u else None
        d["order"] = {"id": p.order.id, "total": p.order.total, "status": p.order.status} if p.order else None
        out.append(d)
    return {"payments": out, **_page_meta(total, page, limit)}


def user_orders(user_id, page=1, limit=10) -> dict:
    page, limit = clamp_page(page, limit, default_limit=10)
    q = Order.query.filter(Order.user_id == user_id)
    total = q.count()
    rows = q.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit).all()

    spent = (
        db.session.query(func.coalesce(func.sum(Order.total), 0.0))
        .filter(Order.user_id == user_id, Order.status != "cancelled")
        .scalar()
    )
    completed = Order.query.filter(Order.user_id == user_id, Order.status == "completed").count()
    return {
        "orders": [o.to_dict(with_payment=True) for o in rows],
        **_page_meta(total, page, limit),
        "stats": {"totalOrders": total, "totalSpent": float(spent or 0), "completedOrders": completed},
    }
