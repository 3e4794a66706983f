# vpnstore/storefront/routes.py
import time
from pathlib import Path

from flask import Blueprint, current_app, g, jsonify, request, url_for
from werkzeug.utils import secure_filename

from vpnstore.auth.forms import PasswordChangeForm
from vpnstore.auth.guard import login_required
from vpnstore.errors import AuthenticationRequired, ValidationError
from vpnstore.extensions import db
from vpnstore.models import User
from vpnstore.schemas import OrderCreate, PaymentSubmit, parse
from vpnstore.services import catalog, orders, settings, users

storefront_bp = Blueprint("storefront_bp", __name__, url_prefix="/api")

PROOF_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
PROOF_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}


# ---------------------------------------------------------------------------
# Catalog + site settings (public)
# ---------------------------------------------------------------------------
@storefront_bp.get("/products")
def products():
    args = request.args
    return jsonify(ok=True, **catalog.list_products(
        page=args.get("page", 1),
        limit=args.get("limit", 12),
        category=args.get("category"),
        search=args.get("search"),
        sort_by=args.get("sortBy", "createdAt"),
        sort_order=args.get("sortOrder", "desc"),
    ))


@storefront_bp.get("/products/<int:product_id>")
def product_detail(product_id):
    return jsonify(ok=True, product=catalog.get_product(product_id).to_dict())


@storefront_bp.get("/settings")
def public_settings():
    return jsonify(ok=True, settings=settings.public_settings())


@storefront_bp.get("/payment-methods")
def payment_methods():
    return jsonify(ok=True, paymentMethods=settings.payment_directory())


# ---------------------------------------------------------------------------
# Orders + payments
# ---------------------------------------------------------------------------
@storefront_bp.post("/orders")
@login_required
def create_order():
    body = parse(OrderCreate, request.get_json(silent=True))
    order = orders.create_order(
        g.identity,
        [item.model_dump() for item in body.items],
        user_id=body.user_id,
        total=body.total,
    )
    return jsonify(ok=True, message="Order created successfully", orderId=order.id, order=order.to_dict()), 201


@storefront_bp.get("/orders/<int:order_id>")
@login_required
def order_detail(order_id):
    order = orders.get_order_for(g.identity, order_id)
    return jsonify(ok=True, order=order.to_dict(with_payment=True))


@storefront_bp.get("/orders/<int:order_id>/payment-methods")
@login_required
def order_payment_methods(order_id):
    # owners see full account details so they can make the transfer
    order = orders.get_order_for(g.identity, order_id)
    return jsonify(ok=True, orderId=order.id, total=order.total,
                   paymentMethods=settings.payment_method_details())


@storefront_bp.post("/payment/submit")
@login_required
def submit_payment():
    body = parse(PaymentSubmit, request.get_json(silent=True))
    payment = orders.submit_payment(
        g.identity,
        body.order_id,
        payment_method=body.payment_method,
        transaction_id=body.transaction_id,
        sender_name=body.sender_name,
        sender_phone=body.sender_phone,
        amount=body.amount,
        payment_screenshot=body.payment_screenshot,
    )
    return jsonify(ok=True, message="Payment submitted successfully",
                   paymentId=payment.id, payment=payment.to_dict()), 201


@storefront_bp.post("/upload/payment-proof")
@login_required
def upload_payment_proof():
    f = request.files.get("file")
    if f is None or not f.filename:
        raise ValidationError("No file selected")

    ext = Path(f.filename).suffix.lower()
    if (f.mimetype or "").lower() not in PROOF_TYPES or ext not in PROOF_EXTENSIONS:
        raise ValidationError("Only image files can be uploaded (JPG, PNG, WebP)")

    max_bytes = int(current_app.config.get("MAX_PROOF_BYTES", 5 * 1024 * 1024))
    data = f.stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValidationError(f"File must be {max_bytes // (1024 * 1024)}MB or smaller")

    folder = Path(current_app.config["UPLOAD_FOLDER"])
    folder.mkdir(parents=True, exist_ok=True)
    filename = f"payment-proof-{int(time.time() * 1000)}-{secure_filename(f.filename) or 'proof' + ext}"
    (folder / filename).write_bytes(data)

    current_app.logger.info("[upload] user=%s stored %s (%d bytes)", g.identity.user_id, filename, len(data))
    return jsonify(ok=True, message="File uploaded successfully", filename=filename,
                   fileUrl=url_for("admin_bp.payment_proof", filename=filename))


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
def _me() -> User:
    user = db.session.get(User, g.identity.user_id)
    if user is None or not user.is_active:
        raise AuthenticationRequired("Authentication required")
    return user


@storefront_bp.get("/profile")
@login_required
def profile():
    user = _me()
    stats = orders.user_orders(user.id, page=1, limit=1)["stats"]
    return jsonify(ok=True, user=user.to_dict(), stats=stats)


@storefront_bp.get("/profile/orders")
@login_required
def profile_orders():
    user = _me()
    return jsonify(ok=True, **orders.user_orders(
        user.id, page=request.args.get("page", 1), limit=request.args.get("limit", 10)
    ))


@storefront_bp.put("/profile/password")
@login_required
def profile_password():
    user = _me()
    form = PasswordChangeForm.from_json(request.get_json(silent=True))
    if not form.validate():
        raise ValidationError(form.first_error())
    users.change_password(user, form.current_password.data, form.new_password.data)
    return jsonify(ok=True, message="Password changed successfully")
