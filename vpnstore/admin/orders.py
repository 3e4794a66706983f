# vpnstore/admin/orders.py
from pathlib import Path

from flask import current_app, g, jsonify, request, send_from_directory
from werkzeug.utils import secure_filename

from vpnstore.admin import admin_bp
from vpnstore.errors import NotFound
from vpnstore.schemas import AcceptPayment, Delivery, RejectPayment, StatusOverride, VerifyPayment, parse
from vpnstore.services import orders


def _body():
    # accept/reject may be sent with no body at all
    return request.get_json(silent=True) or {}


@admin_bp.get("/orders")
def list_orders():
    args = request.args
    return jsonify(ok=True, **orders.list_orders(
        page=args.get("page", 1), limit=args.get("limit", 20),
        status=args.get("status"), search=args.get("search"),
    ))


@admin_bp.get("/orders/<int:order_id>")
def order_detail(order_id):
    order = orders.get_order_for(g.identity, order_id)
    return jsonify(ok=True, order=order.to_dict(with_payment=True, with_user=True))


@admin_bp.put("/orders/<int:order_id>")
def override_order_status(order_id):
    body = parse(StatusOverride, request.get_json(silent=True))
    order = orders.override_status(g.identity, order_id, body.status)
    return jsonify(ok=True, message="Order status updated", order=order.to_dict(with_payment=True))


@admin_bp.delete("/orders/<int:order_id>")
def delete_order(order_id):
    orders.delete_order(g.identity, order_id)
    return jsonify(ok=True, message="Order deleted")


@admin_bp.put("/orders/<int:order_id>/accept-payment")
def accept_payment(order_id):
    body = parse(AcceptPayment, _body())
    order = orders.accept_payment(g.identity, order_id, notes=body.notes)
    return jsonify(ok=True, message="Payment accepted", order=order.to_dict(with_payment=True))


@admin_bp.put("/orders/<int:order_id>/reject-payment")
def reject_payment(order_id):
    body = parse(RejectPayment, _body())
    order = orders.reject_payment(g.identity, order_id, reason=body.reason)
    return jsonify(ok=True, message="Payment rejected", order=order.to_dict(with_payment=True))


@admin_bp.put("/orders/<int:order_id>/deliver")
def deliver(order_id):
    body = parse(Delivery, request.get_json(silent=True))
    order = orders.deliver_credentials(g.identity, order_id, body.vpn_credentials.model_dump())
    return jsonify(ok=True, message="VPN credentials delivered", order=order.to_dict(with_payment=True))


@admin_bp.post("/verify-payment")
def verify_payment():
    body = parse(VerifyPayment, request.get_json(silent=True))
    order = orders.verify_payment(g.identity, body.payment_id, body.status, notes=body.notes)
    return jsonify(ok=True, message=f"Payment {body.status}", order=order.to_dict(with_payment=True))


@admin_bp.get("/payments")
def list_payments():
    args = request.args
    return jsonify(ok=True, **orders.list_payments(
        page=args.get("page", 1), limit=args.get("limit", 20),
        status=args.get("status"), search=args.get("search"),
    ))


@admin_bp.get("/payment-proofs/<path:filename>")
def payment_proof(filename):
    safe = secure_filename(filename)
    folder = Path(current_app.config["UPLOAD_FOLDER"])
    if not safe or safe != filename or not (folder / safe).is_file():
        raise NotFound("File not found")
    return send_from_directory(folder, safe)
