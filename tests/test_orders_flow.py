# tests/test_orders_flow.py
import logging
from types import SimpleNamespace

import pytest
from conftest import ITEM, bearer, identity_for

from vpnstore.errors import Forbidden, NotFound, PaymentAlreadySubmitted, PreconditionFailed
from vpnstore.extensions import db, mail
from vpnstore.models import Order, Payment
from vpnstore.services import orders as order_service


def _order(order_id):
    db.session.expire_all()
    return db.session.get(Order, order_id)


def _deliver(client, order_id, headers, **creds):
    creds = creds or {"username": "u1", "password": "p1"}
    return client.put(f"/api/admin/orders/{order_id}/deliver", json={"vpnCredentials": creds}, headers=headers)


# ---------------------------------------------------------------------------
# end-to-end
# ---------------------------------------------------------------------------
def test_happy_path_to_completed(client, place_order, submit_payment, admin_headers, monkeypatch):
    order_id = place_order()
    order = _order(order_id)
    assert order.status == "pending_payment"
    assert order.total == 15000

    resp = submit_payment(order_id, tx="TX-E2E-1")
    assert resp.status_code == 201
    payment_id = resp.get_json()["paymentId"]
    order = _order(order_id)
    assert order.status == "payment_submitted"
    assert order.payment_id == payment_id
    assert db.session.get(Payment, payment_id).status == "pending_verification"
    assert db.session.get(Payment, payment_id).amount == 15000

    resp = client.put(f"/api/admin/orders/{order_id}/accept-payment", headers=admin_headers)
    assert resp.status_code == 200
    order = _order(order_id)
    payment = db.session.get(Payment, payment_id)
    assert order.status == "verified"
    assert payment.status == "verified"
    assert payment.verified_at is not None
    assert payment.verified_by

    def boom(*a, **kw):
        raise RuntimeError("smtp down")
    monkeypatch.setattr(mail, "send", boom)

    resp = _deliver(client, order_id, admin_headers)
    assert resp.status_code == 200
    creds = resp.get_json()["order"]["vpnCredentials"]
    assert creds["username"] == "u1"
    assert creds["deliveredAt"]
    assert creds["serverInfo"] == "VPN Server Details"

    order = _order(order_id)
    assert order.status == "completed"
    assert order.completed_at is not None
    assert order.vpn_delivered_at is not None


def test_notification_helper_raising_does_not_undo_delivery(client, place_order, submit_payment,
                                                            admin_headers, monkeypatch):
    order_id = place_order()
    submit_payment(order_id)
    client.put(f"/api/admin/orders/{order_id}/accept-payment", headers=admin_headers)

    def boom(*a, **kw):
        raise RuntimeError("template exploded")
    monkeypatch.setattr(order_service, "send_vpn_credentials_email", boom)

    assert _deliver(client, order_id, admin_headers).status_code == 200
    assert _order(order_id).status == "completed"


def test_reject_path_cancels_and_blocks_delivery(client, place_order, submit_payment, admin_headers):
    order_id = place_order()
    payment_id = submit_payment(order_id).get_json()["paymentId"]

    resp = client.put(f"/api/admin/orders/{order_id}/reject-payment", json={"reason": "no such transfer"},
                      headers=admin_headers)
    assert resp.status_code == 200
    order = _order(order_id)
    payment = db.session.get(Payment, payment_id)
    assert order.status == "cancelled"
    assert payment.status == "rejected"
    assert payment.rejection_reason == "no such transfer"

    resp = _deliver(client, order_id, admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "precondition_failed"
    order = _order(order_id)
    assert order.status == "cancelled"
    assert order.vpn_username is None


# ---------------------------------------------------------------------------
# delivery preconditions
# ---------------------------------------------------------------------------
def test_deliver_requires_verified(client, place_order, submit_payment, admin_headers):
    order_id = place_order()
    resp = _deliver(client, order_id, admin_headers)
    assert resp.status_code == 400
    assert _order(order_id).status == "pending_payment"

    submit_payment(order_id)
    resp = _deliver(client, order_id, admin_headers)
    assert resp.status_code == 400
    order = _order(order_id)
    assert order.status == "payment_submitted"
    assert order.vpn_delivered_at is None


def test_deliver_is_admin_only(client, place_order, user_headers):
    order_id = place_order()
    assert _deliver(client, order_id, user_headers).status_code == 403
    assert _deliver(client, order_id, {}).status_code == 401


def test_accept_without_payment_is_precondition_failure(client, place_order, admin_headers):
    order_id = place_order()
    resp = client.put(f"/api/admin/orders/{order_id}/accept-payment", headers=admin_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "precondition_failed"


def test_accept_twice_is_refused(client, place_order, submit_payment, admin_headers):
    order_id = place_order()
    submit_payment(order_id)
    assert client.put(f"/api/admin/orders/{order_id}/accept-payment", headers=admin_headers).status_code == 200
    assert client.put(f"/api/admin/orders/{order_id}/reject-payment", headers=admin_headers).status_code == 400
    assert _order(order_id).status == "verified"


# ---------------------------------------------------------------------------
# payment uniqueness
# ---------------------------------------------------------------------------
def test_duplicate_transaction_id_across_orders(place_order, submit_payment):
    first, second = place_order(), place_order()
    assert submit_payment(first, tx="TX-DUP").status_code == 201

    resp = submit_payment(second, tx="TX-DUP")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] == "conflict"
    assert body["reason"] == "duplicate_transaction"

    order = _order(second)
    assert order.payment_id is None
    assert order.status == "pending_payment"
    assert Payment.query.count() == 1


def test_second_payment_for_same_order_rejected(place_order, submit_payment):
    order_id = place_order()
    assert submit_payment(order_id, tx="TX-A").status_code == 201

    resp = submit_payment(order_id, tx="TX-B")
    assert resp.status_code == 400
    assert resp.get_json()["reason"] == "payment_exists"
    assert Payment.query.count() == 1


def test_payment_for_someone_elses_order(client, place_order, submit_payment, other_user):
    order_id = place_order()
    resp = submit_payment(order_id, headers=bearer(other_user))
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"
    assert _order(order_id).payment_id is None


def test_duplicate_transaction_caught_by_unique_constraint(place_order, submit_payment, monkeypatch):
    first, second = place_order(), place_order()
    assert submit_payment(first, tx="TX-RACE").status_code == 201

    # a concurrent submission that slipped past the lookup meets the unique index instead
    monkeypatch.setattr(order_service, "_transaction_taken", lambda tx: False)
    resp = submit_payment(second, tx="TX-RACE")
    assert resp.status_code == 400
    assert resp.get_json()["reason"] == "duplicate_transaction"

    order = _order(second)
    assert order.status == "pending_payment"
    assert order.payment_id is None
    assert Payment.query.count() == 1


def _stale(order_id):
    order = _order(order_id)
    return SimpleNamespace(id=order.id, user_id=order.user_id, total=order.total,
                           payment_id=None, status="pending_payment")


def test_second_payment_caught_by_unique_order_id(app, user, place_order, submit_payment, monkeypatch):
    order_id = place_order()
    first_payment = submit_payment(order_id, tx="TX-FIRST").get_json()["paymentId"]

    snapshot = _stale(order_id)
    monkeypatch.setattr(order_service, "_get_order", lambda _id: snapshot)
    with pytest.raises(PaymentAlreadySubmitted):
        order_service.submit_payment(identity_for(user), order_id, payment_method="kpay",
                                     transaction_id="TX-SECOND", sender_name="Alice", sender_phone="0911")

    order = _order(order_id)
    assert order.payment_id == first_payment
    assert order.status == "payment_submitted"
    assert Payment.query.count() == 1


def test_guarded_update_refuses_order_that_moved_on(app, user, admin, place_order, monkeypatch):
    order_id = place_order()
    order_service.override_status(identity_for(admin), order_id, "cancelled")

    snapshot = _stale(order_id)
    monkeypatch.setattr(order_service, "_get_order", lambda _id: snapshot)
    with pytest.raises(PaymentAlreadySubmitted):
        order_service.submit_payment(identity_for(user), order_id, payment_method="kpay",
                                     transaction_id="TX-LATE", sender_name="Alice", sender_phone="0911")

    assert _order(order_id).status == "cancelled"
    assert Payment.query.count() == 0


def test_payment_for_unknown_order(submit_payment):
    assert submit_payment(424242).status_code == 404


def test_payment_missing_fields(client, place_order, user_headers):
    order_id = place_order()
    resp = client.post("/api/payment/submit", json={"orderId": order_id, "paymentMethod": "kpay"},
                       headers=user_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "validation_error"


# ---------------------------------------------------------------------------
# order creation
# ---------------------------------------------------------------------------
def test_cannot_create_order_for_another_user(client, user_headers, other_user):
    resp = client.post("/api/orders", json={"userId": other_user.id, "items": [ITEM], "total": 15000},
                       headers=user_headers)
    assert resp.status_code == 403
    assert Order.query.count() == 0


def test_order_requires_auth(client, user):
    resp = client.post("/api/orders", json={"userId": user.id, "items": [ITEM], "total": 15000})
    assert resp.status_code == 401


def test_order_total_must_match_items(client, user, user_headers):
    resp = client.post("/api/orders", json={"userId": user.id, "items": [ITEM], "total": 1},
                       headers=user_headers)
    assert resp.status_code == 400


def test_empty_or_bad_items_rejected(client, user, user_headers):
    for items in ([], [{"id": "p1", "price": 10, "quantity": 0}], [{"id": "p1", "price": -5}]):
        resp = client.post("/api/orders", json={"userId": user.id, "items": items}, headers=user_headers)
        assert resp.status_code == 400, items


def test_catalog_fields_copied_by_value(client, user, user_headers, product):
    item = {"id": product.id, "name": "cheap", "price": 1, "quantity": 2}
    resp = client.post("/api/orders", json={"items": [item]}, headers=user_headers)
    assert resp.status_code == 201
    order = resp.get_json()["order"]
    assert order["userId"] == user.id
    assert order["total"] == 18000
    assert order["items"][0]["name"] == "Express Annual"
    assert order["items"][0]["duration"] == "1 Year"

    product.price = 1
    db.session.commit()
    assert _order(order["id"]).items[0]["price"] == 9000


def test_other_users_order_looks_missing(client, place_order, other_user):
    order_id = place_order()
    assert client.get(f"/api/orders/{order_id}", headers=bearer(other_user)).status_code == 404


# ---------------------------------------------------------------------------
# admin helpers
# ---------------------------------------------------------------------------
def test_verify_payment_normalises_approved(client, place_order, submit_payment, admin_headers):
    order_id = place_order()
    payment_id = submit_payment(order_id).get_json()["paymentId"]
    resp = client.post("/api/admin/verify-payment",
                       json={"paymentId": payment_id, "status": "approved", "notes": "matched"},
                       headers=admin_headers)
    assert resp.status_code == 200
    payment = db.session.get(Payment, payment_id)
    assert payment.status == "verified"
    assert payment.verification_notes == "matched"
    assert _order(order_id).status == "verified"


def test_override_is_logged_distinctly(client, place_order, admin_headers, caplog):
    order_id = place_order()
    with caplog.at_level(logging.WARNING, logger="vpnstore.services.orders"):
        resp = client.put(f"/api/admin/orders/{order_id}", json={"status": "completed"}, headers=admin_headers)
    assert resp.status_code == 200
    assert _order(order_id).status == "completed"
    assert any("[override]" in r.getMessage() for r in caplog.records)


def test_override_rejects_unknown_status(client, place_order, admin_headers):
    order_id = place_order()
    resp = client.put(f"/api/admin/orders/{order_id}", json={"status": "shipped"}, headers=admin_headers)
    assert resp.status_code == 400


def test_delete_order_removes_payment(client, place_order, submit_payment, admin_headers):
    order_id = place_order()
    submit_payment(order_id)
    assert client.delete(f"/api/admin/orders/{order_id}", headers=admin_headers).status_code == 200
    assert Order.query.count() == 0
    assert Payment.query.count() == 0


def test_admin_lists(client, place_order, submit_payment, admin_headers):
    order_id = place_order()
    submit_payment(order_id, tx="TX-LIST")
    orders = client.get("/api/admin/orders?status=payment_submitted", headers=admin_headers).get_json()
    assert orders["total"] == 1
    assert orders["orders"][0]["payment"]["transactionId"] == "TX-LIST"
    payments = client.get("/api/admin/payments?search=tx-list", headers=admin_headers).get_json()
    assert payments["total"] == 1
    assert payments["payments"][0]["user"]["email"] == "alice@example.com"


# ---------------------------------------------------------------------------
# service layer directly
# ---------------------------------------------------------------------------
def test_service_deliver_leaves_state_on_failure(app, user, admin, place_order):
    order_id = place_order()
    with pytest.raises(PreconditionFailed):
        order_service.deliver_credentials(identity_for(admin), order_id, {"username": "u", "password": "p"})
    assert _order(order_id).status == "pending_payment"


def test_service_get_order_for(app, user, other_user, admin, place_order):
    order_id = place_order()
    assert order_service.get_order_for(identity_for(user), order_id).id == order_id
    assert order_service.get_order_for(identity_for(admin), order_id).id == order_id
    with pytest.raises(NotFound):
        order_service.get_order_for(identity_for(other_user), order_id)


def test_service_create_order_for_other_user(app, user, other_user):
    with pytest.raises(Forbidden):
        order_service.create_order(identity_for(user), [ITEM], user_id=other_user.id)


def test_profile_orders_stats(client, place_order, submit_payment, admin_headers, user_headers):
    first = place_order()
    place_order()
    submit_payment(first)
    client.put(f"/api/admin/orders/{first}/reject-payment", headers=admin_headers)

    body = client.get("/api/profile/orders", headers=user_headers).get_json()
    assert body["stats"]["totalOrders"] == 2
    assert body["stats"]["totalSpent"] == 15000
    assert body["stats"]["completedOrders"] == 0
