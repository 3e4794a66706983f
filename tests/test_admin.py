# tests/test_admin.py
import io
import json
from pathlib import Path

from conftest import bearer

from vpnstore.extensions import db
from vpnstore.models import Order, Product, Settings, User
from vpnstore.services import settings as settings_service

PRODUCT = {
    "name": "Nord Monthly", "provider": "NordVPN", "duration": "1 Month", "price": 4500,
    "features": ["Fast servers", "6 devices"], "category": "Standard", "stock": 20,
}


# ---- settings ------------------------------------------------------------------
def test_settings_round_trip(client, admin_headers):
    resp = client.get("/api/admin/settings", headers=admin_headers)
    assert resp.status_code == 200
    assert len(resp.get_json()["settings"]["paymentMethods"]) == 4

    patch = {
        "siteName": "Night Owl VPN",
        "promoBannerEnabled": False,
        "paymentMethods": [{"id": "kpay", "name": "KBZ Pay", "number": "0911", "accountName": "Owl Co"}],
    }
    resp = client.put("/api/admin/settings", json=patch, headers=admin_headers)
    assert resp.status_code == 200
    saved = resp.get_json()["settings"]
    assert saved["siteName"] == "Night Owl VPN"
    assert saved["promoBannerEnabled"] is False
    assert saved["paymentMethods"][0]["number"] == "0911"


def test_public_views_hide_account_details(client, admin_headers):
    client.put("/api/admin/settings", headers=admin_headers, json={
        "paymentMethods": [
            {"id": "kpay", "name": "KBZ Pay", "number": "0911", "accountName": "Owl Co"},
            {"id": "old", "name": "Retired", "number": "0000", "isActive": False},
        ],
    })
    methods = client.get("/api/payment-methods").get_json()["paymentMethods"]
    assert methods == [{"id": "kpay", "name": "KBZ Pay", "logo": ""}]

    public = client.get("/api/settings").get_json()["settings"]
    assert "0911" not in json.dumps(public)
    assert "Owl Co" not in json.dumps(public)


def test_order_owner_sees_account_details(client, place_order, user_headers, other_user):
    order_id = place_order()
    resp = client.get(f"/api/orders/{order_id}/payment-methods", headers=user_headers)
    assert resp.status_code == 200
    assert resp.get_json()["paymentMethods"][0]["number"] == "09123456789"
    assert client.get(f"/api/orders/{order_id}/payment-methods", headers=bearer(other_user)).status_code == 404


def test_settings_reject_unknown_fields(client, admin_headers):
    resp = client.put("/api/admin/settings", json={"siteNmae": "typo"}, headers=admin_headers)
    assert resp.status_code == 400


def test_settings_row_created_once_when_first_reads_race(app, monkeypatch):
    first_id = settings_service.get_settings().id
    db.session.expunge_all()

    # the second request looked before the first one committed
    monkeypatch.setattr(settings_service, "_current", lambda: None)
    second = settings_service.get_settings()
    assert second.id == first_id == settings_service.SETTINGS_ID
    assert second.payment_methods
    assert Settings.query.count() == 1


# ---- products ------------------------------------------------------------------
def test_product_crud(client, admin_headers):
    resp = client.post("/api/admin/products", json=PRODUCT, headers=admin_headers)
    assert resp.status_code == 201
    pid = resp.get_json()["product"]["id"]
    assert client.get(f"/api/products/{pid}").get_json()["product"]["price"] == 4500

    resp = client.put(f"/api/admin/products/{pid}", json={"price": 5000, "originalPrice": 6000},
                      headers=admin_headers)
    assert resp.status_code == 200
    assert resp.get_json()["product"]["price"] == 5000
    assert resp.get_json()["product"]["originalPrice"] == 6000

    assert client.delete(f"/api/admin/products/{pid}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/products/{pid}").status_code == 404


def test_inactive_products_hidden_from_public(client, admin_headers, product):
    client.put(f"/api/admin/products/{product.id}", json={"isActive": False}, headers=admin_headers)

    public = client.get("/api/products").get_json()
    assert public["total"] == 0
    assert client.get(f"/api/products/{product.id}").status_code == 404

    listing = client.get("/api/admin/products", headers=admin_headers).get_json()
    assert listing["total"] == 1
    assert listing["products"][0]["isActive"] is False


def test_product_validation(client, admin_headers):
    bad = dict(PRODUCT, price=-1)
    assert client.post("/api/admin/products", json=bad, headers=admin_headers).status_code == 400
    bad = dict(PRODUCT, category="Budget")
    assert client.post("/api/admin/products", json=bad, headers=admin_headers).status_code == 400
    assert Product.query.count() == 0


def test_catalog_search_and_paging(client, admin_headers):
    for i in range(3):
        client.post("/api/admin/products", headers=admin_headers,
                    json=dict(PRODUCT, name=f"Plan {i}", price=1000 * (i + 1)))
    client.post("/api/admin/products", headers=admin_headers,
                json=dict(PRODUCT, name="Surf", provider="Surfshark", features=["Unlimited devices"]))

    found = client.get("/api/products?search=unlimited").get_json()
    assert [p["name"] for p in found["products"]] == ["Surf"]

    page = client.get("/api/products?limit=2&page=2&sortBy=price&sortOrder=asc").get_json()
    assert page["totalPages"] == 2
    assert page["currentPage"] == 2
    assert [p["price"] for p in page["products"]] == [3000, 4500]


# ---- users ---------------------------------------------------------------------
def test_user_listing_and_detail(client, admin_headers, place_order, user):
    place_order()
    listing = client.get("/api/admin/users?role=user", headers=admin_headers).get_json()
    assert listing["total"] == 1
    assert listing["users"][0]["orderCount"] == 1

    detail = client.get(f"/api/admin/users/{user.id}", headers=admin_headers).get_json()
    assert detail["stats"]["totalOrders"] == 1
    assert len(detail["orders"]) == 1


def test_delete_user_rules(client, admin, admin_headers, user, other_user, place_order):
    assert client.delete(f"/api/admin/users/{admin.id}", headers=admin_headers).status_code == 403

    place_order()
    assert client.delete(f"/api/admin/users/{user.id}", headers=admin_headers).status_code == 409

    assert client.delete(f"/api/admin/users/{other_user.id}", headers=admin_headers).status_code == 200
    assert User.query.filter_by(email="bob@example.com").first() is None


def test_admin_cannot_demote_self(client, db, admin, admin_headers):
    resp = client.put(f"/api/admin/users/{admin.id}", json={"role": "user"}, headers=admin_headers)
    assert resp.status_code == 403
    assert db.session.get(User, admin.id).role == "admin"


def test_deactivate_and_reset_user(client, admin_headers, user):
    resp = client.put(f"/api/admin/users/{user.id}", json={"isActive": False}, headers=admin_headers)
    assert resp.status_code == 200
    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert login.status_code == 401

    client.put(f"/api/admin/users/{user.id}", json={"isActive": True}, headers=admin_headers)
    resp = client.put(f"/api/admin/users/{user.id}/password", json={"newPassword": "fresh-pass"},
                      headers=admin_headers)
    assert resp.status_code == 200
    login = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "fresh-pass"})
    assert login.status_code == 200


def test_update_user_email_conflict(client, admin_headers, user, other_user):
    resp = client.put(f"/api/admin/users/{other_user.id}", json={"email": "alice@example.com"},
                      headers=admin_headers)
    assert resp.status_code == 409


# ---- passwords -----------------------------------------------------------------
def test_admin_change_password(client, admin_headers):
    resp = client.put("/api/admin/change-password", headers=admin_headers,
                      json={"currentPassword": "wrong", "newPassword": "brand-new-1"})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "Current password is incorrect"

    resp = client.put("/api/admin/change-password", headers=admin_headers,
                      json={"currentPassword": "adminpass1", "newPassword": "brand-new-1"})
    assert resp.status_code == 200
    login = client.post("/api/auth/admin-login", json={"email": "admin@example.com", "password": "brand-new-1"})
    assert login.status_code == 200


def test_customer_change_password(client, user_headers):
    resp = client.put("/api/profile/password", headers=user_headers,
                      json={"currentPassword": "secret123", "newPassword": "abc"})
    assert resp.status_code == 400
    resp = client.put("/api/profile/password", headers=user_headers,
                      json={"currentPassword": "secret123", "newPassword": "abcdef"})
    assert resp.status_code == 200


# ---- dashboard / verify ------------------------------------------------------------
def test_verify_reports_identity(client, admin, admin_headers):
    body = client.get("/api/admin/verify", headers=admin_headers).get_json()
    assert body["user"]["id"] == admin.id
    assert body["user"]["role"] == "admin"


def test_dashboard_counts_completed_revenue(client, admin_headers, place_order, submit_payment):
    done = place_order()
    pending = place_order()
    submit_payment(pending)
    client.put(f"/api/admin/orders/{done}", json={"status": "completed"}, headers=admin_headers)

    body = client.get("/api/admin/dashboard", headers=admin_headers).get_json()
    stats = body["stats"]
    assert stats["totalOrders"] == 2
    assert stats["totalRevenue"] == 15000
    assert stats["monthlyRevenue"] == 15000
    assert stats["pendingPayments"] == 1
    assert len(body["recentOrders"]) == 2
    assert body["monthlySalesData"][-1]["orders"] == 1
    assert body["productPerformance"][0] == {"name": "p1", "totalSold": 1, "revenue": 15000}


# ---- backup / clear ----------------------------------------------------------------
def test_backup_create_and_list(app, client, admin_headers, place_order):
    place_order()
    resp = client.post("/api/admin/backup", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["filename"].startswith("backup-")
    assert body["stats"]["totalOrders"] == 1

    path = Path(app.config["BACKUP_DIR"]) / body["filename"]
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == "1.0"
    assert "password_hash" not in path.read_text(encoding="utf-8")
    assert len(data["data"]["users"]) == 2

    listing = client.get("/api/admin/backup", headers=admin_headers).get_json()
    assert listing["totalBackups"] == 1
    assert listing["backups"][0]["filename"] == body["filename"]


def test_clear_database_needs_confirmation(client, admin_headers, place_order):
    place_order()
    resp = client.post("/api/admin/clear-database", json={"confirmation": "yes"}, headers=admin_headers)
    assert resp.status_code == 400
    assert Order.query.count() == 1

    preview = client.get("/api/admin/clear-database", headers=admin_headers).get_json()
    assert preview["currentCounts"] == {"orders": 1, "users": 1, "products": 0, "payments": 0}


def test_clear_database_keeps_admins(client, admin, admin_headers, place_order, submit_payment, product):
    order_id = place_order()
    submit_payment(order_id)
    resp = client.post("/api/admin/clear-database", json={"confirmation": "CLEAR"}, headers=admin_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["deletedCounts"] == {"payments": 1, "orders": 1, "products": 1, "users": 1}
    assert body["clearedBy"] == admin.id
    assert [u.email for u in User.query.all()] == ["admin@example.com"]


# ---- payment proofs ----------------------------------------------------------------
def _upload(client, headers, data=b"\x89PNG\r\n\x1a\nfake", name="receipt.png", mimetype="image/png"):
    return client.post("/api/upload/payment-proof", headers=headers, content_type="multipart/form-data",
                       data={"file": (io.BytesIO(data), name, mimetype)})


def test_upload_and_fetch_proof(client, user_headers, admin_headers):
    resp = _upload(client, user_headers)
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["filename"].startswith("payment-proof-")
    assert body["filename"].endswith("receipt.png")

    assert client.get(body["fileUrl"], headers=user_headers).status_code == 403
    fetched = client.get(body["fileUrl"], headers=admin_headers)
    assert fetched.status_code == 200
    assert fetched.data == b"\x89PNG\r\n\x1a\nfake"


def test_upload_rejects_non_images(client, user_headers):
    resp = _upload(client, user_headers, data=b"hello", name="notes.txt", mimetype="text/plain")
    assert resp.status_code == 400
    resp = _upload(client, user_headers, name="receipt.exe", mimetype="image/png")
    assert resp.status_code == 400


def test_upload_rejects_oversized(app, client, user_headers):
    app.config["MAX_PROOF_BYTES"] = 16
    resp = _upload(client, user_headers, data=b"x" * 17)
    assert resp.status_code == 400


def test_upload_requires_login(client):
    assert _upload(client, {}).status_code == 401


def test_proof_path_traversal_refused(client, admin_headers):
    assert client.get("/api/admin/payment-proofs/..%2Fconfig.py", headers=admin_headers).status_code == 404


# ---- cli -----------------------------------------------------------------------
def test_cli_user_create_and_reset(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["user-create", "ops@example.com", "ops-pass-1", "--name", "Ops"])
    assert result.exit_code == 0, result.output
    assert "Created admin: ops@example.com" in result.output
    u = User.query.filter_by(email="ops@example.com").one()
    assert u.role == "admin"

    result = runner.invoke(args=["reset-password", "ops@example.com", "123"])
    assert result.exit_code == 1

    result = runner.invoke(args=["reset-password", "ops@example.com", "ops-pass-2"])
    assert result.exit_code == 0
    assert User.query.filter_by(email="ops@example.com").one().check_password("ops-pass-2")


def test_cli_backup(app):
    result = app.test_cli_runner().invoke(args=["backup-db"])
    assert result.exit_code == 0, result.output
    assert list(Path(app.config["BACKUP_DIR"]).glob("backup-*.json"))
