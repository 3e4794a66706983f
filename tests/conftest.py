# tests/conftest.py
import pytest

from config import TestingConfig
from vpnstore import create_app
from vpnstore.auth.guard import Identity
from vpnstore.auth.tokens import issue_token
from vpnstore.extensions import db as _db
from vpnstore.models import Product, User


class FakeClock:
    def __init__(self, start=1_760_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(tmp_path, clock):
    class Cfg(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        BACKUP_DIR = str(tmp_path / "backups")

    app = create_app(Cfg, clock=clock)
    with app.app_context():
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def make_user(app):
    def _make(email="alice@example.com", password="secret123", role="user", name="Alice", active=True):
        u = User(name=name, email=email, role=role, is_active=active)
        u.set_password(password)
        _db.session.add(u)
        _db.session.commit()
        return u
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(email="bob@example.com", name="Bob")


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", password="adminpass1", role="admin", name="Admin")


def bearer(u, token_type=None):
    token = issue_token(u.id, u.email, u.role, token_type or ("admin" if u.role == "admin" else "user"))
    return {"Authorization": f"Bearer {token}"}


def identity_for(u):
    return Identity(user_id=u.id, email=u.email, role=u.role,
                    token_type="admin" if u.role == "admin" else "user", session_id=None, token="")


@pytest.fixture
def user_headers(user):
    return bearer(user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)


@pytest.fixture
def product(app):
    p = Product(name="Express Annual", provider="ExpressVPN", duration="1 Year", price=9000,
                features=["No logs", "5 devices"], category="Premium", stock=10, logo="", rating=5)
    _db.session.add(p)
    _db.session.commit()
    return p


ITEM = {"id": "p1", "price": 15000, "quantity": 1}


@pytest.fixture
def place_order(client, user, user_headers):
    def _place(items=None, total=15000, headers=None):
        resp = client.post("/api/orders", json={"userId": user.id, "items": items or [ITEM], "total": total},
                           headers=headers or user_headers)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()["order"]["id"]
    return _place


@pytest.fixture
def submit_payment(client, user_headers):
    def _submit(order_id, tx="TX-1001", headers=None, **extra):
        body = {"orderId": order_id, "paymentMethod": "kpay", "transactionId": tx,
                "senderName": "Alice", "senderPhone": "09111111111", **extra}
        return client.post("/api/payment/submit", json=body, headers=headers or user_headers)
    return _submit
