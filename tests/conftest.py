"""Pytest fixtures: test client, test DB (in-memory SQLite), imzalı Stripe olayları."""
import hashlib
import hmac
import json
import os
import time

import pytest
from fastapi.testclient import TestClient

# Test ortamında in-memory SQLite (app import edilmeden önce set edilmeli)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("ADMIN_SECRET", "test-admin-secret")
os.environ.setdefault("RATE_LIMIT_ADMIN_PER_MINUTE", "1000")
os.environ["NOTIFY_URL"] = ""

from sqlmodel import Session, SQLModel  # noqa: E402

import app.models  # noqa: E402,F401
from app.api.deps import get_relay, get_sleep  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import engine  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Order, OrderItem, StockRecord  # noqa: E402
from app.services.stock import options_key  # noqa: E402

WEBHOOK_URL = "/api/stripe-webhook"


class FakeRelay:
    """Bildirimleri ağa çıkmadan kaydeder."""

    enabled = True

    def __init__(self):
        self.sent = []

    def notify(self, snapshot):
        self.sent.append(snapshot)


def build_event(event_id, event_type, intent_id, amount, methods=("card",)) -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": amount,
                    "amount_received": amount,
                    "currency": "jpy",
                    "payment_method_types": list(methods),
                }
            },
        }
    ).encode("utf-8")


def sign(payload: bytes, secret: str | None = None, timestamp: int | None = None) -> str:
    """Stripe-Signature: t=<ts>,v1=<hex hmac-sha256(secret, "<ts>.<payload>")>"""
    secret = secret or settings.stripe_webhook_secret
    timestamp = timestamp or int(time.time())
    sig = hmac.new(secret.encode("utf-8"), f"{timestamp}.".encode("utf-8") + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={sig}"


@pytest.fixture(autouse=True)
def _reset_db():
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def sleeps():
    """Retry beklemelerinin kaydı; gerçek bekleme yapılmaz."""
    return []


@pytest.fixture(scope="function")
def client(relay, sleeps):
    """TestClient; lifespan ile in-memory DB ve tablolar hazır olur."""
    app.dependency_overrides[get_relay] = lambda: relay
    app.dependency_overrides[get_sleep] = lambda: sleeps.append
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    with Session(engine) as session:
        yield session


@pytest.fixture
def post_event(client):
    def _post(event_id, event_type="payment_intent.succeeded", intent_id="pi_1", amount=3000, **kwargs):
        payload = build_event(event_id, event_type, intent_id, amount, **kwargs)
        return client.post(
            WEBHOOK_URL,
            content=payload,
            headers={"stripe-signature": sign(payload), "content-type": "application/json"},
        )

    return _post


@pytest.fixture
def seed_order(db):
    """Checkout akışının yaptığı gibi pending sipariş + satırlar oluşturur."""

    def _seed(intent_id="pi_1", total=3000, items=(("rice-5kg", 2, None),), coupon_id=None, **fields):
        order = Order(
            payment_intent_id=intent_id,
            total=total,
            subtotal=total,
            coupon_id=coupon_id,
            first_name=fields.pop("first_name", "Taro"),
            last_name=fields.pop("last_name", "Yamada"),
            email=fields.pop("email", "taro@example.com"),
            **fields,
        )
        db.add(order)
        db.commit()
        db.refresh(order)
        for product_id, qty, options in items:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=product_id,
                    quantity=qty,
                    selected_options=options,
                    price=total // max(qty, 1),
                    line_total=total,
                )
            )
        db.commit()
        return order.id

    return _seed


@pytest.fixture
def seed_stock(db):
    def _seed(product_id, quantity, options=None):
        db.add(StockRecord(product_id=product_id, options_key=options_key(options), quantity=quantity))
        db.commit()

    return _seed


@pytest.fixture
def reload(db):
    """İstek sonrası güncel satırı okur (identity map'i temizleyerek)."""

    def _reload(model, key):
        db.expire_all()
        return db.get(model, key)

    return _reload
