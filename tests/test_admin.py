"""Operatör API: siparişi bulunamayan ödemeler ve sweep."""
from fastapi.testclient import TestClient
from sqlmodel import select

from app.models import Order, StockRecord, UnmatchedPayment

ADMIN = {"X-Admin-Secret": "test-admin-secret"}


def test_admin_requires_secret(client: TestClient):
    assert client.get("/admin/unmatched-payments").status_code == 403
    r = client.post("/admin/reconcile/sweep", headers={"X-Admin-Secret": "wrong"})
    assert r.status_code == 403
    assert r.json()["error"] == "Forbidden."


def test_admin_disabled_without_secret(client: TestClient, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "admin_secret", "")
    assert client.get("/admin/unmatched-payments", headers=ADMIN).status_code == 503


def test_unmatched_payment_listed(client: TestClient, post_event):
    post_event("evt_2", intent_id="pi_missing", amount=5400)

    r = client.get("/admin/unmatched-payments", headers=ADMIN)

    assert r.status_code == 200
    rows = r.json()
    assert len(rows) == 1
    assert rows[0]["payment_intent_id"] == "pi_missing"
    assert rows[0]["event_id"] == "evt_2"
    assert rows[0]["amount_received"] == 5400
    assert rows[0]["status"] == "open"


def test_sweep_resolves_once_order_appears(client: TestClient, post_event, seed_order, seed_stock, reload, db, relay):
    post_event("evt_2", intent_id="pi_late", amount=3000)
    seed_stock("rice-5kg", 10)

    r = client.post("/admin/reconcile/sweep", headers=ADMIN)
    assert r.json() == {"checked": 1, "resolved": 0, "still_missing": 1}

    order_id = seed_order(intent_id="pi_late", total=3000, items=(("rice-5kg", 3, None),))
    r = client.post("/admin/reconcile/sweep", headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"checked": 1, "resolved": 1, "still_missing": 0}

    order = reload(Order, order_id)
    assert order.payment_status == "paid"
    assert order.order_number
    db.expire_all()
    assert db.exec(select(StockRecord)).one().quantity == 7
    queued = db.exec(select(UnmatchedPayment)).one()
    assert queued.status == "resolved"
    assert queued.resolved_order_id == order_id
    assert queued.attempts == 1
    assert len(relay.sent) == 1

    r = client.post("/admin/reconcile/sweep", headers=ADMIN)
    assert r.json() == {"checked": 0, "resolved": 0, "still_missing": 0}
    db.expire_all()
    assert db.exec(select(StockRecord)).one().quantity == 7


def test_resend_after_order_appears_resolves_queue(client: TestClient, post_event, seed_order, reload, db):
    post_event("evt_2", intent_id="pi_late")
    order_id = seed_order(intent_id="pi_late")

    r = post_event("evt_2", intent_id="pi_late")

    assert r.status_code == 200
    assert r.json() == {"received": True}
    assert reload(Order, order_id).payment_status == "paid"
    db.expire_all()
    assert db.exec(select(UnmatchedPayment)).one().status == "resolved"
    r = client.post("/admin/reconcile/sweep", headers=ADMIN)
    assert r.json()["checked"] == 0
