"""İmza doğrulama: ham byte üzerinden, zaman toleransı ile."""
import time

import pytest

from app.services.errors import InvalidSignature
from app.services.signature import verify_event

from conftest import build_event, sign

SECRET = "whsec_unit"


def test_valid_signature_returns_event():
    payload = build_event("evt_1", "payment_intent.succeeded", "pi_1", 4200, methods=("card", "link"))
    event = verify_event(payload, sign(payload, SECRET), SECRET)
    assert event.id == "evt_1"
    assert event.type == "payment_intent.succeeded"
    assert event.payment_intent_id == "pi_1"
    assert event.amount_received == 4200
    assert event.payment_method == "card"


def test_wrong_secret():
    payload = build_event("evt_1", "payment_intent.succeeded", "pi_1", 4200)
    with pytest.raises(InvalidSignature):
        verify_event(payload, sign(payload, "whsec_other"), SECRET)


def test_missing_header():
    payload = build_event("evt_1", "payment_intent.succeeded", "pi_1", 4200)
    with pytest.raises(InvalidSignature):
        verify_event(payload, None, SECRET)


def test_expired_timestamp():
    payload = build_event("evt_1", "payment_intent.succeeded", "pi_1", 4200)
    old = int(time.time()) - 3600
    with pytest.raises(InvalidSignature):
        verify_event(payload, sign(payload, SECRET, timestamp=old), SECRET, tolerance=300)


def test_garbage_header():
    payload = build_event("evt_1", "payment_intent.succeeded", "pi_1", 4200)
    with pytest.raises(InvalidSignature):
        verify_event(payload, "not-a-signature", SECRET)


def test_signed_but_not_json():
    payload = b"hello"
    with pytest.raises(InvalidSignature):
        verify_event(payload, sign(payload, SECRET), SECRET)


def test_payment_event_without_intent_id():
    payload = b'{"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": {"object": "payment_intent"}}}'
    with pytest.raises(InvalidSignature):
        verify_event(payload, sign(payload, SECRET), SECRET)


def test_amount_falls_back_to_amount():
    payload = (
        b'{"id": "evt_1", "type": "payment_intent.payment_failed", '
        b'"data": {"object": {"id": "pi_9", "object": "payment_intent", "amount": 1500}}}'
    )
    event = verify_event(payload, sign(payload, SECRET), SECRET)
    assert event.amount_received == 1500
    assert event.payment_method == "card"
