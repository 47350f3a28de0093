"""Stripe webhook imza doğrulaması.

İmza ham gövde byte'ları üzerinden hesaplanır; doğrulamadan önce JSON'a çevirip
yeniden serileştirmek (boşluk/anahtar sırası) doğrulamayı bozar. Bu yüzden gövde
yalnızca imza geçtikten sonra çözülür.
"""
import json

import stripe
from pydantic import ValidationError

from app.schemas.webhook import PAYMENT_FAILED, PAYMENT_SUCCEEDED, PaymentEvent
from app.services.errors import InvalidSignature

SIGNATURE_HEADER = "stripe-signature"


def verify_event(
    payload: bytes,
    signature_header: str | None,
    secret: str,
    tolerance: int = 300,
) -> PaymentEvent:
    if not signature_header:
        raise InvalidSignature("Missing stripe-signature header")
    try:
        body = payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise InvalidSignature("Payload is not valid UTF-8") from e
    try:
        stripe.WebhookSignature.verify_header(body, signature_header, secret, tolerance)
    except stripe.SignatureVerificationError as e:
        raise InvalidSignature(str(e) or "Signature verification failed") from e
    try:
        data = json.loads(body)
        event = PaymentEvent.from_stripe(data)
    except (ValueError, ValidationError, AttributeError) as e:
        raise InvalidSignature(f"Invalid event payload: {str(e)[:120]}") from e
    if event.type in (PAYMENT_SUCCEEDED, PAYMENT_FAILED) and not event.payment_intent_id:
        raise InvalidSignature(f"{event.type} without payment intent id")
    return event
