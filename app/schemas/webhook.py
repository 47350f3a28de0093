from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"


class PaymentEvent(BaseModel):
    """İmzası doğrulanmış Stripe olayı; sadece mutabakat için gereken alanlar."""

    id: str = Field(min_length=1)
    type: str
    payment_intent_id: str | None = None
    amount_received: int = 0
    payment_method_types: list[str] = []

    @classmethod
    def from_stripe(cls, data: dict[str, Any]) -> "PaymentEvent":
        obj = ((data.get("data") or {}).get("object")) or {}
        intent_id = None
        amount = 0
        if (obj.get("object") or "payment_intent") == "payment_intent":
            intent_id = obj.get("id")
            amount = obj.get("amount_received")
            if amount is None:
                amount = obj.get("amount") or 0
        return cls(
            id=data.get("id") or "",
            type=data.get("type") or "",
            payment_intent_id=intent_id,
            amount_received=int(amount),
            payment_method_types=list(obj.get("payment_method_types") or []),
        )

    @property
    def payment_method(self) -> str:
        return self.payment_method_types[0] if self.payment_method_types else "card"


class OrderSnapshot(BaseModel):
    """Bildirim (GAS) hedefine gönderilen sipariş özeti."""

    created_at: datetime | None = None
    order_number: str | None = None
    name: str = ""
    email: str | None = None
    phone: str | None = None
    shipping_address: str | None = None
    shipping_city: str | None = None
    shipping_postal_code: str | None = None
    subtotal: int = 0
    shipping_cost: int = 0
    total: int = 0
    payment_status: str
    order_status: str


class UnmatchedPaymentItem(BaseModel):
    id: int
    payment_intent_id: str
    event_id: str
    amount_received: int
    status: str
    attempts: int
    created_at: datetime
    last_attempt_at: datetime | None = None


class SweepResult(BaseModel):
    checked: int = 0
    resolved: int = 0
    still_missing: int = 0
