"""Siparişi bulunamayan başarılı ödemeler: sweep ile sipariş oluşunca tekrar denenir."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel

UNMATCHED_OPEN = "open"
UNMATCHED_RESOLVED = "resolved"


class UnmatchedPayment(SQLModel, table=True):
    __tablename__ = "unmatched_payments"
    id: int | None = Field(default=None, primary_key=True)
    payment_intent_id: str = Field(unique=True, index=True)
    event_id: str
    amount_received: int = 0
    payment_method: str | None = None
    status: str = Field(default=UNMATCHED_OPEN, index=True)  # open | resolved
    attempts: int = 0
    last_attempt_at: datetime | None = None
    resolved_order_id: int | None = None
    resolved_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
