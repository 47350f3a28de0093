"""İşlenmiş Stripe event id'leri: tekrar teslim tespiti sadece benzersiz insert ile yapılır."""
from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class ProcessedEvent(SQLModel, table=True):
    __tablename__ = "stripe_webhook_events"
    event_id: str = Field(primary_key=True, max_length=255)
    event_type: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
