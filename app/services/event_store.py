"""Idempotency kapısı: event id önce insert edilir, çakışma = tekrar teslim.

SELECT ardından INSERT yapılmaz; iki eşzamanlı teslim arasında yarış penceresi açar.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from app.models import ProcessedEvent
from app.services.errors import EventStoreError

log = logging.getLogger("farmshop.events")

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


@dataclass(frozen=True)
class RecordResult:
    is_new: bool


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == UNIQUE_VIOLATION
    # SQLite: "UNIQUE constraint failed: ..." / PRIMARY KEY ihlali
    return "unique" in str(orig).lower()


def record_if_new(db: Session, event_id: str, event_type: str | None = None) -> RecordResult:
    db.add(ProcessedEvent(event_id=event_id, event_type=event_type))
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if _is_unique_violation(e):
            log.info("Duplicate event delivery: event_id=%s", event_id)
            return RecordResult(is_new=False)
        raise EventStoreError(f"Event record insert failed: {e.orig}") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise EventStoreError(f"Event record insert failed: {e}") from e
    return RecordResult(is_new=True)


def forget(db: Session, event_id: str) -> None:
    """500 dönmeden önce spekülatif kaydı geri al; Stripe'ın yeniden denemesi duplicate sayılmasın."""
    try:
        db.rollback()
        db.exec(delete(ProcessedEvent).where(ProcessedEvent.event_id == event_id))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        log.error("Could not remove event record: event_id=%s error=%s", event_id, e)
