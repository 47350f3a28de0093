"""İstek başına bağımlılıklar: mutabakat motoru, bildirim, admin anahtarı (X-Admin-Secret)."""
import hmac
import time
from typing import Callable

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session

from app.core.config import settings
from app.core.database import get_db
from app.services.notify import NotificationRelay
from app.services.reconcile import ReconciliationEngine


def get_relay() -> NotificationRelay:
    return NotificationRelay(settings.notify_url, timeout=settings.notify_timeout_seconds)


def get_sleep() -> Callable[[float], None]:
    """Sipariş arama retry beklemesi; testlerde beklemesiz fonksiyonla değiştirilir."""
    return time.sleep


def get_engine(
    db: Session = Depends(get_db),
    relay: NotificationRelay = Depends(get_relay),
    sleep: Callable[[float], None] = Depends(get_sleep),
) -> ReconciliationEngine:
    return ReconciliationEngine(
        db,
        relay,
        lookup_attempts=settings.order_lookup_attempts,
        lookup_delay=settings.order_lookup_delay_seconds,
        order_number_prefix=settings.order_number_prefix,
        sleep=sleep,
    )


def _secret_matches(provided: str | None, expected: str) -> bool:
    """Timing-safe karşılaştırma; detay sızdırmaz."""
    return hmac.compare_digest((provided or "").encode("utf-8"), expected.encode("utf-8"))


def require_admin_secret(x_admin_secret: str | None = Header(default=None)) -> None:
    if not settings.admin_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin API is disabled (ADMIN_SECRET not set).",
        )
    if not _secret_matches(x_admin_secret, settings.admin_secret):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden.")
