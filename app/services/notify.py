"""Sipariş bildirimi (Google Apps Script / back-office): en iyi çaba, webhook akışını asla bozmaz."""
import json
import logging
from urllib.error import HTTPError, URLError
from urllib.request import Request as UrlRequest
from urllib.request import urlopen

from app.schemas.webhook import OrderSnapshot

log = logging.getLogger("farmshop.notify")


class NotificationRelay:
    def __init__(self, url: str | None, timeout: float = 7.0):
        self.url = (url or "").strip()
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def notify(self, snapshot: OrderSnapshot) -> None:
        if not self.enabled:
            log.info("NOTIFY_URL is not set; skipping order notification")
            return
        body = json.dumps(snapshot.model_dump(mode="json"), ensure_ascii=False).encode("utf-8")
        log.info(
            "Sending order notification: order_number=%s payment_status=%s order_status=%s",
            snapshot.order_number,
            snapshot.payment_status,
            snapshot.order_status,
        )
        try:
            req = UrlRequest(
                self.url,
                data=body,
                method="POST",
                headers={"Content-Type": "application/json"},
            )
            with urlopen(req, timeout=self.timeout) as resp:
                text = resp.read().decode("utf-8", errors="replace")
                log.info("Order notification succeeded: status=%s body=%s", resp.status, text[:200])
        except HTTPError as e:
            log.error("Order notification failed: status=%s reason=%s", e.code, e.reason)
        except (URLError, TimeoutError, OSError) as e:
            log.error("Order notification error (ignored): %s", e)
        except Exception:
            log.exception("Order notification unexpected error (ignored)")
