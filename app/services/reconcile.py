"""
Stripe ödeme olaylarının sipariş defteriyle mutabakatı.

Akış: event id kaydı (idempotency kapısı) -> sipariş arama (sınırlı retry) -> durum
korumalı paid/failed geçişi -> yalnızca geçiş anında yan etkiler (stok, kupon, bildirim).

Yan etkiler event id'ye değil, siparişin önceki payment_status değerine bağlıdır:
aynı ödeme Stripe panelinden "Resend" ile aynı event id ile tekrar gelebilir ve
önceki bir hatada pending kalmış siparişi yine de düzeltmelidir.
"""
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from app.models import Order, UnmatchedPayment
from app.models.order import PAYMENT_PAID
from app.models.unmatched_payment import UNMATCHED_OPEN, UNMATCHED_RESOLVED
from app.schemas.webhook import PAYMENT_FAILED, PAYMENT_SUCCEEDED, PaymentEvent, SweepResult
from app.services import event_store
from app.services.coupon import increment_coupon_usage
from app.services.errors import EventStoreError, OrderStoreError
from app.services.notify import NotificationRelay
from app.services.orders import (
    find_order_by_intent,
    find_order_with_retry,
    mark_failed,
    mark_paid,
    order_items,
    order_snapshot,
)
from app.services.stock import StockResult, decrement_stock

log = logging.getLogger("farmshop.webhook")


@dataclass
class WebhookOutcome:
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)


class ReconciliationEngine:
    def __init__(
        self,
        db: Session,
        relay: NotificationRelay,
        *,
        lookup_attempts: int = 3,
        lookup_delay: float = 1.0,
        order_number_prefix: str = "ORD",
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.db = db
        self.relay = relay
        self.lookup_attempts = lookup_attempts
        self.lookup_delay = lookup_delay
        self.order_number_prefix = order_number_prefix
        self.sleep = sleep

    def handle(self, event: PaymentEvent) -> WebhookOutcome:
        try:
            gate = event_store.record_if_new(self.db, event.id, event.type)
        except EventStoreError as e:
            log.error("Event record failed: event_id=%s error=%s", event.id, e)
            return WebhookOutcome(500, {"received": False, "error": "event_store_error"})

        try:
            if event.type == PAYMENT_SUCCEEDED:
                return self._payment_succeeded(event, duplicate=not gate.is_new)
            if event.type == PAYMENT_FAILED:
                return self._payment_failed(event)
        except OrderStoreError as e:
            log.error(
                "Order store failure: code=%s event_id=%s payment_intent_id=%s error=%s",
                e.code,
                event.id,
                event.payment_intent_id,
                e,
            )
            # Stripe yeniden gönderdiğinde duplicate sayılmasın
            if gate.is_new:
                event_store.forget(self.db, event.id)
            return WebhookOutcome(500, {"received": False, "error": e.code, "message": str(e)})

        log.info("Ignoring event type=%s event_id=%s", event.type, event.id)
        return WebhookOutcome(200, {"received": True})

    def _payment_succeeded(self, event: PaymentEvent, duplicate: bool) -> WebhookOutcome:
        intent_id = event.payment_intent_id
        order, attempts = find_order_with_retry(
            self.db,
            intent_id,
            attempts=self.lookup_attempts,
            delay=self.lookup_delay,
            sleep=self.sleep,
        )
        if not order:
            # 200 dönülür: Stripe sonsuza kadar yeniden denemesin, manuel kontrol gerekir
            log.warning(
                "Order not found for payment_intent_id=%s event_id=%s amount_received=%s attempts=%s",
                intent_id,
                event.id,
                event.amount_received,
                attempts,
            )
            self._record_unmatched(event)
            return WebhookOutcome(
                200,
                {
                    "received": True,
                    "warning": "order_not_found",
                    "payment_intent_id": intent_id,
                    "message": "Order record not found. Manual review required.",
                },
            )

        if duplicate and order.payment_status == PAYMENT_PAID:
            return WebhookOutcome(200, {"received": True, "duplicate": True, "skipped": "already_paid"})

        order_id = order.id
        transitioned = self.apply_payment(order, event.payment_method, event.amount_received)
        self._resolve_unmatched(intent_id, order_id)
        if not transitioned:
            return WebhookOutcome(200, {"received": True, "skipped": "already_paid"})
        return WebhookOutcome(200, {"received": True})

    def _payment_failed(self, event: PaymentEvent) -> WebhookOutcome:
        rows = mark_failed(self.db, event.payment_intent_id)
        if rows:
            log.info("Order payment failed: payment_intent_id=%s", event.payment_intent_id)
        else:
            log.info(
                "No unpaid order to mark failed: payment_intent_id=%s event_id=%s",
                event.payment_intent_id,
                event.id,
            )
        return WebhookOutcome(200, {"received": True})

    def apply_payment(self, order: Order, payment_method: str, amount_received: int) -> bool:
        """paid geçişi; geçişi bu çağrı yaptıysa yan etkileri uygular. True = geçiş yapıldı."""
        # Commit sonrası nesne tekrar yüklenemeyebilir; kimlikler önceden alınır
        order_id = order.id
        coupon_id = order.coupon_id
        transitioned = mark_paid(
            self.db,
            order,
            payment_method=payment_method,
            amount_received=amount_received,
            order_number_prefix=self.order_number_prefix,
        )
        if transitioned:
            log.info("Order paid: order_id=%s", order_id)
            self._apply_side_effects(order, order_id, coupon_id)
        return transitioned

    def _apply_side_effects(self, order: Order, order_id: int, coupon_id: int | None) -> None:
        """Stok / kupon / bildirim. Hatalar loglanır, ödeme geçişi geri alınmaz."""
        # Her commit nesneyi expire eder; bildirim içeriği baştan alınır
        try:
            snapshot = order_snapshot(order)
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Order snapshot failed; notification skipped: order_id=%s", order_id)
            snapshot = None
        try:
            items = [(it.product_id, it.selected_options, it.quantity) for it in order_items(self.db, order_id)]
        except SQLAlchemyError:
            self.db.rollback()
            log.exception("Order items fetch failed; stock not decremented: order_id=%s", order_id)
            items = []

        for product_id, selected_options, quantity in items:
            if not product_id or not quantity or quantity <= 0:
                continue
            try:
                result = decrement_stock(self.db, product_id, selected_options, quantity)
            except Exception:
                self.db.rollback()
                log.exception(
                    "decrement_stock failed: order_id=%s product_id=%s qty=%s",
                    order_id,
                    product_id,
                    quantity,
                )
                continue
            if result is StockResult.INSUFFICIENT:
                log.error(
                    "Stock not decremented (insufficient): order_id=%s product_id=%s qty=%s",
                    order_id,
                    product_id,
                    quantity,
                )
            elif result is StockResult.UNTRACKED:
                log.info("No stock record for product_id=%s; skipping", product_id)

        if coupon_id:
            try:
                increment_coupon_usage(self.db, coupon_id)
            except Exception:
                self.db.rollback()
                log.exception("increment_coupon_usage failed: coupon_id=%s", coupon_id)

        if snapshot is None:
            return
        try:
            self.relay.notify(snapshot)
        except Exception:
            log.exception("Order notification unexpected error (ignored): order_id=%s", order_id)

    def _record_unmatched(self, event: PaymentEvent) -> None:
        self.db.add(
            UnmatchedPayment(
                payment_intent_id=event.payment_intent_id,
                event_id=event.id,
                amount_received=event.amount_received,
                payment_method=event.payment_method,
            )
        )
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            log.info("Unmatched payment already queued: payment_intent_id=%s", event.payment_intent_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("Unmatched payment record failed: payment_intent_id=%s error=%s", event.payment_intent_id, e)

    def _resolve_unmatched(self, payment_intent_id: str, order_id: int) -> None:
        stmt = (
            update(UnmatchedPayment)
            .where(
                UnmatchedPayment.payment_intent_id == payment_intent_id,
                UnmatchedPayment.status == UNMATCHED_OPEN,
            )
            .values(
                status=UNMATCHED_RESOLVED,
                resolved_order_id=order_id,
                resolved_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            self.db.exec(stmt)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.error("Unmatched payment resolve failed: payment_intent_id=%s error=%s", payment_intent_id, e)

    def sweep_unmatched(self, limit: int = 100) -> SweepResult:
        """
        Siparişi bulunamamış ödemeleri tekrar dener (retry yok, tek arama).
        Sipariş oluşmuşsa normal paid geçişi ve yan etkiler uygulanır.
        """
        result = SweepResult()
        stmt = (
            select(UnmatchedPayment)
            .where(UnmatchedPayment.status == UNMATCHED_OPEN)
            .order_by(UnmatchedPayment.id)
            .limit(limit)
        )
        pending = list(self.db.exec(stmt).all())
        for row in pending:
            result.checked += 1
            order = find_order_by_intent(self.db, row.payment_intent_id)
            now = datetime.now(timezone.utc)
            if not order:
                row.attempts = (row.attempts or 0) + 1
                row.last_attempt_at = now
                self.db.add(row)
                self.db.commit()
                result.still_missing += 1
                continue
            intent_id = row.payment_intent_id
            order_id = order.id
            transitioned = False
            if order.payment_status != PAYMENT_PAID:
                transitioned = self.apply_payment(order, row.payment_method or "card", row.amount_received)
            self._resolve_unmatched(intent_id, order_id)
            result.resolved += 1
            log.info(
                "Unmatched payment resolved: payment_intent_id=%s order_id=%s transitioned=%s",
                intent_id,
                order_id,
                transitioned,
            )
        return result
