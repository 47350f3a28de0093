"""Sipariş defteri: payment_intent ile arama, durum korumalı (compare-and-swap) geçişler."""
import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models import Order, OrderItem
from app.models.order import ORDER_PROCESSING, PAYMENT_FAILED, PAYMENT_PAID
from app.schemas.webhook import OrderSnapshot
from app.services.errors import OrderStoreError

log = logging.getLogger("farmshop.orders")


def generate_order_number(prefix: str = "ORD", now: datetime | None = None) -> str:
    """ORD-YYMMDD-NNNN. Son ek rastgele; çakışma nadir ve tekrar kontrol edilmez."""
    now = now or datetime.now(timezone.utc)
    return f"{prefix}-{now:%y%m%d}-{secrets.randbelow(10000):04d}"


def amount_mismatch_note(order_total: int, amount_received: int) -> str:
    return f"[webhook] amount_mismatch: order.total={order_total}, pi.amount_received={amount_received}"


def find_order_by_intent(db: Session, payment_intent_id: str) -> Order | None:
    try:
        stmt = select(Order).where(Order.payment_intent_id == payment_intent_id)
        return db.exec(stmt).first()
    except SQLAlchemyError as e:
        db.rollback()
        raise OrderStoreError("order_fetch_error", str(e)[:200]) from e


def find_order_with_retry(
    db: Session,
    payment_intent_id: str,
    attempts: int = 3,
    delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[Order | None, int]:
    """
    Sipariş satırı, checkout isteğinin transaction'ı commit olana kadar görünmeyebilir.
    Sabit aralıklı, sınırlı sayıda dener. (sipariş | None, deneme sayısı) döner.
    """
    attempt = 0
    while attempt < attempts:
        attempt += 1
        order = find_order_by_intent(db, payment_intent_id)
        if order:
            return order, attempt
        if attempt < attempts:
            # Okuma transaction'ını kapat ki sonraki denemede yeni commit'ler görünsün
            db.rollback()
            sleep(delay)
    return None, attempt


def mark_paid(
    db: Session,
    order: Order,
    payment_method: str,
    amount_received: int,
    order_number_prefix: str = "ORD",
) -> bool:
    """
    pending/failed -> paid geçişi tek UPDATE ile; koşul payment_status <> 'paid'.
    True: bu çağrı geçişi yaptı (yan etkiler yalnızca bu durumda uygulanır).
    """
    # Commit nesneyi expire eder; log için gereken alanlar önceden alınır
    order_id, order_total, intent_id = order.id, order.total, order.payment_intent_id
    mismatch = order_total != amount_received
    now = datetime.now(timezone.utc)
    values = {
        "payment_status": PAYMENT_PAID,
        "paid_at": now,
        "payment_method": payment_method or "card",
        # Atanmış sipariş numarası asla değişmez
        "order_number": func.coalesce(Order.order_number, generate_order_number(order_number_prefix, now)),
        "order_status": ORDER_PROCESSING,
        "updated_at": now,
    }
    if mismatch:
        values["notes"] = func.coalesce(Order.notes + "\n", "") + amount_mismatch_note(order_total, amount_received)
    stmt = (
        update(Order)
        .where(Order.id == order_id, Order.payment_status != PAYMENT_PAID)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    try:
        rows = db.exec(stmt).rowcount
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise OrderStoreError("order_update_error", str(e)[:200]) from e
    transitioned = rows == 1
    if transitioned and mismatch:
        log.error(
            "Amount mismatch: order_id=%s order.total=%s amount_received=%s payment_intent_id=%s",
            order_id,
            order_total,
            amount_received,
            intent_id,
        )
    try:
        db.refresh(order)
    except SQLAlchemyError as e:
        # Geçiş commit edildi; hata yükseltilmez, yan etkiler yine uygulanır
        db.rollback()
        log.warning("Order refresh after paid update failed: order_id=%s error=%s", order_id, e)
    return transitioned


def mark_failed(db: Session, payment_intent_id: str) -> int:
    """Sadece paid olmayan siparişi failed yapar; paid terminaldir. Etkilenen satır sayısı."""
    stmt = (
        update(Order)
        .where(Order.payment_intent_id == payment_intent_id, Order.payment_status != PAYMENT_PAID)
        .values(payment_status=PAYMENT_FAILED, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    try:
        rows = db.exec(stmt).rowcount
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise OrderStoreError("order_update_error", str(e)[:200]) from e
    return rows


def order_items(db: Session, order_id: int) -> list[OrderItem]:
    return list(db.exec(select(OrderItem).where(OrderItem.order_id == order_id)).all())


def order_snapshot(order: Order) -> OrderSnapshot:
    name = f"{order.last_name or ''}{' ' + order.first_name if order.first_name else ''}".strip()
    return OrderSnapshot(
        created_at=order.created_at,
        order_number=order.order_number,
        name=name,
        email=order.email,
        phone=order.phone,
        shipping_address=order.shipping_address,
        shipping_city=order.shipping_city,
        shipping_postal_code=order.shipping_postal_code,
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        total=order.total,
        payment_status=order.payment_status,
        order_status=order.order_status,
    )
