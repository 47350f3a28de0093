"""Stok düşümü: tek UPDATE ile kontrol + azaltma (okuma-değiştir-yaz yok)."""
import json
import logging
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import update
from sqlmodel import Session, select

from app.models import StockRecord

log = logging.getLogger("farmshop.stock")


class StockResult(str, Enum):
    DECREMENTED = "decremented"
    INSUFFICIENT = "insufficient"  # Stok yetersiz; negatife düşürülmez
    UNTRACKED = "untracked"        # Ürün için stok kaydı yok (stok yönetimi kapalı)


def options_key(selected_options: dict[str, str] | None) -> str:
    """Seçenek setini sıralı, sabit bir anahtara çevirir. Boş/None -> "" (ürün geneli stok)."""
    if not selected_options:
        return ""
    return json.dumps(
        {str(k): str(v) for k, v in selected_options.items()},
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )


def _decrement(db: Session, product_id: str, key: str, quantity: int) -> int:
    stmt = (
        update(StockRecord)
        .where(
            StockRecord.product_id == product_id,
            StockRecord.options_key == key,
            StockRecord.quantity >= quantity,
        )
        .values(quantity=StockRecord.quantity - quantity, updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    rows = db.exec(stmt).rowcount
    db.commit()
    return rows


def _exists(db: Session, product_id: str, key: str) -> bool:
    stmt = select(StockRecord.id).where(StockRecord.product_id == product_id, StockRecord.options_key == key)
    return db.exec(stmt).first() is not None


def decrement_stock(
    db: Session,
    product_id: str,
    selected_options: dict[str, str] | None,
    quantity: int,
) -> StockResult:
    """
    Seçenek kombinasyonuna ait kayıt varsa onu, yoksa ürün geneli (paylaşımlı) kaydı düşürür.
    Yetersiz stokta hiçbir kayıt değişmez.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")
    keys = [options_key(selected_options)]
    if keys[0]:
        keys.append("")
    for key in keys:
        if _decrement(db, product_id, key, quantity):
            return StockResult.DECREMENTED
        if _exists(db, product_id, key):
            log.warning(
                "Insufficient stock: product_id=%s options=%s requested=%s",
                product_id,
                key or "-",
                quantity,
            )
            return StockResult.INSUFFICIENT
    return StockResult.UNTRACKED
