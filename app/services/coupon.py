"""Kupon kullanım sayacı: sipariş ilk kez paid olduğunda tek UPDATE ile artırılır."""
import logging

from sqlalchemy import update
from sqlmodel import Session

from app.models import Coupon

log = logging.getLogger("farmshop.coupon")


def increment_coupon_usage(db: Session, coupon_id: int) -> bool:
    """usage_count = usage_count + 1. Kupon yoksa False döner.

    usage_limit burada kontrol edilmez: ödeme zaten alınmıştır, limit checkout'ta uygulanır.
    """
    stmt = (
        update(Coupon)
        .where(Coupon.id == coupon_id)
        .values(usage_count=Coupon.usage_count + 1)
        .execution_options(synchronize_session=False)
    )
    rows = db.exec(stmt).rowcount
    db.commit()
    if not rows:
        log.warning("Coupon not found for usage increment: coupon_id=%s", coupon_id)
        return False
    return True
