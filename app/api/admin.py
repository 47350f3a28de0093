"""Operatör API: siparişi bulunamayan ödemeler ve mutabakat taraması (X-Admin-Secret gerekir)."""
from fastapi import APIRouter, Depends, Query, Request
from sqlmodel import Session, select

from app.api.deps import get_engine, require_admin_secret
from app.core.config import settings
from app.core.database import get_db
from app.core.rate_limit import limiter
from app.models import UnmatchedPayment
from app.models.unmatched_payment import UNMATCHED_OPEN, UNMATCHED_RESOLVED
from app.schemas.webhook import SweepResult, UnmatchedPaymentItem
from app.services.reconcile import ReconciliationEngine

RATE_LIMIT_ADMIN = f"{settings.rate_limit_admin_per_minute}/minute"

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_secret)])


@router.get("/unmatched-payments", response_model=list[UnmatchedPaymentItem])
@limiter.limit(RATE_LIMIT_ADMIN)
def list_unmatched_payments(
    request: Request,
    status_filter: str = Query(UNMATCHED_OPEN, alias="status"),
    db: Session = Depends(get_db),
):
    stmt = select(UnmatchedPayment).order_by(UnmatchedPayment.id.desc()).limit(200)
    if status_filter in (UNMATCHED_OPEN, UNMATCHED_RESOLVED):
        stmt = stmt.where(UnmatchedPayment.status == status_filter)
    return [UnmatchedPaymentItem.model_validate(row, from_attributes=True) for row in db.exec(stmt).all()]


@router.post("/reconcile/sweep", response_model=SweepResult)
@limiter.limit(RATE_LIMIT_ADMIN)
def reconcile_sweep(
    request: Request,
    limit: int = Query(100, ge=1, le=500),
    engine: ReconciliationEngine = Depends(get_engine),
):
    """Açık kayıtlar için siparişi tekrar arar; bulunursa paid geçişi ve yan etkiler uygulanır."""
    return engine.sweep_unmatched(limit=limit)
