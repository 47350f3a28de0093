"""Stripe webhook ucu. Gövde ham byte olarak okunur; imza bu byte'lar üzerinden doğrulanır."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_engine
from app.core.config import is_webhook_configured, settings
from app.services.errors import InvalidSignature
from app.services.reconcile import ReconciliationEngine
from app.services.signature import SIGNATURE_HEADER, verify_event

log = logging.getLogger("farmshop.webhook")

router = APIRouter(prefix="/api", tags=["webhook"])

WEBHOOK_PATHS = ("/stripe-webhook", "/stripe/webhook")


async def _handle(request: Request, engine: ReconciliationEngine) -> JSONResponse:
    if not is_webhook_configured():
        log.error("STRIPE_WEBHOOK_SECRET is not set; rejecting webhook")
        return JSONResponse(status_code=500, content={"received": False, "error": "webhook_not_configured"})

    payload = await request.body()
    try:
        event = verify_event(
            payload,
            request.headers.get(SIGNATURE_HEADER),
            settings.stripe_webhook_secret,
            tolerance=settings.stripe_webhook_tolerance,
        )
    except InvalidSignature as e:
        log.warning("Stripe webhook rejected: %s", e)
        return JSONResponse(
            status_code=400,
            content={"received": False, "error": "invalid_signature", "message": str(e)},
        )

    log.info("Stripe webhook received: type=%s event_id=%s", event.type, event.id)
    # Senkron DB işleri ve retry beklemesi event loop'u bloklamasın
    outcome = await run_in_threadpool(engine.handle, event)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.post(WEBHOOK_PATHS[0])
async def stripe_webhook(request: Request, engine: ReconciliationEngine = Depends(get_engine)):
    """Stripe bildirim URL: payment_intent.succeeded / payment_intent.payment_failed."""
    return await _handle(request, engine)


@router.post(WEBHOOK_PATHS[1])
async def stripe_webhook_alias(request: Request, engine: ReconciliationEngine = Depends(get_engine)):
    """Webhook (alias): aynı işlem, Stripe panelinde bu URL de kullanılabilir."""
    return await _handle(request, engine)


@router.api_route(WEBHOOK_PATHS[0], methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
@router.api_route(WEBHOOK_PATHS[1], methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
def stripe_webhook_wrong_method():
    return JSONResponse(
        status_code=405,
        content={"received": False, "error": "method_not_allowed"},
        headers={"Allow": "POST"},
    )
