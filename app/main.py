import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Uvicorn nereden çalışırsa çalışsın .env proje kökünden yüklensin
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlmodel import Session

from app.api.admin import router as admin_router
from app.api.webhook import router as webhook_router
from app.core.config import is_webhook_configured, settings
from app.core.database import engine, init_db, ping_db
from app.core.rate_limit import limiter
from app.logging import setup_logging
from app.models import ErrorLog

setup_logging(level=settings.log_level)
log = logging.getLogger("farmshop")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info(
        "Webhook configured: %s, notification relay: %s",
        "yes" if is_webhook_configured() else "NO (STRIPE_WEBHOOK_SECRET=whsec_... ekleyin)",
        "on" if settings.notify_url else "off",
    )
    yield


app = FastAPI(
    title="Farmshop Payments",
    description="Stripe ödeme bildirimleri ve sipariş mutabakatı",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    log.warning("Rate limit exceeded: path=%s detail=%s", request.url.path, exc.detail)
    return _error_response(request, 429, "Too many requests")


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning("Request validation error (422): path=%s method=%s detail=%s", request.url.path, request.method, errs)
    first = errs[0].get("msg") if errs else None
    rid = getattr(request.state, "request_id", None)
    body = {"error": first or "Invalid request.", "status_code": 422, "detail": errs}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc, exc_info=exc)
    try:
        with Session(engine) as db:
            db.add(ErrorLog(
                request_id=getattr(request.state, "request_id", None),
                endpoint=request.url.path,
                method=request.method,
                error_message=str(exc)[:2000],
                stack_trace="".join(traceback.format_exception(exc))[:10000],
            ))
            db.commit()
    except Exception as e:
        log.warning("ErrorLog write failed: %s", e)
    body = {"error": "Unexpected server error."}
    if request.url.path.startswith("/api/stripe"):
        body["received"] = False
    return JSONResponse(status_code=500, content=body)


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.include_router(webhook_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "database": "ok" if ping_db() else "error",
        "stripe_configured": is_webhook_configured(),
        "relay_configured": bool(settings.notify_url),
    }
