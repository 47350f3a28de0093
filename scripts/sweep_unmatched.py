#!/usr/bin/env python3
"""Siparişi bulunamayan Stripe ödemelerini tekrar dener (cron ile, örn. 10 dakikada bir).
   Kullanim: python3 scripts/sweep_unmatched.py [--limit 100]
   Gereksinim: .env içinde DATABASE_URL (servis yetkili bağlantı), opsiyonel NOTIFY_URL"""
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from dotenv import load_dotenv  # noqa: E402

load_dotenv(ROOT / ".env")

from sqlmodel import Session  # noqa: E402

from app.api.deps import get_relay  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.core.database import engine, init_db  # noqa: E402
from app.logging import setup_logging  # noqa: E402
from app.services.reconcile import ReconciliationEngine  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Reconcile unmatched Stripe payments")
    parser.add_argument("--limit", type=int, default=100)
    args = parser.parse_args()

    setup_logging(level=settings.log_level)
    log = logging.getLogger("farmshop.sweep")
    init_db()
    with Session(engine) as db:
        result = ReconciliationEngine(
            db,
            get_relay(),
            order_number_prefix=settings.order_number_prefix,
        ).sweep_unmatched(limit=args.limit)
    log.info("Sweep done: checked=%s resolved=%s still_missing=%s", result.checked, result.resolved, result.still_missing)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
