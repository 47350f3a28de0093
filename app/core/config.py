from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

# .env proje kökünde: app/core/config.py -> app/core -> app -> kök
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"


class Settings(BaseSettings):
    # Stripe: webhook imzası STRIPE_WEBHOOK_SECRET (whsec_...) ile doğrulanır
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_webhook_tolerance: int = 300  # İmza zaman damgası için kabul edilen sapma (saniye)
    # Servis yetkili bağlantı (satır bazlı kısıtları aşabilen rol)
    database_url: str = "sqlite:///./farmshop.db"
    # Sipariş bildirimi (Google Apps Script vb.). Boşsa bildirim gönderilmez.
    notify_url: str = Field(default="", validation_alias=AliasChoices("NOTIFY_URL", "GAS_URL"))
    notify_timeout_seconds: float = 7.0
    # Sipariş satırı henüz commit edilmemiş olabilir: 3 deneme, aralarında 1 sn
    order_lookup_attempts: int = 3
    order_lookup_delay_seconds: float = 1.0
    order_number_prefix: str = "ORD"  # ORD-YYMMDD-NNNN
    admin_secret: str = ""             # /admin/* uçları için X-Admin-Secret
    rate_limit_admin_per_minute: int = 30
    environment: str = "development"
    log_level: str = "INFO"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("stripe_secret_key", "stripe_webhook_secret", "notify_url", "admin_secret", mode="before")
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Boşluk/yanlış kopya kaynaklı hataları azaltır."""
        return (v or "").strip()

    @field_validator("order_lookup_attempts")
    @classmethod
    def at_least_one_attempt(cls, v: int) -> int:
        return max(1, v)


settings = Settings()


def is_webhook_configured() -> bool:
    """Webhook imzası doğrulanabilir mi?"""
    return bool(settings.stripe_webhook_secret)
