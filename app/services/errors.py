"""Ödeme mutabakatı hata sınıfları. HTTP karşılıkları app/api/webhook.py içinde."""


class ReconciliationError(Exception):
    """Tüm mutabakat hatalarının tabanı."""


class InvalidSignature(ReconciliationError):
    """İmza eksik/geçersiz veya gövde çözülemedi -> 400, hiçbir tabloya dokunulmaz."""


class EventStoreError(ReconciliationError):
    """stripe_webhook_events insert'i benzersizlik dışı bir sebeple başarısız -> 500."""


class OrderStoreError(ReconciliationError):
    """Zorunlu sipariş okuma/güncelleme veritabanı hatası -> 500, Stripe yeniden gönderir."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code  # order_fetch_error | order_update_error
