"""Sipariş ve sipariş satırları: ödeme durumu yalnızca webhook (reconcile) tarafından değiştirilir."""
from datetime import datetime, timezone

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"

ORDER_AWAITING_PAYMENT = "awaiting_payment"
ORDER_PROCESSING = "processing"


class Order(SQLModel, table=True):
    """Tek bir checkout denemesi. payment_intent_id, Stripe olaylarıyla eşleşme anahtarıdır."""

    __tablename__ = "orders"
    id: int | None = Field(default=None, primary_key=True)
    payment_intent_id: str | None = Field(default=None, unique=True, index=True)
    order_number: str | None = Field(default=None, unique=True, index=True)  # ORD-YYMMDD-NNNN, bir kez atanır
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    shipping_address: str | None = None
    shipping_city: str | None = None
    shipping_postal_code: str | None = None
    # Tutarlar en küçük para biriminde (JPY: yen)
    subtotal: int = 0
    shipping_cost: int = 0
    total: int = 0
    payment_status: str = Field(default=PAYMENT_PENDING, index=True)  # pending | paid | failed
    order_status: str = ORDER_AWAITING_PAYMENT  # awaiting_payment | processing | shipped | delivered | cancelled
    payment_method: str | None = None
    coupon_id: int | None = Field(default=None, foreign_key="coupons.id")
    notes: str | None = None  # Sadece eklenir; tutar uyuşmazlığı vb. manuel kontrol notları
    paid_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = Field(default_factory=lambda: datetime.now(timezone.utc))


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"
    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="orders.id", index=True)
    product_id: str = Field(index=True)
    quantity: int
    # Seçilen seçenekler, örn. {"size": "5kg", "polish": "brown"}
    selected_options: dict[str, str] | None = Field(default=None, sa_column=Column(JSON))
    price: int = 0  # Birim fiyat (seçenek farkı dahil)
    line_total: int = 0
