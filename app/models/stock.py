"""Ürün (veya ürün + seçenek kombinasyonu) başına stok sayacı."""
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel


class StockRecord(SQLModel, table=True):
    __tablename__ = "stock_records"
    __table_args__ = (
        UniqueConstraint("product_id", "options_key", name="uq_stock_product_options"),
        CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
    )
    id: int | None = Field(default=None, primary_key=True)
    product_id: str = Field(index=True)
    # Boş = ürün geneli (paylaşımlı) stok; dolu = seçenek kombinasyonu (bkz. services/stock.options_key)
    options_key: str = ""
    quantity: int = 0
    updated_at: datetime | None = Field(default_factory=lambda: datetime.now(timezone.utc))
