"""İndirim kuponu: kullanım sayacı yalnızca sipariş ilk kez paid olduğunda artar."""
from datetime import date, datetime, timezone

from sqlmodel import Field, SQLModel


class Coupon(SQLModel, table=True):
    __tablename__ = "coupons"
    id: int | None = Field(default=None, primary_key=True)
    code: str = Field(unique=True, index=True, max_length=64)
    usage_count: int = Field(default=0)
    usage_limit: int | None = Field(default=None)  # null = sınırsız
    valid_from: date | None = Field(default=None)
    valid_until: date | None = Field(default=None)
    created_at: datetime | None = Field(default_factory=lambda: datetime.now(timezone.utc))
