from .coupon import Coupon
from .error_log import ErrorLog
from .order import Order, OrderItem
from .stock import StockRecord
from .unmatched_payment import UnmatchedPayment
from .webhook_event import ProcessedEvent

__all__ = [
    "Coupon",
    "ErrorLog",
    "Order",
    "OrderItem",
    "ProcessedEvent",
    "StockRecord",
    "UnmatchedPayment",
]
