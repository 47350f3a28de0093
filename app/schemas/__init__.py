from .webhook import (
    PAYMENT_FAILED,
    PAYMENT_SUCCEEDED,
    OrderSnapshot,
    PaymentEvent,
    SweepResult,
    UnmatchedPaymentItem,
)

__all__ = [
    "PAYMENT_FAILED",
    "PAYMENT_SUCCEEDED",
    "OrderSnapshot",
    "PaymentEvent",
    "SweepResult",
    "UnmatchedPaymentItem",
]
