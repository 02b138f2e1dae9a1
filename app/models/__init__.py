from app.models.audit_log import AuditLog
from app.models.coupon import Coupon, DiscountType
from app.models.coupon_usage import CouponUsage
from app.models.idempotency_record import IdempotencyRecord
from app.models.merchant import Merchant, MerchantStatus
from app.models.order import Order, OrderStatus, OrderType, PaymentStatus
from app.models.order_event import OrderEvent, OrderEventStatus
from app.models.product import Product

__all__ = [
    "AuditLog",
    "Coupon",
    "CouponUsage",
    "DiscountType",
    "IdempotencyRecord",
    "Merchant",
    "MerchantStatus",
    "Order",
    "OrderEvent",
    "OrderEventStatus",
    "OrderStatus",
    "OrderType",
    "PaymentStatus",
    "Product",
]
