from app.repositories.audit_log_repository import AuditLogRepository
from app.repositories.coupon_repository import CouponRepository
from app.repositories.coupon_usage_repository import CouponUsageRepository
from app.repositories.idempotency_repository import IdempotencyRepository
from app.repositories.merchant_repository import MerchantRepository
from app.repositories.order_event_repository import OrderEventRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository

__all__ = [
    "AuditLogRepository",
    "CouponRepository",
    "CouponUsageRepository",
    "IdempotencyRepository",
    "MerchantRepository",
    "OrderEventRepository",
    "OrderRepository",
    "ProductRepository",
]
