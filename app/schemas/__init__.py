from app.schemas.coupon import (
    CouponCreate,
    CouponDeleteResponse,
    CouponResponse,
    CouponStatsResponse,
    CouponUpdate,
    CouponUsageResponse,
    CouponValidateRequest,
    CouponValidateResponse,
    RecordUsageRequest,
)
from app.schemas.merchant import MerchantCreate, MerchantResponse, MerchantUpdate
from app.schemas.order import (
    OrderCancelRequest,
    OrderCreate,
    OrderItemSnapshot,
    OrderLineItem,
    OrderResponse,
    OrderStatusHistoryEntry,
    OrderStatusUpdate,
)
from app.schemas.order_event import OrderEventResponse
from app.schemas.payment import PaymentEventRequest
from app.schemas.product import ProductCreate, ProductResponse, ProductUpdate

__all__ = [
    "CouponCreate",
    "CouponDeleteResponse",
    "CouponResponse",
    "CouponStatsResponse",
    "CouponUpdate",
    "CouponUsageResponse",
    "CouponValidateRequest",
    "CouponValidateResponse",
    "MerchantCreate",
    "MerchantResponse",
    "MerchantUpdate",
    "OrderCancelRequest",
    "OrderCreate",
    "OrderEventResponse",
    "OrderItemSnapshot",
    "OrderLineItem",
    "OrderResponse",
    "OrderStatusHistoryEntry",
    "OrderStatusUpdate",
    "PaymentEventRequest",
    "ProductCreate",
    "ProductResponse",
    "ProductUpdate",
]
