"""Order API endpoints: placement, queries and lifecycle."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.errors import OrderingError, http_error
from app.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
)
from app.models.audit_log import AuditLog
from app.models.order import Order, OrderStatus, PaymentStatus
from app.repositories.order_repository import OrderRepository
from app.schemas.order import (
    OrderCancelRequest,
    OrderCreate,
    OrderResponse,
    OrderStatusHistoryEntry,
    OrderStatusUpdate,
)
from app.services.order_lifecycle import OrderLifecycleService
from app.services.order_service import OrderService

router = APIRouter()


@router.post(
    "/",
    response_model=OrderResponse,
    status_code=201,
    summary="Place order",
    responses={
        400: {"description": "Coupon rejected, product or merchant unavailable"},
        404: {"description": "Merchant not found"},
        409: {"description": "Coupon usage recorded concurrently"},
        422: {"description": "Validation error"},
    },
)
async def create_order(
    data: OrderCreate,
    request: Request,
    db: Session = Depends(get_db),
) -> Order | JSONResponse:
    """Price and place an order.

    Send an ``Idempotency-Key`` header to make retries safe: a repeated key
    returns the order created by the first request.
    """
    scope = str(data.merchant_id)
    idempotency = check_idempotency(request, db, scope)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    try:
        order = OrderService(db).create_order(data)
    except OrderingError as e:
        raise http_error(e) from None

    if isinstance(idempotency, IdempotencyResult):
        body = OrderResponse.model_validate(order).model_dump(mode="json")
        record_idempotency_response(db, scope, idempotency.key, 201, body)

    return order


@router.get(
    "/",
    response_model=list[OrderResponse],
    summary="List orders",
)
async def list_orders(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    merchant_id: UUID | None = Query(default=None),
    customer_id: str | None = Query(default=None),
    status: OrderStatus | None = Query(default=None),
    payment_status: PaymentStatus | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Order]:
    repo = OrderRepository(db)
    response.headers["X-Total-Count"] = str(
        repo.count(
            merchant_id=merchant_id,
            customer_id=customer_id,
            status=status,
            payment_status=payment_status,
        )
    )
    return repo.get_all(
        skip=skip,
        limit=limit,
        merchant_id=merchant_id,
        customer_id=customer_id,
        status=status,
        payment_status=payment_status,
        order_by=order_by,
    )


@router.get(
    "/number/{order_number}",
    response_model=OrderResponse,
    summary="Get order by number",
    responses={404: {"description": "Order not found"}},
)
async def get_order_by_number(
    order_number: str,
    db: Session = Depends(get_db),
) -> Order:
    try:
        return OrderService(db).get_order_by_number(order_number)
    except OrderingError as e:
        raise http_error(e) from None


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
    responses={404: {"description": "Order not found"}},
)
async def get_order(
    order_id: UUID,
    db: Session = Depends(get_db),
) -> Order:
    try:
        return OrderService(db).get_order(order_id)
    except OrderingError as e:
        raise http_error(e) from None


@router.put(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    responses={
        400: {"description": "Unknown status or transition not allowed"},
        404: {"description": "Order not found"},
        409: {"description": "Order status changed concurrently"},
    },
)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
) -> Order:
    """Move an order along the status graph. Repeating the current status is a no-op."""
    try:
        return OrderLifecycleService(db).set_status(order_id, data.status)
    except OrderingError as e:
        raise http_error(e) from None


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel order",
    responses={
        400: {"description": "Order can no longer be cancelled"},
        404: {"description": "Order not found"},
        409: {"description": "Order status changed concurrently"},
    },
)
async def cancel_order(
    order_id: UUID,
    data: OrderCancelRequest,
    db: Session = Depends(get_db),
) -> Order:
    """Cancel a pending or confirmed order."""
    try:
        return OrderLifecycleService(db).cancel(order_id, data.reason)
    except OrderingError as e:
        raise http_error(e) from None


@router.get(
    "/{order_id}/history",
    response_model=list[OrderStatusHistoryEntry],
    summary="Get order status history",
    responses={404: {"description": "Order not found"}},
)
async def get_order_history(
    order_id: UUID,
    db: Session = Depends(get_db),
) -> list[AuditLog]:
    try:
        return OrderLifecycleService(db).get_history(order_id)
    except OrderingError as e:
        raise http_error(e) from None
