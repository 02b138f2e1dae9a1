"""Order event outbox endpoints used by notification workers."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.order_event import OrderEvent, OrderEventStatus
from app.repositories.order_event_repository import OrderEventRepository
from app.schemas.order_event import OrderEventResponse
from app.services.notification_service import NotificationService

router = APIRouter()


@router.get(
    "/",
    response_model=list[OrderEventResponse],
    summary="List order events",
)
async def list_order_events(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    order_by: str | None = Query(default=None),
    order_id: UUID | None = Query(default=None),
    merchant_id: UUID | None = Query(default=None),
    event_type: str | None = Query(default=None),
    status: OrderEventStatus | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[OrderEvent]:
    """List events, oldest first. ``X-Pending-Count`` carries the undelivered backlog."""
    repo = OrderEventRepository(db)
    response.headers["X-Pending-Count"] = str(repo.count_pending())
    return repo.get_all(
        skip=skip,
        limit=limit,
        order_id=order_id,
        merchant_id=merchant_id,
        event_type=event_type,
        status=status,
        order_by=order_by,
    )


@router.post(
    "/{event_id}/dispatched",
    response_model=OrderEventResponse,
    summary="Mark event dispatched",
    responses={404: {"description": "Event not found"}},
)
async def mark_event_dispatched(
    event_id: UUID,
    db: Session = Depends(get_db),
) -> OrderEvent:
    event = NotificationService(db).mark_dispatched(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    return event
