import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response

from app.core.config import settings
from app.routers import coupons, merchants, order_events, orders, payments, products

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

OPENAPI_TAGS = [
    {"name": "Merchants", "description": "Register merchants and set their commission rate."},
    {"name": "Products", "description": "Manage merchant menus."},
    {"name": "Coupons", "description": "Create, validate and track promotional coupons."},
    {"name": "Orders", "description": "Place orders and move them through their lifecycle."},
    {"name": "Payments", "description": "Apply payment status reports from the processor."},
    {"name": "Order Events", "description": "Outbox of order events for notification delivery."},
]

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Marketplace ordering API. "
        "Prices carts, resolves coupons, splits commission and tracks order status."
    ),
    openapi_tags=OPENAPI_TAGS,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count", "X-Pending-Count", "Idempotency-Replayed"],
)


@app.middleware("http")
async def options_handler(request: Request, call_next):  # type: ignore[no-untyped-def]
    if request.method == "OPTIONS":
        origin = request.headers.get("origin", "*")
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": origin,
                "Access-Control-Allow-Methods": "*",
                "Access-Control-Allow-Headers": "*",
                "Access-Control-Allow-Credentials": "true",
                "Access-Control-Max-Age": "86400",
            },
        )
    return await call_next(request)


app.include_router(merchants.router, prefix="/v1/merchants", tags=["Merchants"])
app.include_router(products.router, prefix="/v1", tags=["Products"])
app.include_router(coupons.router, prefix="/v1/coupons", tags=["Coupons"])
app.include_router(orders.router, prefix="/v1/orders", tags=["Orders"])
app.include_router(payments.router, prefix="/v1/payments", tags=["Payments"])
app.include_router(order_events.router, prefix="/v1/order_events", tags=["Order Events"])


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "domain": settings.APP_DOMAIN,
        "status": "running",
    }
