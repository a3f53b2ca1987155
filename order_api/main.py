import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from order_api import config, messaging
from order_api.errors import InvalidStatusError, NotFoundError, ValidationError, format_errors, from_pydantic
from order_api.logging_config import configure_logging
from order_api.models import Order
from order_api.schemas import ListQuery, OrderDeleted, OrderList, StatusUpdate
from order_api.store import OrderStore, utc_timestamp

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if config.EVENTS_ENABLED:
        await messaging.setup_rabbitmq()
    yield
    await messaging.close_rabbitmq()


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def parse_list_query(status: Optional[str] = None, page: Optional[str] = None, limit: Optional[str] = None) -> ListQuery:
    # An empty ?status= means "no filter"
    raw = {"status": status or None, "page": page, "limit": limit}
    try:
        return ListQuery.model_validate({key: value for key, value in raw.items() if value is not None})
    except PydanticValidationError as exc:
        raise from_pydantic(exc) from exc


async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": exc.messages})


async def invalid_status_handler(request: Request, exc: InvalidStatusError):
    return JSONResponse(status_code=400, content={"error": "Invalid status", "validStatuses": exc.valid_statuses})


async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"error": "Order not found"})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": format_errors(exc.errors())})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


async def internal_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(store: Optional[OrderStore] = None) -> FastAPI:
    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.store = store if store is not None else OrderStore()
    app.state.started_at = time.monotonic()

    app.add_exception_handler(InvalidStatusError, invalid_status_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": utc_timestamp(),
            "uptime": time.monotonic() - app.state.started_at,
        }

    @app.get("/ready")
    async def ready(store: OrderStore = Depends(get_store)):
        return {"status": "ready", "orders": store.count()}

    @app.post("/api/orders", response_model=Order, status_code=201)
    async def create_order(payload: Any = Body(None), store: OrderStore = Depends(get_store)):
        order = store.create(payload)
        await messaging.publish_event(
            "order.created",
            messaging.build_event("OrderCreated", order, customer_id=order.customer_id, total=order.total),
        )
        return order

    @app.get("/api/orders", response_model=OrderList)
    async def list_orders(query: ListQuery = Depends(parse_list_query), store: OrderStore = Depends(get_store)):
        orders, pagination = store.list(status=query.status, page=query.page, limit=query.limit)
        return OrderList(orders=orders, pagination=pagination)

    @app.get("/api/orders/{order_id}", response_model=Order)
    async def get_order(order_id: str, store: OrderStore = Depends(get_store)):
        return store.get(order_id)

    @app.put("/api/orders/{order_id}/status", response_model=Order)
    async def update_order_status(
        order_id: str,
        update: Optional[StatusUpdate] = Body(None),
        store: OrderStore = Depends(get_store),
    ):
        # A missing body is a missing status
        status = update.status if update is not None else None
        order = store.update_status(order_id, status)
        await messaging.publish_event(
            "order.status_updated",
            messaging.build_event("OrderStatusUpdated", order, status=order.status.value),
        )
        return order

    @app.delete("/api/orders/{order_id}", response_model=OrderDeleted)
    async def delete_order(order_id: str, store: OrderStore = Depends(get_store)):
        order = store.delete(order_id)
        await messaging.publish_event(
            "order.deleted",
            messaging.build_event("OrderDeleted", order, status=order.status.value),
        )
        return OrderDeleted(order=order)

    return app


configure_logging(config.LOG_LEVEL)
app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host=config.HOST, port=config.PORT)
