from typing import Any, List, Optional

from pydantic import ConfigDict, Field

from order_api import config
from order_api.models import CamelModel, Order, OrderItem, OrderStatus, ShippingAddress


class OrderCreate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    customer_id: str = Field(..., min_length=1, examples=["customer-123"])
    items: List[OrderItem] = Field(..., min_length=1)
    shipping_address: ShippingAddress


class StatusUpdate(CamelModel):
    # Left untyped so a bad value reaches the store and is reported as "Invalid status"
    status: Any = None


class ListQuery(CamelModel):
    status: Optional[OrderStatus] = None
    page: int = Field(1, ge=1)
    limit: int = Field(default_factory=lambda: config.DEFAULT_PAGE_LIMIT, ge=1)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderList(CamelModel):
    orders: List[Order]
    pagination: Pagination


class OrderDeleted(CamelModel):
    message: str = "Order deleted successfully"
    order: Order
