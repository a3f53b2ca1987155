import enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


VALID_STATUSES = [status.value for status in OrderStatus]


class CamelModel(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel)


class OrderItem(CamelModel):
    model_config = ConfigDict(extra="forbid")

    product_id: str = Field(..., min_length=1, examples=["product-1"])
    quantity: int = Field(..., ge=1, strict=True, examples=[2])
    price: float = Field(..., gt=0, strict=True, allow_inf_nan=False, examples=[29.99])


class ShippingAddress(CamelModel):
    model_config = ConfigDict(extra="forbid")

    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    country: str = Field(..., min_length=1)


class Order(CamelModel):
    # The store builds orders by field name; input payloads only ever use the wire names
    model_config = ConfigDict(populate_by_name=True)

    id: str
    customer_id: str
    items: List[OrderItem]
    shipping_address: ShippingAddress
    status: OrderStatus = OrderStatus.PENDING
    total: float
    created_at: str
    updated_at: str
