import logging
import math
import threading
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Tuple, Union
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from order_api.errors import InvalidStatusError, NotFoundError, ValidationError, from_pydantic
from order_api.models import VALID_STATUSES, Order, OrderStatus
from order_api.schemas import OrderCreate, Pagination

logger = logging.getLogger(__name__)


def utc_timestamp() -> str:
    """ISO-8601 UTC with milliseconds and a ``Z`` suffix, so values sort as text."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_order_id() -> str:
    return str(uuid4())


def order_total(items) -> float:
    # Plain left fold; sum() on floats may compensate rounding on newer Pythons
    total = 0.0
    for item in items:
        total += item.price * item.quantity
    return total


class OrderStore:
    """In-memory order collection.

    Every operation runs under one lock, so a reader never sees a half-applied
    write and concurrent status updates serialize (last write wins). Orders
    handed back to callers are deep copies; the stored instances never leave
    the store.
    """

    def __init__(
        self,
        clock: Callable[[], str] = utc_timestamp,
        id_factory: Callable[[], str] = new_order_id,
    ):
        self._orders: List[Order] = []
        self._lock = threading.Lock()
        self._clock = clock
        self._id_factory = id_factory

    def create(self, payload: Any) -> Order:
        try:
            data = OrderCreate.model_validate(payload)
        except PydanticValidationError as exc:
            raise from_pydantic(exc) from exc

        with self._lock:
            order_id = self._id_factory()
            if self._find_index(order_id) is not None:
                raise RuntimeError(f"Generated order id {order_id} is already in use")

            now = self._clock()
            order = Order(
                id=order_id,
                customer_id=data.customer_id,
                items=data.items,
                shipping_address=data.shipping_address,
                status=OrderStatus.PENDING,
                total=order_total(data.items),
                created_at=now,
                updated_at=now,
            )
            self._orders.append(order)
            snapshot = order.model_copy(deep=True)

        logger.info("Order created: order_id=%s customer_id=%s", order.id, order.customer_id)
        return snapshot

    def list(
        self,
        status: Optional[Union[OrderStatus, str]] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Order], Pagination]:
        violations = []
        if page < 1:
            violations.append("page: Input should be greater than or equal to 1")
        if limit < 1:
            violations.append("limit: Input should be greater than or equal to 1")
        if violations:
            raise ValidationError(violations)

        with self._lock:
            if status:
                filtered = [order for order in self._orders if order.status == status]
            else:
                filtered = list(self._orders)
            start = (page - 1) * limit
            end = page * limit
            orders = [order.model_copy(deep=True) for order in filtered[start:end]]

        total = len(filtered)
        pagination = Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit))
        return orders, pagination

    def get(self, order_id: str) -> Order:
        with self._lock:
            index = self._find_index(order_id)
            if index is None:
                raise NotFoundError(order_id)
            return self._orders[index].model_copy(deep=True)

    def update_status(self, order_id: str, status: Any) -> Order:
        # Status is checked before existence
        if not isinstance(status, str) or status not in VALID_STATUSES:
            raise InvalidStatusError(status, VALID_STATUSES)
        new_status = OrderStatus(status)

        with self._lock:
            index = self._find_index(order_id)
            if index is None:
                raise NotFoundError(order_id)
            order = self._orders[index]
            order.status = new_status
            order.updated_at = self._clock()
            snapshot = order.model_copy(deep=True)

        logger.info("Order status updated: order_id=%s status=%s", order_id, new_status.value)
        return snapshot

    def delete(self, order_id: str) -> Order:
        with self._lock:
            index = self._find_index(order_id)
            if index is None:
                raise NotFoundError(order_id)
            order = self._orders.pop(index)

        logger.info("Order deleted: order_id=%s", order_id)
        return order

    def count(self) -> int:
        with self._lock:
            return len(self._orders)

    def _find_index(self, order_id: str) -> Optional[int]:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                return index
        return None
