import copy
import itertools
from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio

from order_api.main import create_app
from order_api.store import OrderStore

VALID_ORDER = {
    "customerId": "customer-123",
    "items": [
        {
            "productId": "product-1",
            "quantity": 2,
            "price": 29.99,
        }
    ],
    "shippingAddress": {
        "street": "123 Main St",
        "city": "New York",
        "zipCode": "10001",
        "country": "USA",
    },
}


@pytest.fixture
def valid_order():
    return copy.deepcopy(VALID_ORDER)


@pytest.fixture
def tick_clock():
    """A clock that moves forward one second on every call."""
    start = datetime(2026, 1, 1, tzinfo=timezone.utc)
    ticks = itertools.count()

    def clock():
        now = start + timedelta(seconds=next(ticks))
        return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    return clock


@pytest.fixture
def store():
    return OrderStore()


@pytest.fixture
def app(store):
    return create_app(store)


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
