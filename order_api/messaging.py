import json
import logging
from typing import Optional
from uuid import uuid4

import aio_pika
from tenacity import retry, stop_after_attempt, wait_exponential

from order_api import config
from order_api.models import Order
from order_api.store import utc_timestamp

logger = logging.getLogger(__name__)

connection = None
channel = None
exchange = None


@retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10), reraise=True)
async def _connect(url: str):
    return await aio_pika.connect_robust(url)


async def setup_rabbitmq(url: Optional[str] = None):
    global connection, channel, exchange
    try:
        connection = await _connect(url or config.RABBITMQ_URL)
        channel = await connection.channel()
        exchange = await channel.declare_exchange(config.ORDER_EXCHANGE, aio_pika.ExchangeType.TOPIC, durable=True)
        logger.info("RabbitMQ setup complete.")
    except Exception:
        logger.exception("Error setting up RabbitMQ, order events will not be published")
        connection = channel = exchange = None


async def close_rabbitmq():
    global connection, channel, exchange
    if connection is not None:
        await connection.close()
    connection = channel = exchange = None


def build_event(event_type: str, order: Order, **fields) -> dict:
    event = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "timestamp": utc_timestamp(),
        "order_id": order.id,
    }
    event.update(fields)
    return event


async def publish_event(routing_key: str, message_data: dict):
    if exchange is None:
        logger.debug("Event publishing disabled, dropping %s", message_data["event_type"])
        return

    message = aio_pika.Message(
        json.dumps(message_data).encode("utf-8"),
        content_type="application/json",
        delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
    )
    try:
        await exchange.publish(message, routing_key=routing_key)
        logger.info("Published event to %s: %s", routing_key, message_data["event_type"])
    except Exception:
        # The order change already happened; a lost event must not fail the request
        logger.exception("Error publishing event %s", message_data["event_type"])
