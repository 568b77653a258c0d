import json
import logging

import aio_pika

from .config import RABBITMQ_URL

logger = logging.getLogger(__name__)

EXCHANGE = "shop"

connection: aio_pika.RobustConnection = None
channel: aio_pika.abc.AbstractChannel = None
exchange: aio_pika.Exchange = None


async def start(url: str = RABBITMQ_URL):
    global connection, channel, exchange
    if not url:
        logger.info("RABBITMQ_URL not set, ledger events are not published")
        return
    connection = await aio_pika.connect_robust(url)
    channel = await connection.channel()
    exchange = await channel.declare_exchange(EXCHANGE, aio_pika.ExchangeType.TOPIC)


async def stop():
    global connection, channel, exchange
    if connection:
        await connection.close()
    connection = channel = exchange = None


async def publish(key: str, payload: dict):
    if exchange is None:
        return
    try:
        await exchange.publish(
            aio_pika.Message(
                body=json.dumps({"type": key, **payload}).encode(),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            ),
            routing_key=key,
        )
    except (aio_pika.exceptions.AMQPError, ConnectionError):
        # the ledger change is already committed at this point
        logger.exception("failed to publish %s", key)
