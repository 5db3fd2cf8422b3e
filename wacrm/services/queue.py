"""Message queue publisher for the outbound transport."""

import json
import logging
from uuid import UUID

import aio_pika

from wacrm.config import settings

logger = logging.getLogger(__name__)

OUTGOING_QUEUE = "outgoing_messages"


async def publish_outgoing_message(message_id: UUID) -> None:
    """Hand a recorded outbound message to the transport worker."""
    connection = await aio_pika.connect_robust(settings.RABBITMQ_URL)
    async with connection:
        channel = await connection.channel()
        await channel.declare_queue(OUTGOING_QUEUE, durable=True)

        await channel.default_exchange.publish(
            aio_pika.Message(
                body=json.dumps({"message_id": str(message_id)}).encode(),
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            ),
            routing_key=OUTGOING_QUEUE,
        )
        logger.debug(f"Outbound message {message_id} published to queue")
