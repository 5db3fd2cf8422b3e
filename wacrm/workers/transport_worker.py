"""RabbitMQ consumer that delivers recorded outbound messages."""

import asyncio
import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from uuid import UUID

import aio_pika
from sqlalchemy.ext.asyncio import AsyncSession

from wacrm.config import settings
from wacrm.core.exceptions import WhatsAppAPIError
from wacrm.core.telemetry import get_tracer, setup_worker_telemetry
from wacrm.db.repositories import (
    ConversationRepository,
    MessageRepository,
    WhatsAppNumberRepository,
)
from wacrm.db.session import async_session_maker
from wacrm.models import Message
from wacrm.models.message import MessageDirection, MessageStatus
from wacrm.schemas.content import TemplateContent, TextContent, parse_content
from wacrm.services.message_store import MessageStore
from wacrm.services.queue import OUTGOING_QUEUE
from wacrm.services.whatsapp_client import WhatsAppCloudClient

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

ClientFactory = Callable[[str], WhatsAppCloudClient]


async def deliver_message(
    db: AsyncSession,
    message_id: UUID,
    client_factory: ClientFactory = WhatsAppCloudClient,
) -> Message | None:
    """Send one recorded outbound message through the Cloud API.

    Provider rejections are recorded as a failed status. Returns the
    updated message, or None when there was nothing to deliver.
    """
    messages = MessageRepository(db)
    store = MessageStore(messages)

    message = await messages.get(message_id)
    if message is None or message.direction != MessageDirection.OUTBOUND:
        logger.warning(f"Outbound message {message_id} not found, dropping")
        return None
    if message.status != MessageStatus.SENT:
        logger.info(f"Message {message_id} already {message.status.value}, skipping")
        return message

    conversation = await ConversationRepository(db).get(message.conversation_id)
    phone_number_id = settings.WHATSAPP_PHONE_NUMBER_ID
    if conversation.whatsapp_number_id is not None:
        number = await WhatsAppNumberRepository(db).get(conversation.whatsapp_number_id)
        if number is not None and number.phone_number_id:
            phone_number_id = number.phone_number_id

    local_id = message.provider_message_id
    client = client_factory(phone_number_id)
    content = parse_content(message.content)

    with tracer.start_as_current_span("outbound.deliver") as span:
        span.set_attribute("message.id", str(message_id))
        try:
            if isinstance(content, TextContent):
                provider_id = await client.send_text(conversation.contact_number, content.body)
            elif isinstance(content, TemplateContent):
                provider_id = await client.send_template(
                    conversation.contact_number,
                    content.template_name,
                    content.template_params,
                    content.language_code,
                )
            else:
                raise WhatsAppAPIError(f"content type {content.type} cannot be sent")
        except WhatsAppAPIError as e:
            logger.error(f"Delivery of message {message_id} failed: {e.detail}")
            return await store.apply_status_update(
                local_id,
                MessageStatus.FAILED.value,
                datetime.now(timezone.utc),
                errors=e.errors or [{"title": "send failed", "message": e.detail}],
            )

    await store.bind_provider_id(message_id, provider_id)
    logger.info(f"Message {message_id} accepted by provider as {provider_id}")
    return await messages.get(message_id, fresh=True)


async def process_message(message: aio_pika.IncomingMessage) -> None:
    """Process a single message from the queue."""
    async with message.process():
        try:
            data = json.loads(message.body.decode())
            message_id = UUID(data["message_id"])

            async with async_session_maker() as db:
                await deliver_message(db, message_id)

        except Exception as e:
            logger.error(f"Error delivering outbound message: {e}")
            raise


async def main() -> None:
    """Main consumer loop."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    setup_worker_telemetry()
    logger.info("Starting transport worker...")

    connection = await aio_pika.connect_robust(settings.RABBITMQ_URL)

    async with connection:
        channel = await connection.channel()
        await channel.set_qos(prefetch_count=settings.TRANSPORT_PREFETCH_COUNT)

        queue = await channel.declare_queue(OUTGOING_QUEUE, durable=True)

        logger.info(f"Listening for messages on '{OUTGOING_QUEUE}' queue...")
        await queue.consume(process_message)

        # Run forever
        await asyncio.Future()


if __name__ == "__main__":
    asyncio.run(main())
