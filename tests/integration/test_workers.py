"""Integration tests for the transport and retention workers."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from conftest import CONTACT_WA_ID, PHONE_NUMBER_ID, T0

from wacrm.core.exceptions import WhatsAppAPIError
from wacrm.models.message import MessageStatus
from wacrm.schemas.content import TemplateContent, TextContent
from wacrm.services.message_store import MessageStore
from wacrm.services.queue import OUTGOING_QUEUE, publish_outgoing_message
from wacrm.workers.retention_worker import purge_expired_messages
from wacrm.workers.transport_worker import deliver_message


@pytest.fixture
def cloud_client():
    client = MagicMock()
    client.send_text = AsyncMock(return_value="wamid.PROVIDER")
    client.send_template = AsyncMock(return_value="wamid.TEMPLATE")
    return client


@pytest.fixture
async def conversation(make_conversation, approved_number):
    return await make_conversation(T0, whatsapp_number_id=approved_number.id)


class TestDeliverMessage:
    """Tests for the transport worker's delivery step."""

    @pytest.mark.asyncio
    async def test_sends_text_and_binds_provider_id(
        self, db_session, message_repo, conversation, cloud_client
    ):
        message = await MessageStore(message_repo).record_outbound(
            conversation.id, TextContent(body="Hello"), T0
        )
        factory = MagicMock(return_value=cloud_client)

        delivered = await deliver_message(db_session, message.id, client_factory=factory)

        factory.assert_called_once_with(PHONE_NUMBER_ID)
        cloud_client.send_text.assert_awaited_once_with(CONTACT_WA_ID, "Hello")
        assert delivered.provider_message_id == "wamid.PROVIDER"
        assert delivered.status == MessageStatus.SENT

    @pytest.mark.asyncio
    async def test_sends_template(self, db_session, message_repo, conversation, cloud_client):
        content = TemplateContent(template_name="order_update", template_params=["42"])
        message = await MessageStore(message_repo).record_outbound(conversation.id, content, T0)

        await deliver_message(db_session, message.id, client_factory=lambda _: cloud_client)

        cloud_client.send_template.assert_awaited_once_with(
            CONTACT_WA_ID, "order_update", ["42"], "en_US"
        )

    @pytest.mark.asyncio
    async def test_provider_rejection_marks_failed(
        self, db_session, message_repo, conversation, cloud_client
    ):
        error = {"code": 131047, "message": "Re-engagement message"}
        cloud_client.send_text.side_effect = WhatsAppAPIError("Re-engagement message", [error])
        message = await MessageStore(message_repo).record_outbound(
            conversation.id, TextContent(body="Hello"), T0
        )

        result = await deliver_message(db_session, message.id, client_factory=lambda _: cloud_client)

        assert result.status == MessageStatus.FAILED
        assert result.extra_data == {"errors": [error]}

    @pytest.mark.asyncio
    async def test_already_delivered_not_resent(
        self, db_session, message_repo, conversation, cloud_client
    ):
        store = MessageStore(message_repo)
        message = await store.record_outbound(conversation.id, TextContent(body="Hello"), T0)
        await store.apply_status_update(message.provider_message_id, "delivered", T0)

        await deliver_message(db_session, message.id, client_factory=lambda _: cloud_client)

        cloud_client.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_message_dropped(self, db_session, cloud_client):
        assert await deliver_message(db_session, uuid4(), client_factory=lambda _: cloud_client) is None


class TestPublishOutgoingMessage:
    @pytest.mark.asyncio
    async def test_publishes_persistent_message(self, mock_rabbitmq_connection):
        message_id = uuid4()

        with patch(
            "wacrm.services.queue.aio_pika.connect_robust",
            new=AsyncMock(return_value=mock_rabbitmq_connection),
        ):
            await publish_outgoing_message(message_id)

        channel = await mock_rabbitmq_connection.channel()
        channel.declare_queue.assert_awaited_once_with(OUTGOING_QUEUE, durable=True)
        published = channel.default_exchange.publish.await_args
        assert published.kwargs["routing_key"] == OUTGOING_QUEUE
        assert json.loads(published.args[0].body) == {"message_id": str(message_id)}


class TestRetention:
    @pytest.mark.asyncio
    async def test_purges_messages_older_than_thirty_days(
        self, db_session, message_repo, conversation
    ):
        store = MessageStore(message_repo)
        old, _ = await store.record_inbound(conversation.id, "wamid.OLD", TextContent(body="a"), T0)
        await store.record_inbound(conversation.id, "wamid.NEW", TextContent(body="b"), T0)
        old.created_at = T0 - timedelta(days=31)
        await db_session.commit()

        deleted = await purge_expired_messages(db_session, now=T0)

        assert deleted == 1
        assert await message_repo.get_by_provider_id("wamid.OLD") is None
