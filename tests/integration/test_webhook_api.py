"""Integration tests for the WhatsApp webhook endpoints."""

import hashlib
import hmac
import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from conftest import CONTACT_WA_ID, status_update, text_message, webhook_payload
from redis.exceptions import ConnectionError as RedisConnectionError

from wacrm.config import settings
from wacrm.core.exceptions import StoreUnavailableError
from wacrm.db.repositories import ConversationRepository, MessageRepository
from wacrm.models.message import MessageStatus


class TestWebhookVerification:
    """Subscription handshake."""

    @pytest.mark.asyncio
    async def test_challenge_echoed(self, api_client, monkeypatch):
        monkeypatch.setattr(settings, "WHATSAPP_VERIFY_TOKEN", "verify-me")

        response = await api_client.get(
            "/webhooks/whatsapp",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "verify-me",
                "hub.challenge": "1158201444",
            },
        )

        assert response.status_code == 200
        assert response.text == "1158201444"

    @pytest.mark.asyncio
    async def test_wrong_token_forbidden(self, api_client, monkeypatch):
        monkeypatch.setattr(settings, "WHATSAPP_VERIFY_TOKEN", "verify-me")

        response = await api_client.get(
            "/webhooks/whatsapp",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "nope",
                "hub.challenge": "1158201444",
            },
        )

        assert response.status_code == 403
        assert response.text == "Forbidden"


class TestWebhookReceive:
    """Message and status notifications."""

    @pytest.mark.asyncio
    async def test_inbound_then_outbound(
        self, api_client, db_session, approved_number, account_id, mock_dispatch, mock_event_store
    ):
        received_at = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(minutes=5)
        payload = webhook_payload(messages=[text_message("wamid.IN1", received_at, body="Halo")])

        response = await api_client.post("/webhooks/whatsapp", json=payload)

        assert response.status_code == 200
        assert response.text == "OK"
        mock_event_store.store_delivery.assert_awaited_once()
        mock_event_store.update_status.assert_awaited_once()

        conversation = await ConversationRepository(db_session).find_latest_open(
            account_id, CONTACT_WA_ID
        )
        assert conversation.session_start_at == received_at

        response = await api_client.post(
            f"/api/v1/conversations/{conversation.id}/messages",
            json={"content": {"type": "text", "body": "Terima kasih!"}},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "sent"
        assert data["message_id"].startswith("msg_")
        mock_dispatch.assert_awaited_once()

        # The provider later reports delivery against the bound id
        messages = MessageRepository(db_session)
        sent = await messages.get_by_provider_id(data["message_id"])
        await messages.replace_provider_id(sent.id, "wamid.OUT1")
        status_payload = webhook_payload(
            statuses=[status_update("wamid.OUT1", "delivered", received_at + timedelta(minutes=6))]
        )

        response = await api_client.post("/webhooks/whatsapp", json=status_payload)

        assert response.status_code == 200
        delivered = await messages.get(sent.id, fresh=True)
        assert delivered.status == MessageStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_duplicate_delivery_acknowledged(
        self, api_client, db_session, approved_number
    ):
        sent_at = datetime.now(timezone.utc).replace(microsecond=0)
        payload = webhook_payload(messages=[text_message("wamid.DUP", sent_at)])

        first = await api_client.post("/webhooks/whatsapp", json=payload)
        second = await api_client.post("/webhooks/whatsapp", json=payload)

        assert first.status_code == 200
        assert second.status_code == 200
        message = await MessageRepository(db_session).get_by_provider_id("wamid.DUP")
        _, total = await MessageRepository(db_session).list(
            conversation_id=message.conversation_id
        )
        assert total == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_server_error(self, api_client):
        response = await api_client.post(
            "/webhooks/whatsapp",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 500

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"object": "whatsapp_business_account", "entry": 5},
            {"object": "whatsapp_business_account", "entry": [{"changes": 7}]},
        ],
    )
    async def test_malformed_envelope_acknowledged(self, api_client, mock_event_store, payload):
        response = await api_client.post("/webhooks/whatsapp", json=payload)

        assert response.status_code == 200
        assert mock_event_store.store_delivery.await_args.args[1] == []

    @pytest.mark.asyncio
    async def test_store_unavailable_is_server_error(self, api_client, mock_event_store):
        with patch(
            "wacrm.api.webhooks.WebhookIngestionService.process_payload",
            new=AsyncMock(side_effect=StoreUnavailableError("connection refused")),
        ):
            response = await api_client.post("/webhooks/whatsapp", json=webhook_payload(statuses=[]))

        assert response.status_code == 500
        assert mock_event_store.update_status.await_args.args[1] == "failed"

    @pytest.mark.asyncio
    async def test_event_log_outage_does_not_block_ingestion(
        self, api_client, db_session, approved_number, mock_event_store
    ):
        mock_event_store.store_delivery.side_effect = RedisConnectionError("redis down")
        sent_at = datetime.now(timezone.utc).replace(microsecond=0)

        response = await api_client.post(
            "/webhooks/whatsapp",
            json=webhook_payload(messages=[text_message("wamid.NOREDIS", sent_at)]),
        )

        assert response.status_code == 200
        assert await MessageRepository(db_session).get_by_provider_id("wamid.NOREDIS")

    @pytest.mark.asyncio
    async def test_bad_signature_acknowledged_but_ignored(
        self, api_client, db_session, approved_number, monkeypatch
    ):
        monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", "app-secret")
        sent_at = datetime.now(timezone.utc).replace(microsecond=0)
        body = json.dumps(webhook_payload(messages=[text_message("wamid.SIG", sent_at)])).encode()

        response = await api_client.post(
            "/webhooks/whatsapp",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature-256": "sha256=bad"},
        )

        assert response.status_code == 200
        assert await MessageRepository(db_session).get_by_provider_id("wamid.SIG") is None

    @pytest.mark.asyncio
    async def test_valid_signature_ingested(
        self, api_client, db_session, approved_number, monkeypatch
    ):
        monkeypatch.setattr(settings, "WHATSAPP_APP_SECRET", "app-secret")
        sent_at = datetime.now(timezone.utc).replace(microsecond=0)
        body = json.dumps(webhook_payload(messages=[text_message("wamid.SIGOK", sent_at)])).encode()
        signature = hmac.new(b"app-secret", body, hashlib.sha256).hexdigest()

        response = await api_client.post(
            "/webhooks/whatsapp",
            content=body,
            headers={"Content-Type": "application/json", "X-Hub-Signature-256": f"sha256={signature}"},
        )

        assert response.status_code == 200
        assert await MessageRepository(db_session).get_by_provider_id("wamid.SIGOK")
