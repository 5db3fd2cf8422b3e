"""Integration tests for conversation endpoints."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from conftest import T0

from wacrm.models.conversation import ConversationStatus
from wacrm.schemas.content import TextContent
from wacrm.services.message_store import MessageStore


@pytest.fixture
def now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


class TestConversationEndpoints:
    """Tests for /api/v1/conversations."""

    @pytest.mark.asyncio
    async def test_requires_account_header(self, api_client):
        response = await api_client.get("/api/v1/conversations", headers={"X-Account-Id": ""})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_expires_stale_sessions(
        self, api_client, make_conversation, message_repo, now
    ):
        stale = await make_conversation(T0, contact_number="6281000000001")
        fresh = await make_conversation(now - timedelta(hours=1), contact_number="6281000000002")
        await MessageStore(message_repo).record_inbound(
            fresh.id, "wamid.F", TextContent(body="ping"), now - timedelta(hours=1)
        )

        response = await api_client.get("/api/v1/conversations")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        by_id = {item["id"]: item for item in data["items"]}
        assert by_id[str(stale.id)]["status"] == "expired"
        assert by_id[str(fresh.id)]["status"] == "active"
        assert by_id[str(fresh.id)]["unread_count"] == 1
        assert by_id[str(fresh.id)]["last_message"]["content"]["body"] == "ping"

    @pytest.mark.asyncio
    async def test_other_accounts_not_visible(self, api_client, make_conversation):
        foreign = await make_conversation(T0, owner=uuid4())

        response = await api_client.get(f"/api/v1/conversations/{foreign.id}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_stats(self, api_client, make_conversation):
        await make_conversation(T0, status=ConversationStatus.EXPIRED)
        await make_conversation(T0, contact_number="6281000000002", status=ConversationStatus.OPTED_OUT)

        response = await api_client.get("/api/v1/conversations/stats")

        assert response.json() == {"total": 2, "active": 0, "expired": 1, "opted_out": 1}

    @pytest.mark.asyncio
    async def test_stats_count_elapsed_session_as_expired(self, api_client, make_conversation):
        await make_conversation(T0)

        response = await api_client.get("/api/v1/conversations/stats")

        assert response.json() == {"total": 1, "active": 0, "expired": 1, "opted_out": 0}

    @pytest.mark.asyncio
    async def test_status_filter_sees_elapsed_session_as_expired(
        self, api_client, make_conversation, now
    ):
        stale = await make_conversation(T0, contact_number="6281000000001")
        fresh = await make_conversation(now - timedelta(hours=1), contact_number="6281000000002")

        expired = await api_client.get("/api/v1/conversations", params={"status": "expired"})
        active = await api_client.get("/api/v1/conversations", params={"status": "active"})

        assert expired.json()["total"] == 1
        assert expired.json()["items"][0]["id"] == str(stale.id)
        assert active.json()["total"] == 1
        assert active.json()["items"][0]["id"] == str(fresh.id)
        assert active.json()["items"][0]["status"] == "active"

    @pytest.mark.asyncio
    async def test_stats_date_range(self, api_client, make_conversation, now):
        await make_conversation(now - timedelta(hours=1), status=ConversationStatus.OPTED_OUT)

        inside = await api_client.get(
            "/api/v1/conversations/stats",
            params={"date_from": (now - timedelta(days=1)).isoformat()},
        )
        outside = await api_client.get(
            "/api/v1/conversations/stats",
            params={"date_to": (now - timedelta(days=1)).isoformat()},
        )

        assert inside.json()["total"] == 1
        assert outside.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_opt_out_then_send_conflicts(
        self, api_client, make_conversation, mock_dispatch, now
    ):
        conversation = await make_conversation(now - timedelta(minutes=10))

        response = await api_client.patch(
            f"/api/v1/conversations/{conversation.id}/status", json={"status": "opted-out"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "opted-out"
        assert response.json()["session_end_at"] is not None

        response = await api_client.post(
            f"/api/v1/conversations/{conversation.id}/messages",
            json={"content": {"type": "text", "body": "Hello?"}},
        )

        assert response.status_code == 409
        mock_dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_after_window_conflicts(
        self, api_client, make_conversation, mock_dispatch
    ):
        conversation = await make_conversation(T0)

        response = await api_client.post(
            f"/api/v1/conversations/{conversation.id}/messages",
            json={"content": {"type": "text", "body": "Still there?"}},
        )

        assert response.status_code == 409
        assert "expired" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_send_unknown_conversation(self, api_client, mock_dispatch):
        response = await api_client.post(
            f"/api/v1/conversations/{uuid4()}/messages",
            json={"content": {"type": "text", "body": "Hi"}},
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_send_template(self, api_client, make_conversation, mock_dispatch, now):
        conversation = await make_conversation(now - timedelta(minutes=1))

        response = await api_client.post(
            f"/api/v1/conversations/{conversation.id}/messages",
            json={
                "content": {
                    "type": "template",
                    "template_name": "order_update",
                    "template_params": ["42"],
                },
                "is_automated": True,
            },
        )

        assert response.status_code == 201
        messages = await api_client.get(f"/api/v1/conversations/{conversation.id}/messages")
        item = messages.json()["items"][0]
        assert item["content_type"] == "template"
        assert item["is_automated"] is True

    @pytest.mark.asyncio
    async def test_send_rejects_inbound_only_content(self, api_client, make_conversation, now):
        conversation = await make_conversation(now)

        response = await api_client.post(
            f"/api/v1/conversations/{conversation.id}/messages",
            json={"content": {"type": "image", "media_id": "media-1"}},
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_dispatch_failure_is_bad_gateway(
        self, api_client, make_conversation, mock_dispatch, now
    ):
        mock_dispatch.side_effect = ConnectionError("broker down")
        conversation = await make_conversation(now - timedelta(minutes=1))

        response = await api_client.post(
            f"/api/v1/conversations/{conversation.id}/messages",
            json={"content": {"type": "text", "body": "Hi"}},
        )

        assert response.status_code == 502
        messages = await api_client.get(f"/api/v1/conversations/{conversation.id}/messages")
        assert messages.json()["items"][0]["status"] == "failed"

    @pytest.mark.asyncio
    async def test_mark_read(self, api_client, make_conversation, message_repo, now):
        conversation = await make_conversation(now)
        store = MessageStore(message_repo)
        await store.record_inbound(conversation.id, "wamid.1", TextContent(body="a"), now)
        await store.record_inbound(conversation.id, "wamid.2", TextContent(body="b"), now)

        response = await api_client.post(f"/api/v1/conversations/{conversation.id}/read")

        assert response.status_code == 200
        assert response.json() == {"updated": 2}
