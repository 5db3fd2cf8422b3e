"""Unit tests for WhatsAppCloudClient."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from wacrm.core.exceptions import WhatsAppAPIError
from wacrm.services.whatsapp_client import WhatsAppCloudClient


def _response(status_code: int, payload: dict) -> httpx.Response:
    return httpx.Response(
        status_code,
        json=payload,
        request=httpx.Request("POST", "https://graph.facebook.com/v18.0/123/messages"),
    )


@pytest.fixture
def client() -> WhatsAppCloudClient:
    with patch("wacrm.services.whatsapp_client.settings") as mock_settings:
        mock_settings.WHATSAPP_API_URL = "https://graph.facebook.com/v18.0/"
        mock_settings.WHATSAPP_ACCESS_TOKEN = "token-123"
        return WhatsAppCloudClient("123")


class TestWhatsAppCloudClient:
    """Tests for WhatsAppCloudClient."""

    def test_bearer_auth_header(self, client):
        assert client.get_auth_header() == {"Authorization": "Bearer token-123"}
        assert client.base_url == "https://graph.facebook.com/v18.0"

    @pytest.mark.asyncio
    async def test_send_text(self, client):
        request = AsyncMock(return_value=_response(200, {"messages": [{"id": "wamid.OK"}]}))

        with patch.object(httpx.AsyncClient, "request", request):
            provider_id = await client.send_text("6281111222333", "Hello")

        assert provider_id == "wamid.OK"
        method, url = request.await_args.args
        assert method == "POST"
        assert url == "https://graph.facebook.com/v18.0/123/messages"
        body = request.await_args.kwargs["json"]
        assert body["messaging_product"] == "whatsapp"
        assert body["to"] == "6281111222333"
        assert body["text"]["body"] == "Hello"
        assert request.await_args.kwargs["headers"]["Authorization"] == "Bearer token-123"

    @pytest.mark.asyncio
    async def test_send_template_with_params(self, client):
        request = AsyncMock(return_value=_response(200, {"messages": [{"id": "wamid.T"}]}))

        with patch.object(httpx.AsyncClient, "request", request):
            await client.send_template("6281111222333", "order_update", ["42"], "id")

        template = request.await_args.kwargs["json"]["template"]
        assert template["name"] == "order_update"
        assert template["language"] == {"code": "id"}
        assert template["components"][0]["parameters"] == [{"type": "text", "text": "42"}]

    @pytest.mark.asyncio
    async def test_api_error_carries_provider_errors(self, client):
        error = {"message": "Re-engagement message", "code": 131047}
        request = AsyncMock(return_value=_response(400, {"error": error}))

        with patch.object(httpx.AsyncClient, "request", request):
            with pytest.raises(WhatsAppAPIError) as exc_info:
                await client.send_text("6281111222333", "Hello")

        assert exc_info.value.status_code == 502
        assert exc_info.value.errors == [error]
        assert "Re-engagement message" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_connection_error(self, client):
        request = AsyncMock(side_effect=httpx.ConnectError("refused"))

        with patch.object(httpx.AsyncClient, "request", request):
            with pytest.raises(WhatsAppAPIError):
                await client.send_text("6281111222333", "Hello")

    @pytest.mark.asyncio
    async def test_missing_message_id(self, client):
        request = AsyncMock(return_value=_response(200, {"messages": []}))

        with patch.object(httpx.AsyncClient, "request", request):
            with pytest.raises(WhatsAppAPIError):
                await client.send_text("6281111222333", "Hello")
