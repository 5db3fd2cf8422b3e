"""HTTP client for the WhatsApp Cloud API."""

import logging
from typing import Any

import httpx

from wacrm.config import settings
from wacrm.core.exceptions import WhatsAppAPIError

logger = logging.getLogger(__name__)


class WhatsAppCloudClient:
    """Sends messages from one business phone number."""

    def __init__(self, phone_number_id: str, access_token: str | None = None):
        self.phone_number_id = phone_number_id
        self.base_url = settings.WHATSAPP_API_URL.rstrip("/")
        self.access_token = access_token if access_token is not None else settings.WHATSAPP_ACCESS_TOKEN
        logger.debug(
            f"WhatsAppCloudClient initialized: base_url={self.base_url}, "
            f"token={'set' if self.access_token else 'none'}"
        )

    def get_auth_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs,
    ) -> dict[str, Any]:
        """Make an HTTP request to the Cloud API."""
        url = f"{self.base_url}{path}"
        logger.info(f"WhatsApp API request: {method} {url}")

        async with httpx.AsyncClient(timeout=30.0) as client:
            headers = kwargs.pop("headers", {})
            headers.update(self.get_auth_header())

            try:
                response = await client.request(method, url, headers=headers, **kwargs)
            except httpx.RequestError as e:
                logger.error(f"WhatsApp API connection error: {e}")
                raise WhatsAppAPIError(f"Connection error: {e}")

            logger.info(f"WhatsApp API response: {response.status_code}")

            if response.status_code >= 400:
                logger.error(f"WhatsApp API error: {response.status_code} - {response.text}")
                raise WhatsAppAPIError(*_error_details(response))

            return response.json()

    async def send(self, payload: dict[str, Any]) -> str:
        """Send a message payload; returns the provider message id."""
        result = await self._request(
            "POST",
            f"/{self.phone_number_id}/messages",
            json={"messaging_product": "whatsapp", "recipient_type": "individual", **payload},
        )
        messages = result.get("messages") or []
        if not messages or not messages[0].get("id"):
            raise WhatsAppAPIError("response did not include a message id")
        return messages[0]["id"]

    async def send_text(self, to: str, body: str, preview_url: bool = False) -> str:
        """Send a free-form text message."""
        return await self.send(
            {"to": to, "type": "text", "text": {"body": body, "preview_url": preview_url}}
        )

    async def send_template(
        self,
        to: str,
        template_name: str,
        params: list[str] | None = None,
        language_code: str | None = None,
    ) -> str:
        """Send a template message with positional body parameters."""
        template: dict[str, Any] = {
            "name": template_name,
            "language": {"code": language_code or settings.WHATSAPP_TEMPLATE_LANGUAGE},
        }
        if params:
            template["components"] = [
                {
                    "type": "body",
                    "parameters": [{"type": "text", "text": p} for p in params],
                }
            ]
        return await self.send({"to": to, "type": "template", "template": template})

    async def get_business_profile(self) -> dict[str, Any]:
        """Fetch the number's business profile; used as a connection test."""
        return await self._request(
            "GET",
            f"/{self.phone_number_id}/whatsapp_business_profile",
        )


def _error_details(response: httpx.Response) -> tuple[str, list[dict[str, Any]]]:
    """Message and error list from a Graph API error body."""
    try:
        error = response.json().get("error") or {}
    except ValueError:
        return response.text or f"HTTP {response.status_code}", []
    detail = error.get("message") or f"HTTP {response.status_code}"
    return detail, [error] if error else []
