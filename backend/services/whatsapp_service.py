"""
LeadsFlow CRM - Service WhatsApp (Cloud API)

Text messages through the Graph API: POST /{phoneNumberId}/messages
"""

import logging
import os
from typing import Dict

import httpx

logger = logging.getLogger("whatsapp_service")

GRAPH_API_URL = os.environ.get("WHATSAPP_GRAPH_API_URL", "https://graph.facebook.com/v18.0")
HTTP_TIMEOUT = 15.0


class WhatsAppService:

    def __init__(self, auth_config: Dict, base_url: str = GRAPH_API_URL):
        self.enabled = bool(auth_config.get("whatsappEnabled"))
        self.phone_number_id = auth_config.get("whatsappPhoneNumberId") or ""
        self.access_token = auth_config.get("whatsappAccessToken") or ""
        self.base_url = base_url.rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.enabled and self.phone_number_id and self.access_token)

    @property
    def _headers(self) -> Dict:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def test_connection(self) -> Dict:
        """Read the phone number resource; success means the token can see it"""
        if not self.phone_number_id or not self.access_token:
            return {"success": False, "error": "WhatsApp credentials not configured"}
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                response = await client.get(
                    f"{self.base_url}/{self.phone_number_id}",
                    headers=self._headers,
                )
        except httpx.HTTPError as e:
            logger.error(f"[WHATSAPP] Connection test failed: {e}")
            return {"success": False, "error": str(e) or "WhatsApp API unreachable"}

        if response.status_code != 200:
            logger.error(f"[WHATSAPP] Connection test rejected: HTTP {response.status_code}")
            return {"success": False, "error": f"WhatsApp API returned HTTP {response.status_code}"}

        logger.info("[WHATSAPP] Connection verified")
        return {"success": True}

    async def send_text(self, phone_number: str, body: str) -> bool:
        if not self.is_configured():
            logger.error("[WHATSAPP] WhatsApp service not configured")
            return False

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": phone_number,
            "type": "text",
            "text": {"body": body},
        }
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                response = await client.post(
                    f"{self.base_url}/{self.phone_number_id}/messages",
                    json=payload,
                    headers=self._headers,
                )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[WHATSAPP] Send failed to {phone_number}: {e}")
            return False

        message_id = None
        if isinstance(data, dict):
            messages = data.get("messages")
            if isinstance(messages, list) and messages and isinstance(messages[0], dict):
                message_id = messages[0].get("id")
        if response.status_code >= 400 or not message_id:
            logger.error(f"[WHATSAPP] Send rejected: HTTP {response.status_code} {data}")
            return False

        logger.info(f"[WHATSAPP] Message sent to {phone_number}")
        return True

    async def send_verification_code(self, phone_number: str, code: str, user_name: str) -> bool:
        body = (
            f"Hello {user_name},\n\n"
            f"Your LeadsFlow CRM login code is:\n\n{code}\n\n"
            "This code will expire in 10 minutes."
        )
        return await self.send_text(phone_number, body)
