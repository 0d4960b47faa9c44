"""
LeadsFlow CRM - Service Settings

Singleton documents keyed by "key":
- system_settings {key: "system"}: company identity, date/time display
- auth_configs {key: "auth"}: SMTP and WhatsApp login channels
"""

import logging
from typing import Any, Dict

from config import generate_id, now_iso
from services.seed_data import DEFAULT_SETTINGS

logger = logging.getLogger("settings")

SYSTEM_KEY = "system"
AUTH_KEY = "auth"

DEFAULT_AUTH_CONFIG = {
    "primaryMethod": "username-password",
    "emailAuthEnabled": False,
    "emailSmtpServer": "",
    "emailSmtpPort": 587,
    "emailSmtpUsername": "",
    "emailSmtpPassword": "",
    "emailSmtpSecure": True,
    "emailFromAddress": "",
    "emailVerificationRequired": True,
    "emailConfigValid": False,
    "lastEmailTestAt": None,
    "whatsappEnabled": False,
    "whatsappBusinessAccountId": "",
    "whatsappPhoneNumberId": "",
    "whatsappAccessToken": "",
    "whatsappWebhookToken": "",
    "whatsappConfigValid": False,
    "lastWhatsappTestAt": None,
}

# Never returned by GET /config/auth
SECRET_AUTH_FIELDS = ("emailSmtpPassword", "whatsappAccessToken", "whatsappWebhookToken")


async def _get_or_create(collection, key: str, defaults: Dict[str, Any]) -> Dict:
    doc = await collection.find_one({"key": key}, {"_id": 0})
    if doc:
        return {**defaults, **doc}

    now = now_iso()
    doc = {"id": generate_id(), "key": key, **defaults, "createdAt": now, "updatedAt": now}
    await collection.update_one({"key": key}, {"$setOnInsert": doc}, upsert=True)
    logger.info(f"Default {key} settings created")
    doc.pop("_id", None)
    return doc


async def _upsert(collection, key: str, data: Dict[str, Any], defaults: Dict[str, Any]) -> Dict:
    now = now_iso()
    data = {k: v for k, v in data.items() if k not in ("id", "key", "createdAt", "_id")}
    data["updatedAt"] = now
    insert_defaults = {k: v for k, v in defaults.items() if k not in data}
    await collection.update_one(
        {"key": key},
        {"$set": data, "$setOnInsert": {"id": generate_id(), **insert_defaults, "createdAt": now}},
        upsert=True,
    )
    result = await collection.find_one({"key": key}, {"_id": 0})
    return {**defaults, **(result or {})}


# ==================== SYSTEM SETTINGS ====================

async def get_system_settings(db) -> Dict:
    """Settings document, created with defaults on first read"""
    return await _get_or_create(db.system_settings, SYSTEM_KEY, DEFAULT_SETTINGS)


async def update_system_settings(db, data: Dict[str, Any]) -> Dict:
    return await _upsert(db.system_settings, SYSTEM_KEY, data, DEFAULT_SETTINGS)


# ==================== AUTH CONFIG ====================

async def get_auth_config(db) -> Dict:
    return await _get_or_create(db.auth_configs, AUTH_KEY, DEFAULT_AUTH_CONFIG)


async def update_auth_config(db, data: Dict[str, Any]) -> Dict:
    return await _upsert(db.auth_configs, AUTH_KEY, data, DEFAULT_AUTH_CONFIG)


def public_auth_config(config: Dict) -> Dict:
    """Auth config without credentials, plus whether each secret is set"""
    public = {k: v for k, v in config.items() if k not in SECRET_AUTH_FIELDS}
    public["emailSmtpPasswordSet"] = bool(config.get("emailSmtpPassword"))
    public["whatsappAccessTokenSet"] = bool(config.get("whatsappAccessToken"))
    return public
