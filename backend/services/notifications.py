"""
In-app notifications

Best-effort: a notification that cannot be stored never fails the
operation that triggered it.
"""

import logging
from typing import Dict, Optional

from config import generate_id, now_iso

logger = logging.getLogger("notifications")

NOTIFICATION_TYPES = ["lead_new", "followup_upcoming", "followup_missed", "system"]


async def create_notification(
    db,
    recipient: str,
    title: str,
    message: str,
    type: str = "system",
    related_id: Optional[str] = None,
) -> Optional[Dict]:
    if type not in NOTIFICATION_TYPES:
        raise ValueError(f"Unknown notification type: {type}")

    doc = {
        "id": generate_id(),
        "recipient": recipient,
        "title": title,
        "message": message,
        "type": type,
        "relatedId": related_id,
        "isRead": False,
        "createdAt": now_iso(),
    }
    try:
        await db.notifications.insert_one(doc)
    except Exception as e:
        logger.error(f"Failed to create notification for {recipient}: {e}")
        return None

    doc.pop("_id", None)
    return doc
