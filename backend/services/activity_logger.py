"""
Service de journalisation des activités (lead timeline)
"""

import logging
from typing import Dict, Optional

from config import generate_id, now_iso

logger = logging.getLogger("activity_logger")

VALID_ACTIONS = [
    "created",
    "updated",
    "status_changed",
    "assigned",
    "note_added",
    "email_sent",
    "call_made",
    "meeting_scheduled",
]


async def log_activity(db, lead_id: str, user: Dict, action: str, details: str = "") -> Optional[Dict]:
    """
    Append an entry to a lead's timeline.

    The timeline is informational: a failed write is logged and the calling
    operation goes on.
    """
    if action not in VALID_ACTIONS:
        raise ValueError(f"Unknown activity action: {action}")

    entry = {
        "id": generate_id(),
        "leadId": lead_id,
        "userId": user.get("id", "system"),
        "action": action,
        "details": details,
        "createdAt": now_iso(),
    }
    try:
        await db.activities.insert_one(entry)
    except Exception as e:
        logger.error(f"Failed to log activity {action} on lead {lead_id}: {e}")
        return None

    entry.pop("_id", None)
    return entry


async def get_lead_activities(db, lead_id: str, limit: int = 200):
    """Timeline of a lead, newest first, with the author's name"""
    activities = await db.activities.find({"leadId": lead_id}, {"_id": 0}) \
        .sort("createdAt", -1) \
        .to_list(limit)

    user_ids = list({a.get("userId") for a in activities if a.get("userId")})
    users = await db.users.find(
        {"id": {"$in": user_ids}},
        {"_id": 0, "id": 1, "name": 1, "username": 1}
    ).to_list(len(user_ids) or 1)
    by_id = {u["id"]: u for u in users}

    for activity in activities:
        author = by_id.get(activity.get("userId"), {})
        activity["userName"] = author.get("name", "")
        activity["username"] = author.get("username", "")
    return activities
