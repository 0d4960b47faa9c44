"""
LeadsFlow CRM - Routes Dashboard
"""

import logging
from collections import Counter
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from routes.auth import get_current_user
from services.database import get_db
from services.seed_data import CLOSED_STATUSES, CONVERTED_STATUS

logger = logging.getLogger("dashboard")

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def get_stats(user: dict = Depends(get_current_user), db=Depends(get_db)):
    """
    Totals over all leads and open follow-ups.
    Follow-up days compare on dueDate (YYYY-MM-DD) against today in UTC.
    """
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")

    leads = await db.leads.find({}, {"_id": 0, "status": 1, "source": 1, "assignedTo": 1}).to_list(100000)
    open_followups = await db.followups.find({"isCompleted": False}, {"_id": 0, "dueDate": 1}).to_list(100000)

    user_ids = list({l.get("assignedTo") for l in leads if l.get("assignedTo")})
    users = await db.users.find({"id": {"$in": user_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(len(user_ids) or 1)
    names = {u["id"]: u.get("name", "") for u in users}

    return {
        "totalLeads": len(leads),
        "activeLeads": sum(1 for l in leads if l.get("status") not in CLOSED_STATUSES),
        "convertedLeads": sum(1 for l in leads if l.get("status") == CONVERTED_STATUS),
        "todayFollowUps": sum(1 for f in open_followups if (f.get("dueDate") or "")[:10] == today),
        "overdueFollowUps": sum(1 for f in open_followups if f.get("dueDate") and f["dueDate"][:10] < today),
        "leadsByStatus": dict(Counter(l.get("status") for l in leads)),
        "leadsBySource": dict(Counter(l.get("source") for l in leads)),
        "leadsByUser": dict(Counter(names.get(l.get("assignedTo")) or "Unassigned" for l in leads)),
    }
