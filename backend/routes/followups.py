"""
LeadsFlow CRM - Routes Follow-ups

Stored with isCompleted; exposed as status "scheduled" / "completed".
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException

from config import generate_id, now_iso
from models.lead import FollowUpCreate, FollowUpUpdate
from routes.auth import get_current_user
from services.database import get_db
from services.notifications import create_notification

logger = logging.getLogger("followups")

router = APIRouter(prefix="/followups", tags=["Follow-ups"])


async def present(db, followups: List[Dict]) -> List[Dict]:
    """Add status, leadName, assignedToName and createdByName"""
    lead_ids = list({f["leadId"] for f in followups if f.get("leadId")})
    user_ids = list({uid for f in followups for uid in (f.get("assignedTo"), f.get("userId")) if uid})

    leads = await db.leads.find({"id": {"$in": lead_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(len(lead_ids) or 1)
    users = await db.users.find({"id": {"$in": user_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(len(user_ids) or 1)
    lead_names = {l["id"]: l.get("name", "") for l in leads}
    user_names = {u["id"]: u.get("name", "") for u in users}

    for f in followups:
        f["status"] = "completed" if f.get("isCompleted") else "scheduled"
        f["leadName"] = lead_names.get(f.get("leadId"), "")
        f["assignedToName"] = user_names.get(f.get("assignedTo"), "")
        f["createdBy"] = f.get("userId")
        f["createdByName"] = user_names.get(f.get("userId"), "")
        f["completedDate"] = f.get("completedAt")
    return followups


@router.get("")
async def list_followups(user: dict = Depends(get_current_user), db=Depends(get_db)):
    followups = await db.followups.find({}, {"_id": 0}).sort("dueDate", 1).to_list(10000)
    return await present(db, followups)


@router.get("/lead/{lead_id}")
async def list_lead_followups(lead_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    followups = await db.followups.find({"leadId": lead_id}, {"_id": 0}).sort("dueDate", 1).to_list(1000)
    return await present(db, followups)


@router.post("", status_code=201)
async def create_followup(data: FollowUpCreate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    if not await db.leads.find_one({"id": data.leadId}, {"_id": 0, "id": 1}):
        raise HTTPException(status_code=404, detail="Lead not found")
    if not await db.users.find_one({"id": data.assignedTo}, {"_id": 0, "id": 1}):
        raise HTTPException(status_code=400, detail="Assigned user not found")

    now = now_iso()
    followup = {
        "id": generate_id(),
        "leadId": data.leadId,
        "userId": user["id"],
        "assignedTo": data.assignedTo,
        "dueDate": data.dueDate,
        "dueTime": data.dueTime,
        "notes": data.notes or "",
        "isCompleted": False,
        "completedAt": None,
        "createdAt": now,
        "updatedAt": now,
    }
    await db.followups.insert_one(followup)
    followup.pop("_id", None)

    if data.assignedTo != user["id"]:
        await create_notification(
            db,
            recipient=data.assignedTo,
            title="New Follow-up Scheduled",
            message=f"A follow-up has been scheduled for you on {data.dueDate} at {data.dueTime}",
            type="followup_upcoming",
            related_id=followup["id"],
        )

    logger.info(f"Follow-up created: {followup['id']} for lead {data.leadId}")
    return (await present(db, [followup]))[0]


@router.put("/{followup_id}")
async def update_followup(followup_id: str, data: FollowUpUpdate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    followup = await db.followups.find_one({"id": followup_id}, {"_id": 0})
    if not followup:
        raise HTTPException(status_code=404, detail="Follow-up not found")

    update = {"updatedAt": now_iso()}
    if data.dueDate:
        update["dueDate"] = data.dueDate
    if data.dueTime:
        update["dueTime"] = data.dueTime
    if data.notes is not None:
        update["notes"] = data.notes
    if data.status:
        update["isCompleted"] = data.status == "completed"
        if data.status == "completed":
            update["completedAt"] = data.completedDate or now_iso()
        else:
            update["completedAt"] = None

    await db.followups.update_one({"id": followup_id}, {"$set": update})
    logger.info(f"Follow-up updated: {followup_id}")

    updated = await db.followups.find_one({"id": followup_id}, {"_id": 0})
    return (await present(db, [updated]))[0]
