"""
LeadsFlow CRM - Routes Leads

- every lead carries assignedToName, resolved from users
- create/update write the lead timeline (activities)
- delete cascades to notes, activities and follow-ups
"""

import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import ValidationError

from config import generate_id, now_iso
from models.lead import LeadBulkImport, LeadCreate, LeadUpdate
from routes.auth import get_current_user
from services.activity_logger import log_activity
from services.database import get_db
from services.notifications import create_notification

logger = logging.getLogger("leads")

router = APIRouter(prefix="/leads", tags=["Leads"])


# ==================== HELPERS ====================

async def with_assignee_names(db, leads: List[Dict]) -> List[Dict]:
    """Add assignedToName to each lead (one users query for the batch)"""
    user_ids = list({lead.get("assignedTo") for lead in leads if lead.get("assignedTo")})
    names = {}
    if user_ids:
        users = await db.users.find({"id": {"$in": user_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(len(user_ids))
        names = {u["id"]: u.get("name", "") for u in users}
    for lead in leads:
        lead.setdefault("customFields", {})
        lead["assignedToName"] = names.get(lead.get("assignedTo"), "")
    return leads


def build_lead_doc(data: LeadCreate) -> Dict:
    now = now_iso()
    return {
        "id": generate_id(),
        "name": data.name,
        "phone": data.phone,
        "email": data.email,
        "source": data.source,
        "status": data.status,
        "assignedTo": data.assignedTo,
        "leadType": data.leadType,
        "companyName": data.companyName,
        "productInterest": data.productInterest,
        "priority": data.priority,
        "initialNotes": data.initialNotes,
        "customFields": data.customFields or {},
        "createdAt": now,
        "updatedAt": now,
    }


async def _get_lead_or_404(db, lead_id: str) -> Dict:
    lead = await db.leads.find_one({"id": lead_id}, {"_id": 0})
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead


# ==================== CRUD ====================

@router.get("")
async def list_leads(user: dict = Depends(get_current_user), db=Depends(get_db)):
    leads = await db.leads.find({}, {"_id": 0}).sort("createdAt", -1).to_list(10000)
    return await with_assignee_names(db, leads)


@router.get("/{lead_id}")
async def get_lead(lead_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    lead = await _get_lead_or_404(db, lead_id)
    return (await with_assignee_names(db, [lead]))[0]


@router.post("", status_code=201)
async def create_lead(data: LeadCreate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    assignee = await db.users.find_one({"id": data.assignedTo}, {"_id": 0, "id": 1})
    if not assignee:
        raise HTTPException(status_code=400, detail="Assigned user not found")

    lead = build_lead_doc(data)
    await db.leads.insert_one(lead)
    lead.pop("_id", None)

    await log_activity(db, lead["id"], user, "created", "Lead created")

    if data.assignedTo != user["id"]:
        await create_notification(
            db,
            recipient=data.assignedTo,
            title="New Lead Assigned",
            message=f"You have been assigned a new lead: {data.name}",
            type="lead_new",
            related_id=lead["id"],
        )

    logger.info(f"Lead created: {lead['id']} ({data.name}) by {user.get('username')}")
    return (await with_assignee_names(db, [lead]))[0]


@router.put("/{lead_id}")
async def update_lead(lead_id: str, data: LeadUpdate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    lead = await _get_lead_or_404(db, lead_id)

    changes = data.model_dump(exclude_unset=True)
    # Required fields are only replaced by non-empty values
    for key in ("name", "phone", "source", "status", "assignedTo", "leadType", "priority", "customFields"):
        if key in changes and not changes[key]:
            changes.pop(key)

    if "assignedTo" in changes and changes["assignedTo"] != lead.get("assignedTo"):
        if not await db.users.find_one({"id": changes["assignedTo"]}, {"_id": 0, "id": 1}):
            raise HTTPException(status_code=400, detail="Assigned user not found")

    old_status = lead.get("status")
    status_changed = "status" in changes and changes["status"] != old_status

    changes["updatedAt"] = now_iso()
    await db.leads.update_one({"id": lead_id}, {"$set": changes})

    if status_changed:
        await log_activity(db, lead_id, user, "status_changed",
                           f"Status changed from {old_status} to {changes['status']}")
    else:
        await log_activity(db, lead_id, user, "updated", "Lead information updated")

    logger.info(f"Lead updated: {lead_id}")
    updated = await _get_lead_or_404(db, lead_id)
    return (await with_assignee_names(db, [updated]))[0]


@router.delete("/{lead_id}")
async def delete_lead(lead_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    result = await db.leads.delete_one({"id": lead_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Lead not found")

    await db.notes.delete_many({"leadId": lead_id})
    await db.activities.delete_many({"leadId": lead_id})
    await db.followups.delete_many({"leadId": lead_id})

    logger.info(f"Lead deleted: {lead_id} by {user.get('username')}")
    return {"message": "Lead deleted successfully"}


# ==================== IMPORT ====================

@router.post("/bulk-import")
async def bulk_import(data: LeadBulkImport, user: dict = Depends(get_current_user), db=Depends(get_db)):
    """Row by row: an invalid or failing row is logged and skipped"""
    if not data.leads:
        raise HTTPException(status_code=400, detail="Invalid leads data")

    imported = 0
    failed = []
    for index, row in enumerate(data.leads):
        try:
            lead = build_lead_doc(LeadCreate(**row))
            await db.leads.insert_one(lead)
        except ValidationError as e:
            logger.error(f"Bulk import row {index} rejected: {e.error_count()} validation error(s)")
            failed.append(index)
            continue
        except Exception as e:
            logger.error(f"Bulk import row {index} failed: {e}")
            failed.append(index)
            continue

        await log_activity(db, lead["id"], user, "created", "Lead imported via Excel")
        imported += 1

    logger.info(f"Bulk import completed: {imported} imported, {len(failed)} failed")
    return {
        "message": f"Successfully imported {imported} leads",
        "count": imported,
        "failedRows": failed,
    }
