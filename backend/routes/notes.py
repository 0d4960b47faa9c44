"""
LeadsFlow CRM - Routes Notes
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from config import generate_id, now_iso
from models.lead import NoteCreate
from routes.auth import get_current_user
from services.activity_logger import log_activity
from services.database import get_db

logger = logging.getLogger("notes")

router = APIRouter(prefix="/notes", tags=["Notes"])


async def _with_author(db, notes):
    user_ids = list({n.get("userId") for n in notes if n.get("userId")})
    users = await db.users.find({"id": {"$in": user_ids}}, {"_id": 0, "id": 1, "name": 1}).to_list(len(user_ids) or 1)
    names = {u["id"]: u.get("name", "") for u in users}
    for note in notes:
        note["userName"] = names.get(note.get("userId"), "")
    return notes


@router.get("/lead/{lead_id}")
async def list_lead_notes(lead_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    notes = await db.notes.find({"leadId": lead_id}, {"_id": 0}).sort("createdAt", -1).to_list(1000)
    return await _with_author(db, notes)


@router.post("", status_code=201)
async def create_note(data: NoteCreate, user: dict = Depends(get_current_user), db=Depends(get_db)):
    if not await db.leads.find_one({"id": data.leadId}, {"_id": 0, "id": 1}):
        raise HTTPException(status_code=404, detail="Lead not found")

    now = now_iso()
    note = {
        "id": generate_id(),
        "leadId": data.leadId,
        "userId": user["id"],
        "content": data.content,
        "createdAt": now,
        "updatedAt": now,
    }
    await db.notes.insert_one(note)
    note.pop("_id", None)

    await log_activity(db, data.leadId, user, "note_added", "Note added")

    logger.info(f"Note created: {note['id']} on lead {data.leadId}")
    note["userName"] = user.get("name", "")
    return note


@router.delete("/{note_id}")
async def delete_note(note_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    note = await db.notes.find_one({"id": note_id}, {"_id": 0})
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")

    # Creator or admin
    if note.get("userId") != user["id"] and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Not authorized to delete this note")

    await db.notes.delete_one({"id": note_id})
    logger.info(f"Note deleted: {note_id}")
    return {"message": "Note deleted successfully"}
