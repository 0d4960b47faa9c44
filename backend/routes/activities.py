"""
LeadsFlow CRM - Routes Activities (lead timeline, read-only)
"""

from fastapi import APIRouter, Depends

from routes.auth import get_current_user
from services.activity_logger import get_lead_activities
from services.database import get_db

router = APIRouter(prefix="/activities", tags=["Activities"])


@router.get("/lead/{lead_id}")
async def list_lead_activities(lead_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await get_lead_activities(db, lead_id)
