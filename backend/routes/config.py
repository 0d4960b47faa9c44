"""
LeadsFlow CRM - Routes Config
Pipeline stages, lead sources, lead statuses, system settings.
Lecture: utilisateur connecté. Création / modification: admin.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from config import generate_id, now_iso
from models.config import LeadSourceCreate, LeadStatusCreate, PipelineStageCreate, SystemSettingsUpdate
from routes.auth import get_current_user, require_admin
from services.database import get_db
from services.settings import get_system_settings, update_system_settings

logger = logging.getLogger("config_routes")

router = APIRouter(prefix="/config", tags=["Config"])

SETTINGS_FIELDS = ("companyName", "companyEmail", "companyPhone", "dateFormat", "timeFormat", "timezone")


async def _insert_named(collection, doc: dict, label: str) -> dict:
    if await collection.find_one({"name": doc["name"]}, {"_id": 0, "id": 1}):
        raise HTTPException(status_code=400, detail=f"{label} '{doc['name']}' already exists")
    try:
        await collection.insert_one(doc)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail=f"{label} '{doc['name']}' already exists")
    doc.pop("_id", None)
    return doc


# ==================== PIPELINE STAGES ====================

@router.get("/pipeline-stages")
async def list_pipeline_stages(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await db.pipeline_stages.find({}, {"_id": 0}).sort("order", 1).to_list(500)


@router.post("/pipeline-stages", status_code=201)
async def create_pipeline_stage(data: PipelineStageCreate, user: dict = Depends(require_admin), db=Depends(get_db)):
    doc = {"id": generate_id(), "name": data.name, "order": data.order, "color": data.color, "createdAt": now_iso()}
    stage = await _insert_named(db.pipeline_stages, doc, "Pipeline stage")
    logger.info(f"Pipeline stage created: {data.name}")
    return stage


# ==================== LEAD SOURCES ====================

@router.get("/lead-sources")
async def list_lead_sources(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await db.lead_sources.find({}, {"_id": 0}).sort("name", 1).to_list(500)


@router.post("/lead-sources", status_code=201)
async def create_lead_source(data: LeadSourceCreate, user: dict = Depends(require_admin), db=Depends(get_db)):
    doc = {"id": generate_id(), "name": data.name, "createdAt": now_iso()}
    source = await _insert_named(db.lead_sources, doc, "Lead source")
    logger.info(f"Lead source created: {data.name}")
    return source


# ==================== LEAD STATUSES ====================

@router.get("/lead-statuses")
async def list_lead_statuses(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await db.lead_statuses.find({}, {"_id": 0}).sort("name", 1).to_list(500)


@router.post("/lead-statuses", status_code=201)
async def create_lead_status(data: LeadStatusCreate, user: dict = Depends(require_admin), db=Depends(get_db)):
    doc = {"id": generate_id(), "name": data.name, "color": data.color, "createdAt": now_iso()}
    status = await _insert_named(db.lead_statuses, doc, "Lead status")
    logger.info(f"Lead status created: {data.name}")
    return status


# ==================== SYSTEM SETTINGS ====================

@router.get("/settings")
async def get_settings(user: dict = Depends(get_current_user), db=Depends(get_db)):
    settings = await get_system_settings(db)
    return {k: settings.get(k) for k in SETTINGS_FIELDS}


@router.put("/settings")
async def put_settings(data: SystemSettingsUpdate, user: dict = Depends(require_admin), db=Depends(get_db)):
    changes = {k: v for k, v in data.model_dump(exclude_unset=True).items()
               if v is not None and (v != "" or k == "companyPhone")}
    settings = await update_system_settings(db, changes)
    logger.info(f"System settings updated by {user.get('username')}: {sorted(changes)}")
    return {k: settings.get(k) for k in SETTINGS_FIELDS}
