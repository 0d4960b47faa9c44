"""
LeadsFlow CRM - Routes Setup
First-run wizard. Always reachable: the gate lets /api/setup/* through.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from config import is_production
from models.setup import ConnectionTestRequest, SetupCompleteRequest, ValidateLicenseRequest
from services.errors import SetupError
from services.license import generate_test_license, validate_license
from services.setup import SetupOrchestrator

logger = logging.getLogger("setup")

router = APIRouter(prefix="/setup", tags=["Setup"])


def get_orchestrator(request: Request) -> SetupOrchestrator:
    state = request.app.state
    return SetupOrchestrator(
        store=state.store,
        runtime=state.runtime,
        database=state.database,
        connection_tester=state.connection_tester,
    )


@router.get("/status")
async def setup_status(request: Request):
    store = request.app.state.store
    required = store.is_setup_required()
    status = {"setupRequired": required, "setupCompleted": not required}
    if required:
        status["configWritable"] = store.can_persist()
    return status


@router.post("/test-connection")
async def probe_database(data: ConnectionTestRequest, request: Request):
    """Probe a MongoDB server. Failure is reported in the body, not the status."""
    errors = []
    if not data.mongodbUri.strip():
        errors.append("MongoDB URI is required")
    if not data.databaseName.strip():
        errors.append("Database name is required")
    if errors:
        raise HTTPException(status_code=400, detail={"error": "Invalid connection data", "errors": errors})

    result = await request.app.state.connection_tester(data.mongodbUri.strip(), data.databaseName.strip())
    if result.get("success"):
        return {"success": True, "message": "Database connection successful"}
    return {"success": False, "error": result.get("error") or "Failed to connect to database"}


@router.post("/validate-license")
async def validate_license_key(data: ValidateLicenseRequest):
    if not data.licenseKey.strip():
        raise HTTPException(status_code=400, detail={
            "error": "Invalid license data",
            "errors": ["License key is required"],
        })
    return validate_license(data.licenseKey).model_dump(exclude_none=True)


@router.get("/generate-test-license")
async def get_test_license():
    if is_production():
        raise HTTPException(status_code=403, detail="Not available in production")
    return {"licenseKey": generate_test_license()}


@router.post("/complete")
async def complete_setup(data: SetupCompleteRequest, request: Request):
    orchestrator = get_orchestrator(request)
    try:
        return await orchestrator.complete_setup(data)
    except SetupError as e:
        logger.error(f"[SETUP] Setup failed ({type(e).__name__}): {e.message}")
        raise HTTPException(status_code=e.status_code, detail={"error": e.message, "errors": e.errors})
    except Exception:
        logger.exception("[SETUP] Unexpected setup failure")
        raise HTTPException(status_code=500, detail={"error": "Setup failed", "errors": []})
