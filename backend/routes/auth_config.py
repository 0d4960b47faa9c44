"""
LeadsFlow CRM - Routes Auth Config
Login channels (email SMTP, WhatsApp Cloud API), mounted under /config/auth.
Credentials are write-only: GET never returns them.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends

from config import now_iso
from models.config import EmailAuthConfigUpdate, WhatsAppAuthConfigUpdate
from routes.auth import get_current_user, require_admin
from services.database import get_db
from services.email_service import EmailService
from services.settings import get_auth_config, public_auth_config, update_auth_config
from services.whatsapp_service import WhatsAppService

logger = logging.getLogger("auth_config")

router = APIRouter(prefix="/config/auth", tags=["Auth Config"])


def _changes(data) -> dict:
    """Submitted fields; empty strings leave the stored value alone"""
    return {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None and v != ""}


@router.get("")
async def get_config(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return public_auth_config(await get_auth_config(db))


@router.get("/methods")
async def get_methods(db=Depends(get_db)):
    """Public: the login page needs it before anyone is signed in"""
    config = await get_auth_config(db)
    return {
        "methods": {
            "username": {
                "enabled": True,
                "name": "Username/Password",
                "requiresVerification": False,
                "configValid": True,
            },
            "email": {
                "enabled": bool(config.get("emailAuthEnabled")),
                "name": "Email",
                "requiresVerification": bool(config.get("emailVerificationRequired")),
                "configValid": bool(config.get("emailConfigValid")),
            },
            "whatsapp": {
                "enabled": bool(config.get("whatsappEnabled")),
                "name": "WhatsApp",
                "requiresVerification": True,
                "configValid": bool(config.get("whatsappConfigValid")),
            },
        }
    }


# ==================== EMAIL ====================

@router.post("/email")
async def update_email_config(data: EmailAuthConfigUpdate, user: dict = Depends(require_admin), db=Depends(get_db)):
    changes = _changes(data)
    # New SMTP settings have not been tested yet
    if any(k != "emailAuthEnabled" and k != "emailVerificationRequired" for k in changes):
        changes["emailConfigValid"] = False
    config = await update_auth_config(db, changes)
    logger.info(f"Email auth config updated by {user.get('username')}")
    return {
        "success": True,
        "message": "Email configuration updated",
        "config": {
            "emailAuthEnabled": config.get("emailAuthEnabled"),
            "emailVerificationRequired": config.get("emailVerificationRequired"),
            "emailConfigValid": config.get("emailConfigValid"),
        },
    }


@router.post("/email/test")
async def check_email_config(user: dict = Depends(require_admin), db=Depends(get_db)):
    result = await asyncio.to_thread(EmailService(await get_auth_config(db)).test_connection)
    if result["success"]:
        await update_auth_config(db, {"emailConfigValid": True, "lastEmailTestAt": now_iso()})
    else:
        await update_auth_config(db, {"emailConfigValid": False})
    return {
        "success": result["success"],
        "message": "Email service is working" if result["success"] else "Email service test failed",
        "error": result.get("error"),
    }


# ==================== WHATSAPP ====================

@router.post("/whatsapp")
async def update_whatsapp_config(data: WhatsAppAuthConfigUpdate, user: dict = Depends(require_admin), db=Depends(get_db)):
    changes = _changes(data)
    if any(k != "whatsappEnabled" for k in changes):
        changes["whatsappConfigValid"] = False
    config = await update_auth_config(db, changes)
    logger.info(f"WhatsApp auth config updated by {user.get('username')}")
    return {
        "success": True,
        "message": "WhatsApp configuration updated",
        "config": {
            "whatsappEnabled": config.get("whatsappEnabled"),
            "whatsappConfigValid": config.get("whatsappConfigValid"),
        },
    }


@router.post("/whatsapp/test")
async def check_whatsapp_config(user: dict = Depends(require_admin), db=Depends(get_db)):
    result = await WhatsAppService(await get_auth_config(db)).test_connection()
    if result["success"]:
        await update_auth_config(db, {"whatsappConfigValid": True, "lastWhatsappTestAt": now_iso()})
    else:
        await update_auth_config(db, {"whatsappConfigValid": False})
    return {
        "success": result["success"],
        "message": "WhatsApp service is working" if result["success"] else "WhatsApp service test failed",
        "error": result.get("error"),
    }
