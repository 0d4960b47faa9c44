"""
LeadsFlow CRM - Routes Auth
Login (username or email) / one-time codes by email or WhatsApp / session.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import RuntimeConfig, generate_id, get_runtime, now_iso
from models.auth import (
    ChangePassword,
    EmailCodeRequest,
    EmailCodeVerify,
    UserLogin,
    WhatsAppCodeRequest,
    WhatsAppCodeVerify,
)
from services.auth import (
    create_token,
    decode_token,
    generate_verification_code,
    hash_password,
    public_user,
    verify_password,
)
from services.database import get_db
from services.email_service import EmailService
from services.settings import get_auth_config
from services.whatsapp_service import WhatsAppService

logger = logging.getLogger("auth")

router = APIRouter(prefix="/auth", tags=["Auth"])
security = HTTPBearer(auto_error=False)

CODE_TTL_MINUTES = 10
CODE_MAX_ATTEMPTS = 5


# ==================== HELPERS ====================

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db=Depends(get_db),
    runtime: RuntimeConfig = Depends(get_runtime),
):
    """Utilisateur connecté depuis le token. Must still exist and be active."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Authentication required")

    payload = decode_token(credentials.credentials, runtime.jwt_secret)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await db.users.find_one({"id": payload.get("id")}, {"_id": 0, "password": 0})
    if not user or not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="User not found or inactive")

    return user


async def require_admin(user: dict = Depends(get_current_user)):
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


async def _issue_session(db, user: Dict, runtime: RuntimeConfig) -> Dict:
    """Stamp lastLogin and hand out a token"""
    now = now_iso()
    await db.users.update_one({"id": user["id"]}, {"$set": {"lastLogin": now}})
    user["lastLogin"] = now
    return {
        "token": create_token(user, runtime.jwt_secret),
        "user": public_user(user),
    }


async def _store_code(db, channel: str, target: str, user_id: str) -> str:
    """New one-time code for (channel, target). Replaces any pending one."""
    code = generate_verification_code()
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=CODE_TTL_MINUTES)
    await db.verification_codes.delete_many({"channel": channel, "target": target})
    await db.verification_codes.insert_one({
        "id": generate_id(),
        "channel": channel,
        "target": target,
        "code": hash_password(code),
        "userId": user_id,
        "attempts": 0,
        "expiresAt": expires_at.isoformat(),
        "createdAt": now_iso(),
    })
    return code


async def _consume_code(db, channel: str, target: str, code: str) -> str:
    """userId of a matching, unexpired code. The code is deleted on success."""
    if not code or not code.strip().isdigit() or len(code.strip()) != 6:
        raise HTTPException(status_code=400, detail="Invalid verification code format")

    pending = await db.verification_codes.find_one(
        {"channel": channel, "target": target, "expiresAt": {"$gt": now_iso()}},
        {"_id": 0},
    )
    if not pending or pending.get("attempts", 0) >= CODE_MAX_ATTEMPTS:
        raise HTTPException(status_code=401, detail="Verification code expired or not found")

    if not verify_password(code.strip(), pending["code"]):
        await db.verification_codes.update_one({"id": pending["id"]}, {"$inc": {"attempts": 1}})
        raise HTTPException(status_code=401, detail="Invalid verification code")

    await db.verification_codes.delete_one({"id": pending["id"]})
    return pending["userId"]


# ==================== LOGIN / LOGOUT ====================

@router.post("/login")
async def login(data: UserLogin, db=Depends(get_db), runtime: RuntimeConfig = Depends(get_runtime)):
    """Connexion. The email field accepts a username or an email."""
    identifier = data.email.strip().lower()
    user = await db.users.find_one(
        {"$or": [{"username": identifier}, {"email": identifier}]},
        {"_id": 0},
    )

    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is inactive")

    if not verify_password(data.password, user.get("password", "")):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    logger.info(f"User logged in: {user.get('username')} ({user.get('role')})")
    return await _issue_session(db, user, runtime)


@router.get("/me")
async def get_me(user: dict = Depends(get_current_user)):
    return {"user": user}


@router.post("/logout")
async def logout(user: dict = Depends(get_current_user)):
    # Tokens are stateless: the client drops it
    logger.info(f"User logged out: {user.get('username')}")
    return {"message": "Logged out successfully"}


@router.post("/change-password")
async def change_password(data: ChangePassword, user: dict = Depends(get_current_user), db=Depends(get_db)):
    stored = await db.users.find_one({"id": user["id"]}, {"_id": 0, "password": 1})
    if not stored:
        raise HTTPException(status_code=404, detail="User not found")

    if not verify_password(data.currentPassword, stored.get("password", "")):
        raise HTTPException(status_code=401, detail="Current password is incorrect")

    await db.users.update_one(
        {"id": user["id"]},
        {"$set": {"password": hash_password(data.newPassword), "updatedAt": now_iso()}},
    )
    logger.info(f"Password changed: {user.get('username')}")
    return {"message": "Password changed successfully"}


# ==================== EMAIL CODE ====================

@router.post("/email/request-code")
async def email_request_code(data: EmailCodeRequest, db=Depends(get_db)):
    auth_config = await get_auth_config(db)
    if not auth_config.get("emailAuthEnabled"):
        raise HTTPException(status_code=403, detail="Email authentication is not enabled")

    email = data.email.strip().lower()
    user = await db.users.find_one({"email": email}, {"_id": 0, "password": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is inactive")

    code = await _store_code(db, "email", email, user["id"])
    # smtplib blocks, keep it off the event loop
    sent = await asyncio.to_thread(
        EmailService(auth_config).send_verification_code, email, code, user.get("name") or user["username"],
    )
    if not sent:
        await db.verification_codes.delete_many({"channel": "email", "target": email})
        raise HTTPException(status_code=500, detail="Failed to send verification code")

    logger.info(f"Email verification code requested for {email}")
    return {"success": True, "message": "Verification code sent to email"}


@router.post("/email/verify-code")
async def email_verify_code(data: EmailCodeVerify, db=Depends(get_db), runtime: RuntimeConfig = Depends(get_runtime)):
    auth_config = await get_auth_config(db)
    if not auth_config.get("emailAuthEnabled"):
        raise HTTPException(status_code=403, detail="Email authentication is not enabled")

    email = data.email.strip().lower()
    user_id = await _consume_code(db, "email", email, data.code)

    user = await db.users.find_one({"id": user_id}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is inactive")

    logger.info(f"User logged in via email: {user.get('username')}")
    return await _issue_session(db, user, runtime)


# ==================== WHATSAPP CODE ====================

@router.post("/whatsapp/request-code")
async def whatsapp_request_code(data: WhatsAppCodeRequest, db=Depends(get_db)):
    auth_config = await get_auth_config(db)
    if not auth_config.get("whatsappEnabled"):
        raise HTTPException(status_code=403, detail="WhatsApp authentication is not enabled")

    phone = data.phoneNumber.strip()
    if not phone:
        raise HTTPException(status_code=400, detail="Phone number is required")

    user = await db.users.find_one({"phone": phone}, {"_id": 0, "password": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is inactive")

    code = await _store_code(db, "whatsapp", phone, user["id"])
    sent = await WhatsAppService(auth_config).send_verification_code(phone, code, user.get("name") or user["username"])
    if not sent:
        await db.verification_codes.delete_many({"channel": "whatsapp", "target": phone})
        raise HTTPException(status_code=500, detail="Failed to send WhatsApp verification code")

    logger.info(f"WhatsApp verification code requested for user {user['username']}")
    return {"success": True, "message": "Verification code sent via WhatsApp"}


@router.post("/whatsapp/verify-code")
async def whatsapp_verify_code(data: WhatsAppCodeVerify, db=Depends(get_db), runtime: RuntimeConfig = Depends(get_runtime)):
    auth_config = await get_auth_config(db)
    if not auth_config.get("whatsappEnabled"):
        raise HTTPException(status_code=403, detail="WhatsApp authentication is not enabled")

    phone = data.phoneNumber.strip()
    user_id = await _consume_code(db, "whatsapp", phone, data.code)

    user = await db.users.find_one({"id": user_id}, {"_id": 0})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if not user.get("isActive", True):
        raise HTTPException(status_code=401, detail="Account is inactive")

    logger.info(f"User logged in via WhatsApp: {user.get('username')}")
    return await _issue_session(db, user, runtime)
