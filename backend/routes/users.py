"""
LeadsFlow CRM - Routes Users
Lecture: tout utilisateur connecté. Ecriture: admin.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pymongo.errors import DuplicateKeyError

from config import RuntimeConfig, generate_id, get_runtime, now_iso
from models.auth import UserCreate, UserUpdate
from routes.auth import get_current_user, require_admin
from services.auth import hash_password
from services.database import get_db
from services.license import can_add_user, validate_license

logger = logging.getLogger("users")

router = APIRouter(prefix="/users", tags=["Users"])

PUBLIC_FIELDS = {"_id": 0, "password": 0}


@router.get("")
async def list_users(user: dict = Depends(get_current_user), db=Depends(get_db)):
    return await db.users.find({}, PUBLIC_FIELDS).sort("createdAt", -1).to_list(1000)


@router.get("/{user_id}")
async def get_user(user_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    target = await db.users.find_one({"id": user_id}, PUBLIC_FIELDS)
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    return target


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    user: dict = Depends(require_admin),
    db=Depends(get_db),
    runtime: RuntimeConfig = Depends(get_runtime),
):
    username = data.username.lower()
    if await db.users.find_one({"username": username}, {"_id": 0, "id": 1}):
        raise HTTPException(status_code=400, detail="User with this username already exists")

    license_result = validate_license(runtime.license_key)
    if not license_result.valid:
        raise HTTPException(status_code=403, detail=f"License check failed: {license_result.error}")
    if not can_add_user(license_result.data, await db.users.count_documents({})):
        raise HTTPException(
            status_code=403,
            detail=f"License allows at most {license_result.data.maxUsers} users",
        )

    now = now_iso()
    new_user = {
        "id": generate_id(),
        "username": username,
        "name": data.name,
        "email": data.email.strip().lower() if data.email else None,
        "phone": data.phone.strip() if data.phone else None,
        "password": hash_password(data.password),
        "role": data.role,
        "department": data.department,
        "isActive": True,
        "createdAt": now,
        "updatedAt": now,
    }
    try:
        await db.users.insert_one(new_user)
    except DuplicateKeyError:
        raise HTTPException(status_code=400, detail="User with this username already exists")

    logger.info(f"User created: {username} ({data.role}) by {user.get('username')}")
    new_user.pop("password", None)
    new_user.pop("_id", None)
    return new_user


@router.put("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, user: dict = Depends(require_admin), db=Depends(get_db)):
    target = await db.users.find_one({"id": user_id}, {"_id": 0})
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    changes = data.model_dump(exclude_unset=True)
    update = {}

    username = (changes.pop("username", None) or "").strip().lower()
    if username and username != target.get("username"):
        if await db.users.find_one({"username": username}, {"_id": 0, "id": 1}):
            raise HTTPException(status_code=400, detail="Username already exists")
        update["username"] = username

    password = changes.pop("password", None)
    if password:
        update["password"] = hash_password(password)

    if "email" in changes:
        changes["email"] = changes["email"].strip().lower() if changes["email"] else None
    if "phone" in changes:
        changes["phone"] = changes["phone"].strip() if changes["phone"] else None
    # Required fields cannot be blanked
    for key in ("name", "role", "isActive"):
        if key in changes and changes[key] in (None, ""):
            changes.pop(key)

    update.update(changes)
    update["updatedAt"] = now_iso()
    await db.users.update_one({"id": user_id}, {"$set": update})

    logger.info(f"User updated: {user_id} fields={sorted(k for k in update if k != 'password')}")
    return await db.users.find_one({"id": user_id}, PUBLIC_FIELDS)


@router.delete("/{user_id}")
async def delete_user(user_id: str, user: dict = Depends(require_admin), db=Depends(get_db)):
    if user_id == user["id"]:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    result = await db.users.delete_one({"id": user_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="User not found")

    logger.info(f"User deleted: {user_id} by {user.get('username')}")
    return {"message": "User deleted successfully"}
