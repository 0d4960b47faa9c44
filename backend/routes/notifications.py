"""
LeadsFlow CRM - Routes Notifications
Each user only ever sees and touches their own notifications.
"""

from fastapi import APIRouter, Depends, HTTPException

from routes.auth import get_current_user
from services.database import get_db

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("")
async def list_notifications(user: dict = Depends(get_current_user), db=Depends(get_db)):
    """50 newest"""
    return await db.notifications.find({"recipient": user["id"]}, {"_id": 0}) \
        .sort("createdAt", -1) \
        .limit(50) \
        .to_list(50)


@router.patch("/read-all")
async def mark_all_read(user: dict = Depends(get_current_user), db=Depends(get_db)):
    result = await db.notifications.update_many(
        {"recipient": user["id"], "isRead": False},
        {"$set": {"isRead": True}},
    )
    return {"message": "All notifications marked as read", "count": result.modified_count}


@router.patch("/{notification_id}/read")
async def mark_read(notification_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    result = await db.notifications.update_one(
        {"id": notification_id, "recipient": user["id"]},
        {"$set": {"isRead": True}},
    )
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Notification not found")
    return await db.notifications.find_one({"id": notification_id}, {"_id": 0})


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: dict = Depends(get_current_user), db=Depends(get_db)):
    result = await db.notifications.delete_one({"id": notification_id, "recipient": user["id"]})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification deleted"}
