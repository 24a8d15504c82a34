from fastapi import APIRouter, Depends, HTTPException, Query

from app.core.roles import get_current_profile
from app.models.notification import Notification
from app.services.notification_service import NotificationService

router = APIRouter(tags=["Notifications"])


def get_notification_service() -> NotificationService:
    return NotificationService()


@router.get("/notifications")
async def list_notifications(
    limit: int = Query(default=20, ge=1, le=100),
    unread_only: bool = Query(default=False),
    profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    """
    获取当前用户的通知列表（只返回本人的记录）
    """
    rows = service.list_for_user(user_id=profile["id"], limit=limit, unread_only=unread_only)
    data = [Notification.model_validate(r).model_dump(mode="json") for r in rows]
    return {"success": True, "data": data}


@router.get("/notifications/unread-count")
async def get_unread_count(
    profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    return {"success": True, "data": {"count": service.unread_count(user_id=profile["id"])}}


@router.post("/notifications/mark-all-read")
async def mark_all_notifications_read(
    profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    """
    一键已读（只影响当前用户）
    """
    updated = service.mark_all_read(user_id=profile["id"])
    return {"success": True, "data": {"updated": updated}}


@router.patch("/notifications/{id}/read")
async def mark_notification_read(
    id: str,
    profile: dict = Depends(get_current_profile),
    service: NotificationService = Depends(get_notification_service),
):
    """
    将通知标记为已读（仅允许更新自己的记录）
    """
    updated = service.mark_read(user_id=profile["id"], notification_id=id)
    if updated is None:
        # 中文注释: 不存在或不属于当前用户，统一 404，避免泄露他人通知是否存在
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"success": True, "data": Notification.model_validate(updated).model_dump(mode="json")}
