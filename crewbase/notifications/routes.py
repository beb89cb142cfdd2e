"""Notification routes: list own, mark as read."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from crewbase.api.dependencies import ServiceContainer, get_container
from crewbase.auth.policies import require_session
from crewbase.core.models import UserSummary

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    user: UserSummary = Depends(require_session),
    container: ServiceContainer = Depends(get_container),
):
    notifications = await container.notifications.list_for(user.id)
    return {
        "success": True,
        "notifications": [n.model_dump(mode="json") for n in notifications],
    }


@router.put("/{notification_id}/mark-as-read")
async def mark_as_read(
    notification_id: str,
    user: UserSummary = Depends(require_session),
    container: ServiceContainer = Depends(get_container),
):
    await container.notifications.mark_read(notification_id, user.id)
    return {"success": True, "message": "Notification marked as read."}
