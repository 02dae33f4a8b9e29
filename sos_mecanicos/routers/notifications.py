"""
Notification inbox routes.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sos_mecanicos.auth import get_current_active_user
from sos_mecanicos.database import get_db
from sos_mecanicos.errors import MESSAGES, NotFound
from sos_mecanicos.models.notification import Notification
from sos_mecanicos.models.profile import Profile
from sos_mecanicos.schemas.notification import Notification as NotificationSchema, UnreadCount

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationSchema])
async def list_notifications(
    unread_only: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """
    The caller's notifications, newest first.
    """
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    result = await db.execute(query.order_by(Notification.created_at.desc(), Notification.id.desc()))
    return result.scalars().all()


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id, Notification.read.is_(False)
        )
    )
    return UnreadCount(unread=result.scalar_one())


@router.post("/read-all", response_model=UnreadCount)
async def mark_all_read(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """Mark every notification as read."""
    await db.execute(
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.read.is_(False))
        .values(read=True)
    )
    await db.commit()
    return UnreadCount(unread=0)


@router.post("/{notification_id}/read", response_model=NotificationSchema)
async def mark_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user),
):
    """Mark one of the caller's notifications as read."""
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != current_user.id:
        raise NotFound(MESSAGES["notification_not_found"])
    if not notification.read:
        notification.read = True
        await db.commit()
        await db.refresh(notification)
    return notification
