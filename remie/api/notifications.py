from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session
from remie.database import get_db
from remie.middleware.auth import get_current_user
from remie.models.notification import Notification
from remie.models.user import User
from remie.schemas.common import MessageResponse, Pagination
from remie.schemas.notification import NotificationListResponse, NotificationResponse
from remie.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
        unread_only: bool = False,
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    notifications, total = NotificationService.get_user_notifications(
        db, current_user.id, unread_only, page, limit
    )
    unread_count = db.query(func.count(Notification.id)).filter(
        Notification.user_id == current_user.id,
        Notification.is_read == False,
    ).scalar()

    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread_count or 0,
        pagination=Pagination.build(page, limit, total),
    )


@router.put("/read-all", response_model=MessageResponse)
async def mark_all_read(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    count = NotificationService.mark_all_read(db, current_user.id)
    return MessageResponse(message=f"{count} notifications marked as read")


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
        notification_id: str,
        current_user: User = Depends(get_current_user),
        db: Session = Depends(get_db),
):
    notification = NotificationService.mark_read(db, notification_id, current_user.id)
    if not notification:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return NotificationResponse.model_validate(notification)
