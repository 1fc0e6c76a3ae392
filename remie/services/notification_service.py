from sqlalchemy.orm import Session
from remie.core.config import get_settings
from remie.models.notification import Notification
from remie.models.user import User
from remie.services.email_service import EmailService
from typing import Optional, List, Tuple


class NotificationService:
    """
    Service layer for in-app notifications.
    """

    @staticmethod
    def notify(
            db: Session,
            user_id: str,
            notification_type: str,
            title: str,
            message: str,
            data: Optional[dict] = None,
    ) -> Notification:
        """
        Add a notification to the session.

        The caller commits, so the notification lands in the same database
        transaction as the money movement it describes.

        :return: The pending Notification object
        """
        notification = Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data or {},
        )
        db.add(notification)
        return notification

    @staticmethod
    def deliver_email(user: User, notification: Notification) -> None:
        """
        Mirror a committed notification to the user's inbox.
        """
        if not get_settings().EMAILS_ENABLED:
            return
        EmailService.send_notification(user.email, user.first_name, notification.title, notification.message)

    @staticmethod
    def get_user_notifications(
            db: Session,
            user_id: str,
            unread_only: bool = False,
            page: int = 1,
            limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read == False)

        total = query.count()
        notifications = query.order_by(Notification.created_at.desc())\
            .offset((page - 1) * limit).limit(limit).all()

        return notifications, total

    @staticmethod
    def mark_read(db: Session, notification_id: str, user_id: str) -> Optional[Notification]:
        notification = db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).first()

        if not notification:
            return None

        notification.is_read = True
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: str) -> int:
        """
        :return: Number of notifications marked as read
        """
        count = db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read == False,
        ).update({Notification.is_read: True}, synchronize_session=False)
        db.commit()
        return count
