# barber_booking/services/notifications.py

import logging
from typing import List, Optional

from sqlmodel import Session, col, select

from ..db import transaction
from ..errors import NotFoundError
from ..models import Notification, NotificationStatus
from ..timenorm import storage_now

logger = logging.getLogger(__name__)


def create_notification(
    session: Session,
    user_id: int,
    type: str,
    title: str,
    message: str,
    status: NotificationStatus = NotificationStatus.pending,
    payload: Optional[dict] = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        status=status.value,
        payload=payload or {},
    )
    session.add(notification)
    session.flush()
    return notification


def update_notification_status(session: Session, notification_id: int, status: NotificationStatus) -> Notification:
    notification = session.get(Notification, notification_id)
    if notification is None:
        raise NotFoundError("Notification not found")
    notification.status = status.value
    notification.updated_at = storage_now()
    session.add(notification)
    session.flush()
    return notification


def list_for_user(session: Session, user_id: int, include_deleted: bool = False) -> List[Notification]:
    stmt = select(Notification).where(Notification.user_id == user_id)
    if not include_deleted:
        stmt = stmt.where(Notification.client_deleted == False)  # noqa: E712
    stmt = stmt.order_by(col(Notification.created_at).desc(), col(Notification.id).desc())
    return list(session.exec(stmt).all())


def clear_history_for_user(session: Session, user_id: int) -> int:
    """Soft delete; the first deletion timestamp is kept so the purge clock never resets."""
    now = storage_now()
    with transaction(session):
        notifications = session.exec(
            select(Notification).where(Notification.user_id == user_id)
        ).all()
        for n in notifications:
            n.client_deleted = True
            n.deleted_at = n.deleted_at or now
            n.updated_at = now
            session.add(n)

    logger.info(f"Cleared notification history for user {user_id} ({len(notifications)} rows)")
    return len(notifications)
