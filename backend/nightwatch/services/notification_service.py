from sqlalchemy.orm import Session
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from nightwatch.models import Booking, OutboxItem
import json
import logging

logger = logging.getLogger(__name__)

BOOKING_CONFIRMATION = "BOOKING_CONFIRMATION"
ADMIN_SHIFT_ASSIGNMENT = "ADMIN_SHIFT_ASSIGNMENT"


class NotificationService:
    """Постановка уведомлений в outbox. Доставкой занимается отдельный сервис"""

    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, message_type: str, user_id: int, payload: Dict[str, Any]) -> OutboxItem:
        """Записать сообщение в outbox со статусом pending"""
        item = OutboxItem(
            message_type=message_type,
            recipient=str(user_id),
            user_id=user_id,
            payload=json.dumps(payload, ensure_ascii=False),
            status="pending",
            send_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        logger.debug(f"Сообщение {message_type} для пользователя {user_id} поставлено в очередь")
        return item

    def enqueue_booking_notification(
        self,
        booking: Booking,
        message_type: str = BOOKING_CONFIRMATION,
        assigned_by: Optional[str] = None
    ) -> OutboxItem:
        payload = {
            "booking_id": booking.id,
            "user_id": booking.user_id,
            "shift_start": booking.shift_start.isoformat(),
        }
        if assigned_by:
            payload["assigned_by"] = assigned_by
        return self.enqueue(message_type, booking.user_id, payload)
