from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.sql import func
from nightwatch.database import Base
from nightwatch.models.types import UTCDateTime


class OutboxItem(Base):
    """Сообщение в очереди уведомлений (доставка выполняется отдельным сервисом)"""
    __tablename__ = "outbox"

    id = Column(Integer, primary_key=True, index=True)
    message_type = Column(String, nullable=False)  # BOOKING_CONFIRMATION, ADMIN_SHIFT_ASSIGNMENT
    recipient = Column(String, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    payload = Column(Text, nullable=True)  # JSON
    status = Column(String, nullable=False, default="pending")
    send_at = Column(UTCDateTime, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
