from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from nightwatch.database import Base
from nightwatch.models.types import UTCDateTime


class Booking(Base):
    """Бронь одного участника на одну смену графика"""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    shift_start = Column(UTCDateTime, nullable=False)
    shift_end = Column(UTCDateTime, nullable=False)  # shift_start + schedules.duration_minutes
    buddy_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    buddy_name = Column(String, nullable=True)
    attended = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    buddy_user = relationship("User", foreign_keys=[buddy_user_id])
    schedule = relationship("Schedule", back_populates="bookings")

    # Единственная защита от двойной брони одной смены
    __table_args__ = (
        UniqueConstraint("schedule_id", "shift_start", name="uq_booking_schedule_shift_start"),
    )

    @property
    def schedule_name(self):
        return self.schedule.name if self.schedule else None
