from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from nightwatch.database import Base


class User(Base):
    """Участник дозора (управляется сервисом авторизации)"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    role = Column(String, nullable=False, default="guest")  # admin, owl, guest
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    bookings = relationship("Booking", back_populates="user", foreign_keys="Booking.user_id")
    recurring_assignments = relationship("RecurringAssignment", back_populates="user")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
