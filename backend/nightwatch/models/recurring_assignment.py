from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Index, CheckConstraint, text
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from nightwatch.database import Base


class RecurringAssignment(Base):
    """Постоянное назначение участника на смену по дню недели"""
    __tablename__ = "recurring_assignments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    buddy_name = Column(String, nullable=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = воскресенье ... 6 = суббота
    schedule_id = Column(Integer, ForeignKey("schedules.id", ondelete="CASCADE"), nullable=False)
    time_slot = Column(String, nullable=False)  # Формат "HH:MM-HH:MM"
    description = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="recurring_assignments")
    schedule = relationship("Schedule", back_populates="recurring_assignments")

    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_recurring_assignment_day_of_week"),
        # Уникальность только среди активных записей: удаление мягкое
        Index(
            "uq_recurring_assignment_active",
            "user_id", "day_of_week", "schedule_id", "time_slot",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    @property
    def fingerprint(self) -> tuple:
        return (self.day_of_week, self.schedule_id, self.time_slot)
