from sqlalchemy import Column, Integer, String, Date
from sqlalchemy.orm import relationship
from nightwatch.database import Base


class Schedule(Base):
    """График смен, описанный cron-выражением"""
    __tablename__ = "schedules"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    cron_expr = Column(String, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=120)
    start_date = Column(Date, nullable=True)  # Включительно, в часовом поясе графика
    end_date = Column(Date, nullable=True)  # Включительно, в часовом поясе графика
    timezone = Column(String, nullable=True)  # Например, Africa/Johannesburg; пусто = UTC

    # Relationships
    bookings = relationship("Booking", back_populates="schedule")
    recurring_assignments = relationship(
        "RecurringAssignment", back_populates="schedule", cascade="all, delete-orphan"
    )
