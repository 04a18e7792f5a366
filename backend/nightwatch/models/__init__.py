from .user import User
from .schedule import Schedule
from .booking import Booking
from .recurring_assignment import RecurringAssignment
from .outbox import OutboxItem

__all__ = [
    "User",
    "Schedule",
    "Booking",
    "RecurringAssignment",
    "OutboxItem",
]
