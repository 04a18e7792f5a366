from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class AvailableShiftSlot(BaseModel):
    """Свободная смена"""
    schedule_id: int
    schedule_name: str
    start_time: datetime
    end_time: datetime
    timezone: str

    class Config:
        from_attributes = True


class AdminShiftSlot(AvailableShiftSlot):
    """Смена с информацией о брони для администратора"""
    is_booked: bool
    booking_id: Optional[int] = None
    assignee_name: Optional[str] = None
    assignee_phone: Optional[str] = None
    buddy_name: Optional[str] = None
