from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class BookingCreate(BaseModel):
    schedule_id: int
    start_time: datetime  # Конец смены вычисляется сервером
    buddy_phone: Optional[str] = None
    buddy_name: Optional[str] = None


class AdminAssignShift(BaseModel):
    user_id: int
    schedule_id: int
    start_time: datetime


class AttendanceUpdate(BaseModel):
    attended: bool = True


class Booking(BaseModel):
    id: int
    user_id: int
    schedule_id: int
    shift_start: datetime
    shift_end: datetime
    buddy_user_id: Optional[int] = None
    buddy_name: Optional[str] = None
    attended: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingWithSchedule(Booking):
    schedule_name: Optional[str] = None
