from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional
import re

TIME_SLOT_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d-([01]\d|2[0-3]):[0-5]\d$")


def _check_time_slot(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not TIME_SLOT_PATTERN.match(value):
        raise ValueError("time_slot должен быть в формате HH:MM-HH:MM")
    return value


class RecurringAssignmentBase(BaseModel):
    user_id: int
    day_of_week: int = Field(..., ge=0, le=6)  # 0 = воскресенье
    schedule_id: int
    time_slot: str  # "HH:MM-HH:MM"
    buddy_name: Optional[str] = None
    description: Optional[str] = None

    @field_validator('time_slot')
    @classmethod
    def validate_time_slot(cls, v):
        return _check_time_slot(v)


class RecurringAssignmentCreate(RecurringAssignmentBase):
    pass


class RecurringAssignmentUpdate(BaseModel):
    user_id: Optional[int] = None
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    schedule_id: Optional[int] = None
    time_slot: Optional[str] = None
    buddy_name: Optional[str] = None
    description: Optional[str] = None

    @field_validator('time_slot')
    @classmethod
    def validate_time_slot(cls, v):
        return _check_time_slot(v)


class RecurringAssignment(RecurringAssignmentBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MaterializeResult(BaseModel):
    window_from: datetime
    window_to: datetime
    created: int
