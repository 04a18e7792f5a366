from pydantic import BaseModel, Field, model_validator
from datetime import date
from typing import Optional


class ScheduleBase(BaseModel):
    name: str = Field(..., min_length=1)
    cron_expr: str = Field(..., min_length=1)  # Например, "0 18 * * *"
    duration_minutes: Optional[int] = Field(None, gt=0)  # Пусто = длительность по умолчанию
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timezone: Optional[str] = None  # Например, Africa/Johannesburg

    @model_validator(mode="after")
    def check_dates(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date не может быть позже end_date")
        return self


class ScheduleCreate(ScheduleBase):
    pass


class ScheduleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    cron_expr: Optional[str] = Field(None, min_length=1)
    duration_minutes: Optional[int] = Field(None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timezone: Optional[str] = None


class Schedule(BaseModel):
    id: int
    name: str
    cron_expr: str
    duration_minutes: int
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    timezone: Optional[str] = None

    class Config:
        from_attributes = True
