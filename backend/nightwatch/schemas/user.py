from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class User(BaseModel):
    id: int
    name: Optional[str] = None
    phone: str
    role: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
