from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from nightwatch.database import get_db
from nightwatch.models import User
from nightwatch.schemas.slot import AdminShiftSlot, AvailableShiftSlot
from nightwatch.services.slot_service import SlotService
from nightwatch.services.exceptions import ServiceError
from nightwatch.api.errors import to_http_exception
from nightwatch.auth.dependencies import get_current_user, require_admin
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shifts", tags=["shifts"])
admin_router = APIRouter(prefix="/api/admin/shifts", tags=["admin-shifts"])


@router.get("/available", response_model=List[AvailableShiftSlot])
def list_available_shifts(
    from_: Optional[datetime] = Query(None, alias="from", description="Начало окна (по умолчанию сейчас)"),
    to: Optional[datetime] = Query(None, description="Конец окна (по умолчанию через 14 дней)"),
    limit: Optional[int] = Query(None, ge=1, description="Максимальное количество смен"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Получить свободные смены"""
    try:
        return SlotService(db).list_available_slots(from_, to, limit)
    except ServiceError as e:
        raise to_http_exception(e)


@admin_router.get("", response_model=List[AdminShiftSlot])
def admin_list_all_shifts(
    from_: Optional[datetime] = Query(None, alias="from", description="Начало окна (по умолчанию сейчас)"),
    to: Optional[datetime] = Query(None, description="Конец окна (по умолчанию через 7 дней)"),
    limit: Optional[int] = Query(None, ge=1, description="Максимальное количество смен"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Получить все смены с информацией о бронях"""
    try:
        return SlotService(db).admin_list_all_slots(from_, to, limit)
    except ServiceError as e:
        raise to_http_exception(e)
