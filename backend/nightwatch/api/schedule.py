from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from nightwatch.database import get_db
from nightwatch.models import User
from nightwatch.schemas.schedule import Schedule as ScheduleSchema, ScheduleCreate, ScheduleUpdate
from nightwatch.services.schedule_service import ScheduleService
from nightwatch.services.exceptions import ServiceError
from nightwatch.api.errors import to_http_exception
from nightwatch.auth.dependencies import get_current_user, require_admin
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedules", tags=["schedules"])
admin_router = APIRouter(prefix="/api/admin/schedules", tags=["admin-schedules"])


@router.get("", response_model=List[ScheduleSchema])
def list_schedules(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Получить список графиков"""
    return ScheduleService(db).list_schedules()


@admin_router.get("", response_model=List[ScheduleSchema])
def admin_list_schedules(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Получить список графиков (администратор)"""
    return ScheduleService(db).list_schedules()


@admin_router.get("/{schedule_id}", response_model=ScheduleSchema)
def admin_get_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Получить график по ID"""
    try:
        return ScheduleService(db).get_schedule(schedule_id)
    except ServiceError as e:
        raise to_http_exception(e)


@admin_router.post("", response_model=ScheduleSchema, status_code=201)
def admin_create_schedule(
    schedule_data: ScheduleCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Создать график"""
    try:
        return ScheduleService(db).create_schedule(schedule_data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@admin_router.put("/{schedule_id}", response_model=ScheduleSchema)
def admin_update_schedule(
    schedule_id: int,
    schedule_data: ScheduleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Обновить график"""
    try:
        return ScheduleService(db).update_schedule(schedule_id, schedule_data)
    except ServiceError as e:
        raise to_http_exception(e)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@admin_router.delete("/{schedule_id}")
def admin_delete_schedule(
    schedule_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Удалить график"""
    try:
        ScheduleService(db).delete_schedule(schedule_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"message": "График удален"}
