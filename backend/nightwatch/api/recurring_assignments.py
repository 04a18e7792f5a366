from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, timedelta, timezone
from nightwatch.config import settings
from nightwatch.database import get_db
from nightwatch.models import User
from nightwatch.schemas.recurring_assignment import (
    MaterializeResult,
    RecurringAssignment as RecurringAssignmentSchema,
    RecurringAssignmentCreate,
    RecurringAssignmentUpdate,
)
from nightwatch.services.recurring_assignment_service import RecurringAssignmentService
from nightwatch.services.occurrence_service import ensure_utc
from nightwatch.services.exceptions import ServiceError
from nightwatch.api.errors import to_http_exception
from nightwatch.auth.dependencies import get_current_user, require_admin
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recurring-assignments", tags=["recurring-assignments"])
admin_router = APIRouter(prefix="/api/admin/recurring-assignments", tags=["admin-recurring-assignments"])


@router.get("/my", response_model=List[RecurringAssignmentSchema])
def get_my_assignments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Получить постоянные назначения текущего пользователя"""
    return RecurringAssignmentService(db).list_assignments_for_user(current_user.id)


@router.delete("/{assignment_id}")
def delete_my_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Отказаться от своего постоянного назначения"""
    try:
        RecurringAssignmentService(db).deactivate_assignment(
            assignment_id, acting_user_id=current_user.id, is_admin=current_user.is_admin
        )
    except ServiceError as e:
        raise to_http_exception(e)
    return {"message": "Постоянное назначение удалено"}


@admin_router.get("", response_model=List[RecurringAssignmentSchema])
def admin_list_assignments(
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Получить все активные постоянные назначения"""
    return RecurringAssignmentService(db).list_assignments()


@admin_router.get("/{assignment_id}", response_model=RecurringAssignmentSchema)
def admin_get_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Получить постоянное назначение по ID"""
    try:
        return RecurringAssignmentService(db).get_assignment(assignment_id)
    except ServiceError as e:
        raise to_http_exception(e)


@admin_router.post("", response_model=RecurringAssignmentSchema, status_code=201)
def admin_create_assignment(
    assignment_data: RecurringAssignmentCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Создать постоянное назначение"""
    try:
        return RecurringAssignmentService(db).create_assignment(assignment_data)
    except ServiceError as e:
        raise to_http_exception(e)


@admin_router.put("/{assignment_id}", response_model=RecurringAssignmentSchema)
def admin_update_assignment(
    assignment_id: int,
    assignment_data: RecurringAssignmentUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Обновить постоянное назначение"""
    try:
        return RecurringAssignmentService(db).update_assignment(assignment_id, assignment_data)
    except ServiceError as e:
        raise to_http_exception(e)


@admin_router.delete("/{assignment_id}")
def admin_delete_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Удалить постоянное назначение (мягко)"""
    try:
        RecurringAssignmentService(db).deactivate_assignment(assignment_id)
    except ServiceError as e:
        raise to_http_exception(e)
    return {"message": "Постоянное назначение удалено"}


@admin_router.post("/materialize", response_model=MaterializeResult)
def admin_materialize(
    from_: Optional[datetime] = Query(None, alias="from", description="Начало окна (по умолчанию сейчас)"),
    to: Optional[datetime] = Query(None, description="Конец окна (по умолчанию горизонт материализации)"),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Принудительно материализовать постоянные назначения в брони"""
    now = datetime.now(timezone.utc)
    window_from = ensure_utc(from_) if from_ else now
    window_to = ensure_utc(to) if to else now + timedelta(days=settings.materialize_horizon_days)
    if window_from > window_to:
        raise HTTPException(status_code=400, detail="Начало окна позже конца")

    try:
        created = RecurringAssignmentService(db).materialize_upcoming_bookings(window_from, window_to)
    except ServiceError as e:
        raise to_http_exception(e)

    return MaterializeResult(window_from=window_from, window_to=window_to, created=created)
