from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from nightwatch.database import get_db
from nightwatch.models import User
from nightwatch.schemas.booking import (
    AdminAssignShift,
    AttendanceUpdate,
    Booking as BookingSchema,
    BookingCreate,
    BookingWithSchedule,
)
from nightwatch.services.booking_service import BookingService
from nightwatch.services.exceptions import ServiceError
from nightwatch.api.errors import to_http_exception
from nightwatch.auth.dependencies import get_current_user, require_admin
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["bookings"])
admin_router = APIRouter(prefix="/api/admin/bookings", tags=["admin-bookings"])


@router.post("", response_model=BookingSchema, status_code=201)
def create_booking(
    booking_data: BookingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Забронировать смену"""
    try:
        return BookingService(db).create_booking(
            schedule_id=booking_data.schedule_id,
            start=booking_data.start_time,
            user_id=current_user.id,
            buddy_phone=booking_data.buddy_phone,
            buddy_name=booking_data.buddy_name,
        )
    except ServiceError as e:
        logger.info(
            f"Бронь графика {booking_data.schedule_id} на {booking_data.start_time} "
            f"пользователем {current_user.id} отклонена: {e}"
        )
        raise to_http_exception(e)


@router.get("/my", response_model=List[BookingWithSchedule])
def get_my_bookings(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Получить брони текущего пользователя"""
    return BookingService(db).list_user_bookings(current_user.id)


@router.get("/{booking_id}", response_model=BookingWithSchedule)
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Получить бронь по ID (владелец или администратор)"""
    try:
        booking = BookingService(db).get_booking(booking_id)
    except ServiceError as e:
        raise to_http_exception(e)

    if booking.user_id != current_user.id and not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Нельзя просматривать чужую бронь")
    return booking


@router.patch("/{booking_id}/attendance", response_model=BookingSchema)
def mark_attendance(
    booking_id: int,
    attendance: AttendanceUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Отметить присутствие на смене"""
    try:
        return BookingService(db).mark_attendance(booking_id, current_user.id, attendance.attended)
    except ServiceError as e:
        raise to_http_exception(e)


@admin_router.post("/assign", response_model=BookingSchema, status_code=201)
def admin_assign_shift(
    assign_data: AdminAssignShift,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin)
):
    """Назначить участника на смену"""
    try:
        return BookingService(db).admin_assign_user_to_shift(
            assign_data.user_id, assign_data.schedule_id, assign_data.start_time
        )
    except ServiceError as e:
        raise to_http_exception(e)
