from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime
from typing import List, Optional
from nightwatch.models import Booking, Schedule, User
from nightwatch.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalServiceError,
    NotFoundError,
)
from nightwatch.services.notification_service import (
    ADMIN_SHIFT_ASSIGNMENT,
    BOOKING_CONFIRMATION,
    NotificationService,
)
from nightwatch.services.occurrence_service import shift_end, validate_occurrence
import logging

logger = logging.getLogger(__name__)


class BookingService:
    """Сервис бронирования смен"""

    def __init__(self, db: Session, notifier: Optional[NotificationService] = None):
        self.db = db
        self.notifier = notifier if notifier is not None else NotificationService(db)

    def _get_schedule(self, schedule_id: int) -> Schedule:
        try:
            schedule = self.db.query(Schedule).filter(Schedule.id == schedule_id).first()
        except SQLAlchemyError as e:
            logger.error(f"Ошибка получения графика {schedule_id}: {e}")
            raise InternalServiceError("Ошибка получения графика") from e

        if schedule is None:
            logger.warning(f"График {schedule_id} не найден")
            raise NotFoundError("График не найден")
        return schedule

    def _resolve_buddy(self, buddy_phone: Optional[str], buddy_name: Optional[str]):
        """
        Определить напарника

        Если телефон принадлежит зарегистрированному пользователю, бронь связывается
        с ним и берется его имя. Иначе сохраняется имя как есть.

        Returns:
            Кортеж (buddy_user_id, buddy_name)
        """
        buddy_name = buddy_name.strip() if buddy_name and buddy_name.strip() else None
        if not buddy_phone or not buddy_phone.strip():
            return None, buddy_name

        try:
            buddy = self.db.query(User).filter(User.phone == buddy_phone.strip()).first()
        except SQLAlchemyError as e:
            # Не критично: продолжаем с указанным именем
            logger.error(f"Ошибка поиска напарника по телефону {buddy_phone}: {e}")
            self.db.rollback()
            return None, buddy_name

        if buddy is None:
            return None, buddy_name
        return buddy.id, buddy.name or buddy_name

    def _slot_taken(self, schedule_id: int, shift_start: datetime) -> bool:
        return self.db.query(Booking.id).filter(
            Booking.schedule_id == schedule_id,
            Booking.shift_start == shift_start
        ).first() is not None

    def _insert_booking(self, booking: Booking) -> Booking:
        """
        Сохранить бронь

        Нарушение уникальности (schedule_id, shift_start) означает конфликт.
        Прочие нарушения целостности (внешние ключи и т.п.) конфликтом не считаются.
        """
        try:
            self.db.add(booking)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            try:
                taken = self._slot_taken(booking.schedule_id, booking.shift_start)
            except SQLAlchemyError as lookup_error:
                logger.error(f"Ошибка проверки занятости смены графика {booking.schedule_id}: {lookup_error}")
                raise InternalServiceError("Ошибка сохранения брони") from e

            if not taken:
                logger.error(
                    f"Нарушение целостности при сохранении брони графика {booking.schedule_id} "
                    f"пользователем {booking.user_id}: {e.orig}"
                )
                raise InternalServiceError("Ошибка сохранения брони") from e

            logger.warning(
                f"Смена графика {booking.schedule_id} на {booking.shift_start.isoformat()} уже забронирована: {e.orig}"
            )
            raise ConflictError("Смена уже забронирована") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Ошибка сохранения брони графика {booking.schedule_id}: {e}")
            raise InternalServiceError("Ошибка сохранения брони") from e

        self.db.refresh(booking)
        return booking

    def _notify(self, booking: Booking, message_type: str, assigned_by: Optional[str] = None):
        # Сбой постановки уведомления не отменяет бронь
        try:
            self.notifier.enqueue_booking_notification(booking, message_type, assigned_by)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Не удалось поставить уведомление {message_type} для брони {booking.id}: {e}")

    def create_booking(
        self,
        schedule_id: int,
        start: datetime,
        user_id: int,
        buddy_phone: Optional[str] = None,
        buddy_name: Optional[str] = None
    ) -> Booking:
        """
        Забронировать смену графика

        Время начала перепроверяется по cron-выражению графика, конец смены
        вычисляется из длительности графика.

        Raises:
            NotFoundError: график не найден
            ShiftTimeInvalidError: время не является сменой графика
            ConflictError: смена уже забронирована
            InternalServiceError: ошибка хранилища
        """
        schedule = self._get_schedule(schedule_id)
        start_utc = validate_occurrence(schedule, start)
        buddy_user_id, actual_buddy_name = self._resolve_buddy(buddy_phone, buddy_name)

        booking = self._insert_booking(Booking(
            user_id=user_id,
            schedule_id=schedule.id,
            shift_start=start_utc,
            shift_end=shift_end(start_utc, schedule.duration_minutes),
            buddy_user_id=buddy_user_id,
            buddy_name=actual_buddy_name,
            attended=False,
        ))
        logger.info(f"Создана бронь {booking.id} пользователя {user_id} на смену графика {schedule_id}")

        self._notify(booking, BOOKING_CONFIRMATION)
        return booking

    def admin_assign_user_to_shift(self, target_user_id: int, schedule_id: int, start: datetime) -> Booking:
        """
        Назначить участника на смену от имени администратора

        Проверки те же, что и при обычном бронировании.
        """
        target_user = self.db.query(User).filter(User.id == target_user_id).first()
        if target_user is None:
            logger.warning(f"Пользователь {target_user_id} для назначения не найден")
            raise NotFoundError("Пользователь не найден")

        schedule = self._get_schedule(schedule_id)
        start_utc = validate_occurrence(schedule, start)

        booking = self._insert_booking(Booking(
            user_id=target_user.id,
            schedule_id=schedule.id,
            shift_start=start_utc,
            shift_end=shift_end(start_utc, schedule.duration_minutes),
            attended=False,
        ))
        logger.info(
            f"Администратор назначил пользователя {target_user_id} на смену графика {schedule_id} "
            f"(бронь {booking.id})"
        )

        self._notify(booking, ADMIN_SHIFT_ASSIGNMENT, assigned_by="admin")
        return booking

    def get_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFoundError("Бронь не найдена")
        return booking

    def mark_attendance(self, booking_id: int, user_id: int, attended: bool) -> Booking:
        """
        Отметить присутствие на смене

        Только владелец брони. Смена повторно не проверяется, повторный вызов
        с тем же значением ничего не меняет.
        """
        booking = self.get_booking(booking_id)

        if booking.user_id != user_id:
            logger.warning(
                f"Пользователь {user_id} пытался отметить присутствие в чужой брони {booking_id} "
                f"(владелец {booking.user_id})"
            )
            raise ForbiddenError("Нельзя изменять чужую бронь")

        if booking.attended == attended:
            return booking

        booking.attended = attended
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Ошибка обновления присутствия в брони {booking_id}: {e}")
            raise InternalServiceError("Ошибка обновления брони") from e

        self.db.refresh(booking)
        logger.info(f"Присутствие в брони {booking_id} отмечено как {attended}")
        return booking

    def list_user_bookings(self, user_id: int) -> List[Booking]:
        """Брони пользователя, новые сначала"""
        return self.db.query(Booking).options(
            joinedload(Booking.schedule)
        ).filter(
            Booking.user_id == user_id
        ).order_by(Booking.shift_start.desc()).all()
