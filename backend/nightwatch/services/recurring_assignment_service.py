from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo
from nightwatch.config import settings
from nightwatch.models import Booking, RecurringAssignment, Schedule, User
from nightwatch.schemas.recurring_assignment import RecurringAssignmentCreate, RecurringAssignmentUpdate
from nightwatch.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalServiceError,
    NotFoundError,
)
from nightwatch.services.occurrence_service import ensure_utc
from nightwatch.services.slot_service import AdminShiftSlot, SlotService
import logging

logger = logging.getLogger(__name__)


class AssignmentCandidate(NamedTuple):
    id: int
    user_id: int
    buddy_name: Optional[str]
    fingerprint: Tuple[int, int, str]


def slot_fingerprint(slot: AdminShiftSlot) -> Tuple[int, int, str]:
    """
    Отпечаток смены для сопоставления с постоянными назначениями

    День недели (0 = воскресенье) и интервал "HH:MM-HH:MM" берутся
    в часовом поясе графика.
    """
    tz = ZoneInfo(slot.timezone)
    local_start = slot.start_time.astimezone(tz)
    local_end = slot.end_time.astimezone(tz)
    day_of_week = int(local_start.strftime("%w"))
    time_slot = f"{local_start:%H:%M}-{local_end:%H:%M}"
    return day_of_week, slot.schedule_id, time_slot


class RecurringAssignmentService:
    """Сервис постоянных назначений и их материализации в брони"""

    def __init__(self, db: Session):
        self.db = db

    def _validate_references(self, user_id: int, schedule_id: int):
        if self.db.query(User).filter(User.id == user_id).first() is None:
            logger.warning(f"Пользователь {user_id} для постоянного назначения не найден")
            raise NotFoundError("Пользователь не найден")
        if self.db.query(Schedule).filter(Schedule.id == schedule_id).first() is None:
            logger.warning(f"График {schedule_id} для постоянного назначения не найден")
            raise NotFoundError("График не найден")

    def _commit(self, assignment: RecurringAssignment) -> RecurringAssignment:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(
                f"Активное назначение пользователя {assignment.user_id} на "
                f"({assignment.day_of_week}, {assignment.schedule_id}, {assignment.time_slot}) уже существует"
            )
            raise ConflictError("Такое постоянное назначение уже существует") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Ошибка сохранения постоянного назначения: {e}")
            raise InternalServiceError("Ошибка сохранения постоянного назначения") from e
        self.db.refresh(assignment)
        return assignment

    def create_assignment(self, data: RecurringAssignmentCreate) -> RecurringAssignment:
        """Создать постоянное назначение"""
        self._validate_references(data.user_id, data.schedule_id)

        assignment = RecurringAssignment(
            user_id=data.user_id,
            buddy_name=data.buddy_name,
            day_of_week=data.day_of_week,
            schedule_id=data.schedule_id,
            time_slot=data.time_slot,
            description=data.description,
            is_active=True,
        )
        self.db.add(assignment)
        assignment = self._commit(assignment)
        logger.info(f"Создано постоянное назначение {assignment.id} для пользователя {assignment.user_id}")
        return assignment

    def get_assignment(self, assignment_id: int) -> RecurringAssignment:
        assignment = self.db.query(RecurringAssignment).filter(
            RecurringAssignment.id == assignment_id
        ).first()
        if assignment is None:
            raise NotFoundError("Постоянное назначение не найдено")
        return assignment

    def list_assignments(self) -> List[RecurringAssignment]:
        """
        Активные назначения в порядке приоритета при материализации

        Порядок явный: раньше созданное назначение выигрывает спорную смену.
        """
        return self.db.query(RecurringAssignment).filter(
            RecurringAssignment.is_active == True
        ).order_by(RecurringAssignment.created_at, RecurringAssignment.id).all()

    def list_assignments_for_user(self, user_id: int) -> List[RecurringAssignment]:
        return self.db.query(RecurringAssignment).filter(
            RecurringAssignment.user_id == user_id,
            RecurringAssignment.is_active == True
        ).order_by(RecurringAssignment.day_of_week, RecurringAssignment.time_slot).all()

    def update_assignment(self, assignment_id: int, data: RecurringAssignmentUpdate) -> RecurringAssignment:
        """Обновить постоянное назначение (только переданные поля)"""
        assignment = self.get_assignment(assignment_id)
        changes = data.model_dump(exclude_unset=True)

        self._validate_references(
            changes.get("user_id") or assignment.user_id,
            changes.get("schedule_id") or assignment.schedule_id
        )

        for field, value in changes.items():
            if value is None and field not in ("buddy_name", "description"):
                continue
            setattr(assignment, field, value)

        assignment = self._commit(assignment)
        logger.info(f"Обновлено постоянное назначение {assignment_id}")
        return assignment

    def deactivate_assignment(
        self,
        assignment_id: int,
        acting_user_id: Optional[int] = None,
        is_admin: bool = True
    ) -> RecurringAssignment:
        """
        Мягко удалить постоянное назначение

        Администратор может удалить любое назначение, пользователь только своё.
        """
        assignment = self.get_assignment(assignment_id)
        if not is_admin and assignment.user_id != acting_user_id:
            logger.warning(
                f"Пользователь {acting_user_id} пытался удалить чужое назначение {assignment_id}"
            )
            raise ForbiddenError("Нельзя удалить чужое постоянное назначение")

        if not assignment.is_active:
            return assignment

        assignment.is_active = False
        assignment = self._commit(assignment)
        logger.info(f"Постоянное назначение {assignment_id} деактивировано")
        return assignment

    def _booking_exists(self, schedule_id: int, shift_start: datetime) -> bool:
        return self.db.query(Booking.id).filter(
            Booking.schedule_id == schedule_id,
            Booking.shift_start == ensure_utc(shift_start)
        ).first() is not None

    def materialize_upcoming_bookings(
        self,
        window_from: datetime,
        window_to: datetime,
        slot_service: Optional[SlotService] = None
    ) -> int:
        """
        Создать брони по постоянным назначениям для свободных смен окна

        Повторный запуск на том же окне ничего не создает: перед вставкой
        наличие брони перепроверяется, а дубли отсекает уникальность
        (schedule_id, shift_start). Ошибка на одной смене не прерывает остальные.

        Returns:
            Количество созданных броней
        """
        logger.info(
            f"Материализация постоянных назначений в окне {window_from.isoformat()} - {window_to.isoformat()}"
        )

        # Снимок полей: после commit/rollback ORM-объекты истекают
        assignments = [
            AssignmentCandidate(a.id, a.user_id, a.buddy_name, a.fingerprint)
            for a in self.list_assignments()
        ]
        if not assignments:
            logger.info("Активных постоянных назначений нет")
            return 0

        slot_service = slot_service or SlotService(self.db)
        slots = slot_service.admin_list_all_slots(window_from, window_to, settings.slots_max_limit)

        created_count = 0
        skipped_count = 0

        for slot in slots:
            if slot.is_booked:
                continue

            fingerprint = slot_fingerprint(slot)
            assignment = next((a for a in assignments if a.fingerprint == fingerprint), None)
            if assignment is None:
                continue

            try:
                # Бронь могла появиться после выборки смен
                if self._booking_exists(slot.schedule_id, slot.start_time):
                    skipped_count += 1
                    continue

                self.db.add(Booking(
                    user_id=assignment.user_id,
                    schedule_id=slot.schedule_id,
                    shift_start=slot.start_time,
                    shift_end=slot.end_time,
                    buddy_name=assignment.buddy_name or None,
                    attended=False,
                ))
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                skipped_count += 1
                logger.info(
                    f"Смена графика {slot.schedule_id} на {slot.start_time.isoformat()} "
                    f"забронирована параллельно, пропускаем"
                )
                continue
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(
                    f"Ошибка создания брони по назначению {assignment.id} "
                    f"(пользователь {assignment.user_id}, график {slot.schedule_id}, "
                    f"смена {slot.start_time.isoformat()}): {e}"
                )
                continue

            created_count += 1
            logger.info(
                f"Создана бронь по назначению {assignment.id} для пользователя {assignment.user_id}, "
                f"график {slot.schedule_id}, смена {slot.start_time.isoformat()}"
            )

        logger.info(
            f"Материализация завершена. Создано: {created_count}, пропущено: {skipped_count}, "
            f"смен в окне: {len(slots)}"
        )
        return created_count
