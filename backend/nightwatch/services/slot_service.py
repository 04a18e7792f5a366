from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import SQLAlchemyError
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from nightwatch.config import settings
from nightwatch.models import Booking, Schedule
from nightwatch.services.exceptions import InternalServiceError
from nightwatch.services.occurrence_service import Occurrence, ensure_utc, generate_occurrences
import logging

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AvailableShiftSlot:
    """Свободная смена для участников"""
    schedule_id: int
    schedule_name: str
    start_time: datetime
    end_time: datetime
    timezone: str


@dataclass(frozen=True)
class AdminShiftSlot:
    """Смена для администратора с информацией о брони"""
    schedule_id: int
    schedule_name: str
    start_time: datetime
    end_time: datetime
    timezone: str
    is_booked: bool = False
    booking_id: Optional[int] = None
    assignee_name: Optional[str] = None
    assignee_phone: Optional[str] = None
    buddy_name: Optional[str] = None


class SlotService:
    """Сервис выборки смен с учетом существующих броней"""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def _resolve_window(
        self,
        window_from: Optional[datetime],
        window_to: Optional[datetime],
        default_days: int
    ):
        now = ensure_utc(self.clock())
        actual_from = ensure_utc(window_from) if window_from else now
        actual_to = ensure_utc(window_to) if window_to else now + timedelta(days=default_days)
        return actual_from, actual_to

    def _clamp_limit(self, limit: Optional[int]) -> Optional[int]:
        if limit is None:
            return None
        return max(0, min(limit, settings.slots_max_limit))

    def generate_all_occurrences(self, window_from: datetime, window_to: datetime) -> List[Occurrence]:
        """Сгенерировать смены всех графиков в окне"""
        try:
            schedules = self.db.query(Schedule).order_by(Schedule.name).all()
        except SQLAlchemyError as e:
            logger.error(f"Не удалось получить список графиков: {e}")
            raise InternalServiceError("Не удалось получить список графиков") from e

        if not schedules:
            logger.info("В системе нет ни одного графика")
            return []

        occurrences = []
        for schedule in schedules:
            occurrences.extend(generate_occurrences(schedule, window_from, window_to))
        return occurrences

    def find_booking(self, schedule_id: int, shift_start: datetime) -> Optional[Booking]:
        """Точечный поиск брони по (schedule_id, shift_start)"""
        return self.db.query(Booking).options(
            joinedload(Booking.user)
        ).filter(
            Booking.schedule_id == schedule_id,
            Booking.shift_start == ensure_utc(shift_start)
        ).first()

    def _lookup_booking_fail_open(self, occurrence: Occurrence) -> Optional[Booking]:
        # Ошибка хранилища не должна ронять выборку: смена считается свободной
        try:
            return self.find_booking(occurrence.schedule_id, occurrence.start)
        except SQLAlchemyError as e:
            logger.error(
                f"Ошибка поиска брони для графика {occurrence.schedule_id} "
                f"на {occurrence.start.isoformat()}, смена считается свободной: {e}"
            )
            self.db.rollback()
            return None

    def list_available_slots(
        self,
        window_from: Optional[datetime] = None,
        window_to: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[AvailableShiftSlot]:
        """
        Получить свободные смены всех графиков

        Args:
            window_from: Начало окна (по умолчанию сейчас)
            window_to: Конец окна (по умолчанию через available_slots_default_days дней)
            limit: Максимальное количество смен

        Returns:
            Свободные смены по возрастанию начала
        """
        actual_from, actual_to = self._resolve_window(
            window_from, window_to, settings.available_slots_default_days
        )
        if actual_from > actual_to:
            logger.warning(f"Начало окна {actual_from} позже конца {actual_to}")
            return []

        slots = []
        for occurrence in self.generate_all_occurrences(actual_from, actual_to):
            if self._lookup_booking_fail_open(occurrence) is not None:
                continue
            slots.append(AvailableShiftSlot(
                schedule_id=occurrence.schedule_id,
                schedule_name=occurrence.schedule_name,
                start_time=occurrence.start,
                end_time=occurrence.end,
                timezone=occurrence.timezone,
            ))

        slots.sort(key=lambda slot: slot.start_time)

        limit = self._clamp_limit(limit)
        if limit is not None:
            slots = slots[:limit]
        return slots

    def admin_list_all_slots(
        self,
        window_from: Optional[datetime] = None,
        window_to: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[AdminShiftSlot]:
        """
        Получить все смены (свободные и забронированные) с данными о брони

        Args:
            window_from: Начало окна (по умолчанию сейчас)
            window_to: Конец окна (по умолчанию через admin_slots_default_days дней)
            limit: Максимальное количество смен

        Returns:
            Смены по возрастанию начала
        """
        actual_from, actual_to = self._resolve_window(
            window_from, window_to, settings.admin_slots_default_days
        )
        if actual_from > actual_to:
            logger.warning(f"Начало окна {actual_from} позже конца {actual_to} (админ)")
            return []

        slots = []
        for occurrence in self.generate_all_occurrences(actual_from, actual_to):
            booking = self._lookup_booking_fail_open(occurrence)
            if booking is None:
                slots.append(AdminShiftSlot(
                    schedule_id=occurrence.schedule_id,
                    schedule_name=occurrence.schedule_name,
                    start_time=occurrence.start,
                    end_time=occurrence.end,
                    timezone=occurrence.timezone,
                ))
                continue

            user = booking.user
            slots.append(AdminShiftSlot(
                schedule_id=occurrence.schedule_id,
                schedule_name=occurrence.schedule_name,
                start_time=occurrence.start,
                end_time=occurrence.end,
                timezone=occurrence.timezone,
                is_booked=True,
                booking_id=booking.id,
                assignee_name=user.name if user and user.name else None,
                assignee_phone=user.phone if user and user.phone else None,
                buddy_name=booking.buddy_name or None,
            ))

        slots.sort(key=lambda slot: slot.start_time)

        limit = self._clamp_limit(limit)
        if limit is not None:
            slots = slots[:limit]
        return slots
