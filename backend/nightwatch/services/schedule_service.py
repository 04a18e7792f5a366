from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from nightwatch.config import settings
from nightwatch.models import Booking, Schedule
from nightwatch.schemas.schedule import ScheduleCreate, ScheduleUpdate
from nightwatch.services.cron import CronPatternError, parse_cron
from nightwatch.services.exceptions import ConflictError, NotFoundError
import logging

logger = logging.getLogger(__name__)


def validate_schedule_definition(cron_expr: str, timezone_name: Optional[str]):
    """
    Проверить cron-выражение и часовой пояс перед сохранением графика

    Raises:
        ValueError: выражение или часовой пояс некорректны
    """
    tz = ZoneInfo("UTC")
    if timezone_name:
        try:
            tz = ZoneInfo(timezone_name)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValueError(f"Неизвестный часовой пояс: {timezone_name}") from e

    try:
        parse_cron(cron_expr, tz)
    except CronPatternError as e:
        raise ValueError(str(e)) from e


class ScheduleService:
    """Сервис администрирования графиков смен"""

    def __init__(self, db: Session):
        self.db = db

    def list_schedules(self) -> List[Schedule]:
        return self.db.query(Schedule).order_by(Schedule.name).all()

    def get_schedule(self, schedule_id: int) -> Schedule:
        """Получить график по ID"""
        schedule = self.db.query(Schedule).filter(Schedule.id == schedule_id).first()
        if schedule is None:
            logger.warning(f"График {schedule_id} не найден")
            raise NotFoundError("График не найден")
        return schedule

    def create_schedule(self, schedule_data: ScheduleCreate) -> Schedule:
        """
        Создать график

        Args:
            schedule_data: Данные графика

        Returns:
            Созданный график

        Raises:
            ValueError: некорректное cron-выражение или часовой пояс
        """
        timezone_name = schedule_data.timezone.strip() if schedule_data.timezone else None
        validate_schedule_definition(schedule_data.cron_expr, timezone_name)

        schedule = Schedule(
            name=schedule_data.name,
            cron_expr=schedule_data.cron_expr.strip(),
            duration_minutes=schedule_data.duration_minutes or settings.default_shift_duration_minutes,
            start_date=schedule_data.start_date,
            end_date=schedule_data.end_date,
            timezone=timezone_name,
        )
        self.db.add(schedule)
        self.db.commit()
        self.db.refresh(schedule)
        logger.info(f"Создан график {schedule.id} '{schedule.name}' ({schedule.cron_expr})")
        return schedule

    def update_schedule(self, schedule_id: int, schedule_data: ScheduleUpdate) -> Schedule:
        """Обновить график (только переданные поля)"""
        schedule = self.get_schedule(schedule_id)
        changes = schedule_data.model_dump(exclude_unset=True)

        if "timezone" in changes and changes["timezone"] is not None:
            changes["timezone"] = changes["timezone"].strip() or None
        if changes.get("cron_expr"):
            changes["cron_expr"] = changes["cron_expr"].strip()

        validate_schedule_definition(
            changes.get("cron_expr") or schedule.cron_expr,
            changes["timezone"] if "timezone" in changes else schedule.timezone
        )

        start_date = changes["start_date"] if "start_date" in changes else schedule.start_date
        end_date = changes["end_date"] if "end_date" in changes else schedule.end_date
        if start_date and end_date and start_date > end_date:
            raise ValueError("start_date не может быть позже end_date")

        for field, value in changes.items():
            if value is None and field in ("name", "cron_expr", "duration_minutes"):
                continue
            setattr(schedule, field, value)

        self.db.commit()
        self.db.refresh(schedule)
        logger.info(f"Обновлен график {schedule_id}")
        return schedule

    def delete_schedule(self, schedule_id: int) -> bool:
        """
        Удалить график

        График с бронями не удаляется: брони должны оставаться валидными.

        Raises:
            NotFoundError: график не найден
            ConflictError: на график есть брони
        """
        schedule = self.get_schedule(schedule_id)

        has_bookings = self.db.query(Booking.id).filter(
            Booking.schedule_id == schedule_id
        ).first() is not None
        if has_bookings:
            logger.warning(f"Попытка удалить график {schedule_id}, на который есть брони")
            raise ConflictError("На график есть брони, удаление невозможно")

        try:
            self.db.delete(schedule)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("График используется, удаление невозможно") from e

        logger.info(f"Удален график с ID {schedule_id}")
        return True
