"""
Генерация смен (occurrences) графика в заданном окне времени

Смены нигде не хранятся: каждый запрос пересчитывает их из cron-выражения,
длительности, активного периода и часового пояса графика.
"""
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from nightwatch.models import Schedule
from nightwatch.services.cron import CronPatternError, is_cron_boundary, next_fire_after, parse_cron
from nightwatch.services.exceptions import InternalServiceError, ShiftTimeInvalidError
import logging

logger = logging.getLogger(__name__)

UTC_LABEL = "UTC"

# Предел числа смен одного графика за один запрос
MAX_OCCURRENCES_PER_SCHEDULE = 1000


@dataclass(frozen=True)
class Occurrence:
    """Одна смена графика. Вычисляется на лету и не сохраняется"""
    schedule_id: int
    schedule_name: str
    start: datetime
    end: datetime
    timezone: str


def ensure_utc(value: datetime) -> datetime:
    """Привести момент времени к aware UTC (naive считается UTC)"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_timezone(tz_name: Optional[str], schedule_id: Optional[int] = None) -> Tuple[tzinfo, str]:
    """
    Получить часовой пояс графика

    Пустое значение означает UTC. Нераспознанное значение не считается ошибкой:
    пишем предупреждение и продолжаем в UTC.

    Returns:
        Кортеж (tzinfo, название пояса)
    """
    if not tz_name or not tz_name.strip():
        return ZoneInfo(UTC_LABEL), UTC_LABEL

    try:
        return ZoneInfo(tz_name.strip()), tz_name.strip()
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        logger.warning(
            f"Не удалось загрузить часовой пояс '{tz_name}' графика {schedule_id}, используется UTC: {e}"
        )
        return ZoneInfo(UTC_LABEL), UTC_LABEL


def active_window_bounds(
    start_date: Optional[date],
    end_date: Optional[date],
    tz: tzinfo
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Границы активного периода графика: начало первого дня и конец последнего дня в его поясе"""
    active_start = datetime.combine(start_date, time.min, tzinfo=tz) if start_date else None
    active_end = datetime.combine(end_date, time.max, tzinfo=tz) if end_date else None
    return active_start, active_end


def shift_end(start: datetime, duration_minutes: int) -> datetime:
    """Конец смены считается в абсолютном времени, а не по настенным часам"""
    return ensure_utc(start) + timedelta(minutes=duration_minutes)


def generate_occurrences(
    schedule: Schedule,
    window_from: datetime,
    window_to: datetime
) -> List[Occurrence]:
    """
    Получить смены графика в окне [window_from, window_to]

    Обе границы включительно. Окно пересекается с активным периодом графика.
    Некорректное cron-выражение не прерывает общий запрос: график пропускается.

    Args:
        schedule: График
        window_from: Начало окна (абсолютное время)
        window_to: Конец окна (абсолютное время)

    Returns:
        Список смен по возрастанию начала
    """
    tz, tz_label = resolve_timezone(schedule.timezone, schedule.id)
    active_start, active_end = active_window_bounds(schedule.start_date, schedule.end_date, tz)

    iteration_start = ensure_utc(window_from).astimezone(tz)
    iteration_end = ensure_utc(window_to).astimezone(tz)
    if active_start is not None and active_start > iteration_start:
        iteration_start = active_start
    if active_end is not None and active_end < iteration_end:
        iteration_end = active_end

    if iteration_start > iteration_end:
        return []

    try:
        trigger = parse_cron(schedule.cron_expr, tz)
    except CronPatternError as e:
        logger.error(
            f"Ошибка разбора cron-выражения графика {schedule.id} ('{schedule.cron_expr}'), график пропущен: {e}"
        )
        return []

    starts = []
    if is_cron_boundary(trigger, iteration_start):
        starts.append(ensure_utc(iteration_start))

    current = iteration_start
    while len(starts) < MAX_OCCURRENCES_PER_SCHEDULE:
        next_time = next_fire_after(trigger, current)
        if next_time is None or next_time > iteration_end:
            break
        starts.append(next_time)
        current = next_time

    if len(starts) >= MAX_OCCURRENCES_PER_SCHEDULE:
        logger.warning(
            f"Для графика {schedule.id} достигнут предел {MAX_OCCURRENCES_PER_SCHEDULE} смен в окне, "
            f"остальные смены отброшены"
        )

    return [
        Occurrence(
            schedule_id=schedule.id,
            schedule_name=schedule.name,
            start=start,
            end=shift_end(start, schedule.duration_minutes),
            timezone=tz_label,
        )
        for start in starts
    ]


def validate_occurrence(schedule: Schedule, start: datetime) -> datetime:
    """
    Проверить, что start является настоящей сменой графика

    Тот же тест границы, что и при генерации: следующая смена после
    (start - 1 тик) должна совпасть со start, и start должен попадать
    в активный период графика в его часовом поясе.

    Returns:
        start в UTC

    Raises:
        ShiftTimeInvalidError: время вне активного периода или не совпадает со сменой
        InternalServiceError: cron-выражение графика не разбирается
    """
    tz, _ = resolve_timezone(schedule.timezone, schedule.id)
    start_utc = ensure_utc(start)
    local_start = start_utc.astimezone(tz)

    active_start, active_end = active_window_bounds(schedule.start_date, schedule.end_date, tz)
    if (active_start is not None and local_start < active_start) or \
            (active_end is not None and local_start > active_end):
        logger.warning(
            f"Время {start_utc.isoformat()} вне активного периода графика {schedule.id} "
            f"({schedule.start_date} - {schedule.end_date})"
        )
        raise ShiftTimeInvalidError("Время смены вне активного периода графика")

    try:
        trigger = parse_cron(schedule.cron_expr, tz)
    except CronPatternError as e:
        logger.error(f"Ошибка разбора cron-выражения графика {schedule.id} ('{schedule.cron_expr}'): {e}")
        raise InternalServiceError("Некорректное cron-выражение графика") from e

    if not is_cron_boundary(trigger, local_start):
        logger.warning(
            f"Время {start_utc.isoformat()} (локально {local_start.isoformat()}) не совпадает "
            f"со сменой графика {schedule.id} ('{schedule.cron_expr}')"
        )
        raise ShiftTimeInvalidError("Запрошенное время не является сменой графика")

    return start_utc
