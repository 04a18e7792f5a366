"""
Вычисление моментов срабатывания cron-выражений графиков

Используется стандартный пятипольный crontab (минута, час, день месяца, месяц,
день недели). Вычисление делегируется CronTrigger из APScheduler, но у него
дни недели нумеруются с понедельника, поэтому поле дня недели переводится
в имена дней заранее.
"""
from apscheduler.triggers.base import BaseTrigger
from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional, Set

# Один "тик" для проверки границы смены
TICK = timedelta(seconds=1)

_DOW_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]

# "?" в полях дня означает то же, что "*"
_ANY_DAY = ("*", "?")

# Предел подряд пропущенных несуществующих моментов (переход на летнее время)
MAX_SKIPPED_FIRE_TIMES = 32


class CronPatternError(ValueError):
    """Некорректное cron-выражение"""


def _parse_dow_value(value: str) -> int:
    value = value.strip().lower()
    if value in _DOW_NAMES:
        return _DOW_NAMES.index(value)
    if not value.isdigit():
        raise CronPatternError(f"Некорректный день недели: {value!r}")
    number = int(value)
    if number > 7:
        raise CronPatternError(f"День недели вне диапазона 0-7: {number}")
    return number


def _expand_dow_field(field: str) -> Set[int]:
    """Развернуть поле дня недели crontab в множество дней (0 = воскресенье)"""
    days = set()
    for part in field.split(","):
        if not part:
            raise CronPatternError(f"Пустой элемент в поле дня недели: {field!r}")
        step = 1
        if "/" in part:
            part, step_str = part.split("/", 1)
            if not step_str.isdigit() or int(step_str) == 0:
                raise CronPatternError(f"Некорректный шаг в поле дня недели: {field!r}")
            step = int(step_str)

        if part == "*":
            first, last = 0, 6
        elif "-" in part:
            first_str, last_str = part.split("-", 1)
            first, last = _parse_dow_value(first_str), _parse_dow_value(last_str)
            if first > last:
                raise CronPatternError(f"Обратный диапазон в поле дня недели: {field!r}")
        else:
            first = _parse_dow_value(part)
            # "5/2" в crontab означает "с пятницы до конца недели с шагом 2"
            last = 7 if step > 1 else first

        days.update(day % 7 for day in range(first, last + 1, step))
    return days


def _translate_day_of_week(field: str) -> str:
    if field in _ANY_DAY:
        return "*"
    days = _expand_dow_field(field)
    if len(days) == 7:
        return "*"
    return ",".join(_DOW_NAMES[day] for day in sorted(days))


def parse_cron(expr: str, tz: tzinfo) -> BaseTrigger:
    """
    Разобрать cron-выражение в триггер, работающий в часовом поясе графика

    Если ограничены и день месяца, и день недели, смена срабатывает при
    совпадении любого из них (как в классическом crontab). CronTrigger
    требует совпадения обоих, поэтому такое выражение собирается из двух
    триггеров через OrTrigger.

    Raises:
        CronPatternError: выражение не удалось разобрать
    """
    if not expr or not expr.strip():
        raise CronPatternError("Пустое cron-выражение")

    fields = expr.split()
    if len(fields) != 5:
        raise CronPatternError(f"Ожидалось 5 полей, получено {len(fields)}: {expr!r}")

    minute, hour, day, month, day_of_week = fields
    day_restricted = day not in _ANY_DAY
    day_of_week_restricted = day_of_week not in _ANY_DAY
    day = day if day_restricted else "*"
    day_of_week = _translate_day_of_week(day_of_week)

    try:
        if day_restricted and day_of_week_restricted:
            return OrTrigger([
                CronTrigger(minute=minute, hour=hour, day=day, month=month, timezone=tz),
                CronTrigger(minute=minute, hour=hour, month=month, day_of_week=day_of_week, timezone=tz),
            ])
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=day_of_week,
            timezone=tz,
        )
    except (ValueError, TypeError) as e:
        raise CronPatternError(f"Некорректное cron-выражение {expr!r}: {e}") from e


def _raw_next_fire(trigger: BaseTrigger, instant: datetime) -> Optional[datetime]:
    next_time = trigger.get_next_fire_time(None, instant + timedelta(microseconds=1))
    if next_time is None:
        return None
    return next_time.astimezone(timezone.utc)


def next_fire_after(trigger: BaseTrigger, instant: datetime) -> Optional[datetime]:
    """
    Ближайшее срабатывание строго после instant (в UTC) или None

    Момент, попавший в разрыв перехода на летнее время (например, 02:30 в день
    перевода часов), APScheduler сдвигает на час вперед. Такой сдвинутый момент
    не является срабатыванием выражения и пропускается: смена в этот день
    не существует.
    """
    current = instant
    for _ in range(MAX_SKIPPED_FIRE_TIMES):
        candidate = _raw_next_fire(trigger, current)
        if candidate is None:
            return None
        if _raw_next_fire(trigger, candidate - TICK) == candidate:
            return candidate
        current = candidate
    return None


def is_cron_boundary(trigger: BaseTrigger, instant: datetime) -> bool:
    """Является ли instant точным моментом срабатывания выражения"""
    next_time = next_fire_after(trigger, instant - TICK)
    return next_time is not None and next_time == instant.astimezone(timezone.utc)
