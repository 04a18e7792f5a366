from datetime import datetime, timezone
from sqlalchemy.types import DateTime, TypeDecorator


class UTCDateTime(TypeDecorator):
    """Момент времени, хранимый в БД как UTC без смещения

    На запись принимает aware datetime (naive считается UTC), на чтение
    возвращает aware datetime в UTC. Нужен, чтобы ключ (schedule_id, shift_start)
    сравнивался одинаково независимо от диалекта.
    """
    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
