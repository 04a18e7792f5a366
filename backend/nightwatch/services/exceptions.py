class ServiceError(Exception):
    """Базовая ошибка сервисного слоя"""


class NotFoundError(ServiceError):
    """График, бронь, пользователь или назначение не найдены"""


class ShiftTimeInvalidError(ServiceError):
    """Запрошенное время не является сменой графика или вне активного периода"""


class ConflictError(ServiceError):
    """Смена уже забронирована (или запись нарушает уникальность)"""


class ForbiddenError(ServiceError):
    """Пользователь не владелец записи"""


class InternalServiceError(ServiceError):
    """Непредвиденная ошибка хранилища или данных графика"""
