from fastapi import HTTPException, status
from nightwatch.services.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ServiceError,
    ShiftTimeInvalidError,
)

_STATUS_BY_ERROR = (
    (ConflictError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (ShiftTimeInvalidError, status.HTTP_400_BAD_REQUEST),
)


def to_http_exception(error: ServiceError) -> HTTPException:
    """Преобразовать ошибку сервиса в HTTP-ответ"""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Внутренняя ошибка сервера")
