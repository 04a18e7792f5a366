from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
from nightwatch.database import get_db
from nightwatch.models import User

# Аутентификация выполняется шлюзом: он передает ID проверенного пользователя
USER_ID_HEADER = "X-User-ID"


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db)
) -> User:
    """Dependency для получения текущего пользователя"""
    if not x_user_id or not x_user_id.strip().isdigit():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Требуется авторизация",
        )

    user = db.query(User).filter(User.id == int(x_user_id)).first()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Пользователь не найден",
        )
    return user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency для проверки прав администратора"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Требуются права администратора",
        )
    return current_user
