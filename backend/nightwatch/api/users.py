from fastapi import APIRouter, Depends
from nightwatch.models import User
from nightwatch.schemas.user import User as UserSchema
from nightwatch.auth.dependencies import get_current_user

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserSchema)
def get_me(current_user: User = Depends(get_current_user)):
    """Получить текущего пользователя"""
    return current_user
