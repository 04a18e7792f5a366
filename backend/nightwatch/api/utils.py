from fastapi import APIRouter

router = APIRouter(prefix="/api/utils", tags=["utils"])


@router.get("/health")
def health_check():
    """Проверка здоровья сервиса (публичный endpoint для healthcheck)"""
    return {"status": "ok", "service": "Night Watch"}
