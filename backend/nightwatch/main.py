from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from nightwatch.config import settings
from nightwatch.database import engine, Base
from nightwatch.api.routes import api_router
from nightwatch.scheduler.tasks import start_scheduler, stop_scheduler
from nightwatch.services.exceptions import ServiceError
from nightwatch.api.errors import to_http_exception
import logging
import uvicorn

# Настройка логирования
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)

# Создание таблиц базы данных
Base.metadata.create_all(bind=engine)

# Создание FastAPI приложения
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    version="1.0.0"
)

# Настройка CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Подключение роутеров
app.include_router(api_router)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    """Ошибки сервисов, не перехваченные в роутерах"""
    http_error = to_http_exception(exc)
    return JSONResponse(status_code=http_error.status_code, content={"detail": http_error.detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Необработанная ошибка при обработке {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Внутренняя ошибка сервера"})


@app.on_event("startup")
async def startup_event():
    """Событие запуска приложения"""
    logger.info(f"Запуск приложения {settings.app_name}")
    logger.info(f"Режим отладки: {settings.debug}")
    logger.info(f"База данных: {settings.database_url}")
    logger.info(f"Разрешенные CORS origins: {settings.cors_origins}")

    # Запускаем планировщик задач
    start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    """Событие остановки приложения"""
    logger.info("Остановка приложения")
    stop_scheduler()


@app.get("/")
def root():
    """Корневой endpoint"""
    return {
        "message": "Night Watch API",
        "version": "1.0.0",
        "docs": "/docs"
    }


def run():
    """Запуск HTTP-сервера"""
    uvicorn.run(
        "nightwatch.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )


if __name__ == "__main__":
    run()
