from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Union


class Settings(BaseSettings):
    """Конфигурация приложения из переменных окружения"""

    # Приложение
    app_name: str = "Night Watch"
    debug: bool = False
    log_level: str = "INFO"

    # HTTP-сервер
    host: str = "0.0.0.0"
    port: int = 8000

    # База данных
    database_url: str = "sqlite:///./data/night_watch.db"

    # Планировщик материализации постоянных назначений
    scheduler_enabled: bool = True
    materialize_interval_minutes: int = 60
    materialize_horizon_days: int = 14

    # Окна выборки смен по умолчанию
    available_slots_default_days: int = 14
    admin_slots_default_days: int = 7
    slots_max_limit: int = 1000

    # Графики
    default_shift_duration_minutes: int = 120

    # CORS
    cors_origins: Union[str, List[str]] = "http://localhost:3000,http://localhost:5173"

    @field_validator('cors_origins')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


settings = Settings()
