from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker
from nightwatch.config import settings
import os

is_sqlite = settings.database_url.startswith("sqlite")

# Создаем директорию для базы данных, если её нет
if settings.database_url.startswith("sqlite:///"):
    db_dir = os.path.dirname(settings.database_url.replace("sqlite:///", ""))
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if is_sqlite else {}
)


def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite по умолчанию не проверяет внешние ключи и не выполняет ON DELETE
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


if is_sqlite:
    event.listen(engine, "connect", enable_sqlite_foreign_keys)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency для получения сессии базы данных"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
