from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from datetime import datetime, timedelta, timezone
from nightwatch.database import SessionLocal
from nightwatch.services.recurring_assignment_service import RecurringAssignmentService
from nightwatch.config import settings
import logging

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def materialize_task():
    """Задача материализации постоянных назначений в брони"""
    db = SessionLocal()
    try:
        now = datetime.now(timezone.utc)
        window_to = now + timedelta(days=settings.materialize_horizon_days)
        logger.info("Запуск материализации постоянных назначений")

        created = RecurringAssignmentService(db).materialize_upcoming_bookings(now, window_to)

        logger.info(f"Материализация по расписанию завершена. Создано броней: {created}")
    except Exception as e:
        logger.error(f"Критическая ошибка при материализации постоянных назначений: {e}")
    finally:
        db.close()


def start_scheduler():
    """Запустить планировщик задач"""
    if not settings.scheduler_enabled:
        logger.info("Планировщик отключен в настройках")
        return

    scheduler.add_job(
        materialize_task,
        trigger=IntervalTrigger(minutes=settings.materialize_interval_minutes),
        id='materialize_recurring_assignments',
        name='Материализация постоянных назначений',
        next_run_time=datetime.now(timezone.utc),
        replace_existing=True
    )

    scheduler.start()
    logger.info(
        f"Планировщик запущен. Материализация каждые {settings.materialize_interval_minutes} мин "
        f"на {settings.materialize_horizon_days} дн. вперед"
    )


def stop_scheduler():
    """Остановить планировщик задач"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Планировщик остановлен")
