"""Управление планировщиком APScheduler.

Этот модуль предоставляет функции для:
- Создания и настройки планировщика
- Регистрации периодической проверки истечения доступа
- Запуска и остановки планировщика

Пример использования:
    from mediakeeper.scheduler import create_scheduler, start_scheduler, stop_scheduler

    scheduler = create_scheduler(yaml_config, manager)
    start_scheduler(scheduler)
    ...
    stop_scheduler(scheduler)
"""

from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from mediakeeper.config.yaml_config import YamlConfig
from mediakeeper.scheduler.tasks import process_user_expiry
from mediakeeper.services.expiry_manager import UserExpiryManager
from mediakeeper.utils.logging import get_logger
from mediakeeper.utils.timezone import utc_now

logger = get_logger(__name__)

USER_EXPIRY_JOB_ID = "process_user_expiry"


def create_scheduler(
    yaml_config: YamlConfig,
    manager: UserExpiryManager,
) -> AsyncIOScheduler:
    """Создать и настроить планировщик задач.

    Регистрирует проверку истечения доступа с интервалом
    expiry.check_interval_hours. Если expiry.run_on_startup — первый
    запуск сразу после старта планировщика.

    max_instances=1 и coalesce=True: пропущенные запуски не накапливаются,
    а долгая проверка не запускается параллельно сама с собой.

    Планировщик НЕ запускается автоматически — нужно вызвать start_scheduler().

    Args:
        yaml_config: YAML-конфигурация.
        manager: Оркестратор проверки истечения.

    Returns:
        Настроенный экземпляр AsyncIOScheduler (не запущенный).
    """
    scheduler = AsyncIOScheduler(timezone="UTC")
    expiry_config = yaml_config.expiry

    if not expiry_config.enabled:
        logger.info("Проверка истечения доступа выключена (expiry.enabled = false)")
        return scheduler

    job_kwargs: dict[str, Any] = {}
    if expiry_config.run_on_startup:
        job_kwargs["next_run_time"] = utc_now()

    scheduler.add_job(
        process_user_expiry,
        trigger=IntervalTrigger(hours=expiry_config.check_interval_hours),
        kwargs={"manager": manager},
        id=USER_EXPIRY_JOB_ID,
        name=f"Проверка истечения доступа (каждые {expiry_config.check_interval_hours} ч)",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        **job_kwargs,
    )

    logger.info(
        "Планировщик создан с %d задачами",
        len(scheduler.get_jobs()),
    )

    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Запустить планировщик.

    Планировщик работает в фоне и не блокирует event loop.

    Args:
        scheduler: Экземпляр AsyncIOScheduler.
    """
    if scheduler.running:
        logger.warning("Планировщик уже запущен")
        return

    scheduler.start()
    logger.info("Планировщик запущен")

    for job in scheduler.get_jobs():
        logger.debug("  - %s: %s", job.id, job.next_run_time)


def stop_scheduler(scheduler: AsyncIOScheduler) -> None:
    """Остановить планировщик.

    Args:
        scheduler: Экземпляр AsyncIOScheduler.
    """
    if not scheduler.running:
        logger.debug("Планировщик не запущен, пропускаем остановку")
        return

    scheduler.shutdown(wait=False)
    logger.info("Планировщик остановлен")
