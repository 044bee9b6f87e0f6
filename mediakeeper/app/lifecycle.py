"""Управление жизненным циклом приложения.

Класс ApplicationLifecycle инкапсулирует всю логику startup и shutdown:
- Создание клиентов медиасерверов и отправителя писем
- Создание оркестратора проверки истечения
- Запуск планировщика
- Корректная остановка всех компонентов
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mediakeeper.db.base import dispose_engine, verify_schema
from mediakeeper.providers.identity import (
    close_identity_backends,
    create_identity_backends,
)
from mediakeeper.providers.mail import create_mail_sender
from mediakeeper.scheduler import create_scheduler, start_scheduler, stop_scheduler
from mediakeeper.services.expiry_manager import UserExpiryManager
from mediakeeper.utils.logging import get_logger

if TYPE_CHECKING:
    from apscheduler.schedulers.asyncio import AsyncIOScheduler

    from mediakeeper.config.constants import UserType
    from mediakeeper.config.settings import Settings
    from mediakeeper.config.yaml_config import YamlConfig
    from mediakeeper.providers.identity import BaseIdentityBackend

logger = get_logger(__name__)


class ApplicationLifecycle:
    """Управление жизненным циклом приложения.

    Attributes:
        settings: Настройки приложения из .env
        yaml_config: Конфигурация из config.yaml
        manager: Оркестратор проверки истечения (создаётся при startup)
        scheduler: APScheduler instance (создаётся при startup)
    """

    def __init__(self, settings: Settings, yaml_config: YamlConfig) -> None:
        """Инициализировать lifecycle manager.

        Args:
            settings: Настройки приложения из .env
            yaml_config: Конфигурация из config.yaml
        """
        self.settings = settings
        self.yaml_config = yaml_config

        # Компоненты, которые создаются при startup
        self.manager: UserExpiryManager | None = None
        self.scheduler: AsyncIOScheduler | None = None
        self._identity_backends: dict[UserType, BaseIdentityBackend] = {}

    def build_manager(self) -> UserExpiryManager:
        """Создать оркестратор со всеми зависимостями.

        Returns:
            Готовый UserExpiryManager.
        """
        self._identity_backends = create_identity_backends(self.settings)
        mail_sender = create_mail_sender(self.settings, self.yaml_config)

        if self.yaml_config.email_notifications_enabled and mail_sender is None:
            logger.warning(
                "notifications.email.enabled = true, но SMTP не настроен (EMAIL__HOST)"
            )

        self.manager = UserExpiryManager(
            yaml_config=self.yaml_config,
            mail_sender=mail_sender,
            identity_backends=self._identity_backends,
        )
        return self.manager

    async def check_database(self) -> None:
        """Проверить доступность БД и таблицы "user" основного приложения.

        Raises:
            DatabaseError: База недоступна или схема не подходит.
        """
        await verify_schema()
        logger.info("База данных доступна, схема таблицы \"user\" подходит")

    async def startup(self) -> None:
        """Выполнить startup приложения.

        1. Проверка БД
        2. Клиенты медиасерверов и отправитель писем
        3. Оркестратор проверки истечения
        4. Планировщик
        """
        logger.info("Запуск приложения...")

        await self.check_database()
        manager = self.build_manager()
        self.scheduler = create_scheduler(self.yaml_config, manager)
        start_scheduler(self.scheduler)

        logger.info("✅ Приложение запущено успешно")

    async def shutdown(self) -> None:
        """Выполнить shutdown приложения.

        Останавливает все компоненты в обратном порядке:
        1. Планировщик
        2. HTTP-клиенты медиасерверов
        3. Пул соединений с БД
        """
        logger.info("Остановка приложения...")

        if self.scheduler is not None:
            stop_scheduler(self.scheduler)
            self.scheduler = None

        await close_identity_backends(self._identity_backends)
        self._identity_backends = {}
        logger.debug("HTTP-клиенты медиасерверов закрыты")

        await dispose_engine()
        logger.debug("Соединения с БД закрыты")

        logger.info("✅ Приложение остановлено")
