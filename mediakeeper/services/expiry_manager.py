"""Оркестратор проверки истечения доступа.

Один запуск:
1. Классификатор строит когорты warn и disable (ошибка БД прерывает запуск)
2. Сервис уведомлений рассылает предупреждения когорте warn
3. Сервис деактивации отключает аккаунты когорты disable
4. Итог возвращается и логируется как RunReport

Запуски не пересекаются: пока идёт один, повторный вызов сразу
возвращает отчёт со skipped=True и ничего не делает.

Аккаунты обрабатываются последовательно в одной сессии БД.
"""

import asyncio
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from mediakeeper.config.constants import UserType
from mediakeeper.config.yaml_config import YamlConfig
from mediakeeper.core.exceptions import ExpiryQueryError
from mediakeeper.db.base import DatabaseSession
from mediakeeper.db.repositories.user_repo import UserRepository
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.providers.mail.base import BaseMailSender
from mediakeeper.services.deactivation_service import DeactivationService
from mediakeeper.services.expiry_classifier import ExpiryClassifier
from mediakeeper.services.expiry_notification_service import ExpiryNotificationService
from mediakeeper.services.run_report import RunReport
from mediakeeper.utils.logging import get_logger
from mediakeeper.utils.timezone import utc_now

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class UserExpiryManager:
    """Периодическая проверка истечения доступа пользователей.

    Пример использования:
        manager = UserExpiryManager(
            yaml_config=yaml_config,
            mail_sender=create_mail_sender(settings, yaml_config),
            identity_backends=create_identity_backends(settings),
        )
        report = await manager.run()
        print(report.summary())
    """

    def __init__(
        self,
        yaml_config: YamlConfig,
        mail_sender: BaseMailSender | None,
        identity_backends: dict[UserType, BaseIdentityBackend],
        session_factory: SessionFactory = DatabaseSession,
    ) -> None:
        """Инициализировать оркестратор.

        Args:
            yaml_config: Конфигурация из config.yaml.
            mail_sender: Отправитель писем (None — SMTP не настроен).
            identity_backends: Бэкенды медиасерверов.
            session_factory: Фабрика сессий БД (для тестов).
        """
        self._yaml_config = yaml_config
        self._mail_sender = mail_sender
        self._identity_backends = identity_backends
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        """Идёт ли сейчас запуск."""
        return self._lock.locked()

    async def run(self, now: datetime | None = None) -> RunReport:
        """Выполнить одну проверку.

        Не выбрасывает исключений из-за отдельных аккаунтов или сбоя
        запроса: всё отражается в отчёте.

        Args:
            now: Момент проверки (по умолчанию — текущее время UTC).

        Returns:
            Отчёт о запуске.
        """
        if self._lock.locked():
            logger.warning("Предыдущая проверка истечения ещё идёт, запуск пропущен")
            report = RunReport(skipped=True)
            report.finish()
            return report

        async with self._lock:
            report = await self._run_locked(now or utc_now())

        if report.is_success:
            logger.info("Проверка истечения завершена. %s", report.summary())
        else:
            logger.error("Проверка истечения завершена с ошибками. %s", report.summary())
        return report

    async def _run_locked(self, now: datetime) -> RunReport:
        """Тело запуска (вызывается под блокировкой)."""
        report = RunReport(started_at=now)
        logger.info("Запуск проверки истечения доступа")

        async with self._session_factory() as session:
            repo = UserRepository(session)
            classifier = ExpiryClassifier(repo, self._yaml_config.expiry.warn_window)

            try:
                cohorts = await classifier.classify_cohorts(now)
            except ExpiryQueryError as e:
                logger.exception("Проверка истечения прервана: ошибка запроса к БД")
                report.error = str(e)
                report.finish()
                return report

            notifications = ExpiryNotificationService(self._yaml_config, self._mail_sender)
            report.extend(await notifications.notify_expiring(cohorts.warn, cohorts.now))

            deactivation = DeactivationService(repo, self._identity_backends)
            report.extend(await deactivation.disable_expired(cohorts.disable))

        report.finish()
        return report
