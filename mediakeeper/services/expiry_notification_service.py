"""Сервис предупреждений об истечении доступа.

Для каждого аккаунта из когорты warn отправляет письмо
"доступ истекает через N дней". Состояние аккаунтов не меняется.

Ошибка отправки одному пользователю логируется и не прерывает
обработку остальных.
"""

import math
from datetime import datetime, timedelta
from typing import Any

from mediakeeper.config.yaml_config import YamlConfig
from mediakeeper.providers.mail.base import BaseMailSender
from mediakeeper.providers.mail.templates import EXPIRY_WARNING_TEMPLATE
from mediakeeper.services.expiry_classifier import AccountSnapshot
from mediakeeper.services.run_report import AccountOutcome, OutcomeStatus, Phase
from mediakeeper.utils.logging import get_logger
from mediakeeper.utils.timezone import ensure_utc_aware, format_datetime

logger = get_logger(__name__)

ONE_DAY = timedelta(days=1)


def days_remaining(expiry_date: datetime, now: datetime) -> int:
    """Сколько дней осталось до истечения (с округлением вверх).

    Истекает через 36 часов → 2 дня; ровно через сутки → 1 день.

    Args:
        expiry_date: Дата истечения.
        now: Текущий момент.

    Returns:
        Количество дней.
    """
    delta = ensure_utc_aware(expiry_date) - ensure_utc_aware(now)
    return math.ceil(delta / ONE_DAY)


class ExpiryNotificationService:
    """Рассылка предупреждений об истечении доступа.

    Attributes:
        _yaml_config: Конфигурация из config.yaml.
        _mail_sender: Отправитель писем (None — SMTP не настроен).
    """

    def __init__(self, yaml_config: YamlConfig, mail_sender: BaseMailSender | None) -> None:
        """Инициализировать сервис.

        Args:
            yaml_config: Конфигурация из config.yaml.
            mail_sender: Отправитель писем.
        """
        self._yaml_config = yaml_config
        self._mail_sender = mail_sender

    def build_variables(self, account: AccountSnapshot, now: datetime) -> dict[str, Any]:
        """Собрать переменные шаблона expiry_warning.

        Args:
            account: Аккаунт из когорты warn.
            now: Момент запуска.

        Returns:
            Переменные шаблона.
        """
        if account.expiry_date is None:
            raise ValueError(f"У аккаунта {account.id} нет даты истечения")

        expiry_config = self._yaml_config.expiry
        application = self._yaml_config.application

        return {
            "recipientName": account.display_name,
            "recipientEmail": account.email,
            "expiryDate": format_datetime(
                account.expiry_date,
                expiry_config.timezone,
                expiry_config.date_format,
            ),
            "daysRemaining": days_remaining(account.expiry_date, now),
            "applicationTitle": application.title,
            "applicationUrl": application.url,
        }

    async def notify_expiring(
        self, accounts: list[AccountSnapshot], now: datetime
    ) -> list[AccountOutcome]:
        """Отправить предупреждения всем аккаунтам когорты.

        Args:
            accounts: Когорта warn.
            now: Момент запуска (один на весь запуск).

        Returns:
            Результат по каждому аккаунту.
        """
        outcomes: list[AccountOutcome] = []
        if not accounts:
            return outcomes

        skip_reason = self._global_skip_reason()
        if skip_reason is not None:
            logger.info(
                "Предупреждения не отправляются (%s), аккаунтов: %d",
                skip_reason,
                len(accounts),
            )
            return [
                AccountOutcome(
                    user_id=account.id,
                    phase=Phase.WARN,
                    status=OutcomeStatus.NOTIFICATION_SKIPPED,
                    detail=skip_reason,
                )
                for account in accounts
            ]

        for account in accounts:
            outcomes.append(await self._notify_one(account, now))

        return outcomes

    def _global_skip_reason(self) -> str | None:
        """Причина, по которой письма не отправляются никому."""
        if not self._yaml_config.email_notifications_enabled:
            return "email-уведомления выключены"
        if self._mail_sender is None:
            return "SMTP не настроен"
        return None

    async def _notify_one(self, account: AccountSnapshot, now: datetime) -> AccountOutcome:
        """Отправить предупреждение одному аккаунту."""
        if not account.email:
            logger.warning("Аккаунт %s без email, предупреждение пропущено", account.id)
            return AccountOutcome(
                user_id=account.id,
                phase=Phase.WARN,
                status=OutcomeStatus.NOTIFICATION_SKIPPED,
                detail="нет email",
            )

        # Проверено в _global_skip_reason()
        assert self._mail_sender is not None

        try:
            variables = self.build_variables(account, now)
            logger.info(
                "Предупреждение об истечении: user_id=%s, email=%s, осталось дней: %s",
                account.id,
                account.email,
                variables["daysRemaining"],
            )
            await self._mail_sender.send(EXPIRY_WARNING_TEMPLATE, account.email, variables)
        except Exception as e:
            logger.exception("Не удалось отправить предупреждение user_id=%s", account.id)
            return AccountOutcome(
                user_id=account.id,
                phase=Phase.WARN,
                status=OutcomeStatus.NOTIFICATION_FAILED,
                error=str(e),
            )

        return AccountOutcome(
            user_id=account.id,
            phase=Phase.WARN,
            status=OutcomeStatus.WARNED,
        )
