"""Тесты для ExpiryNotificationService.

Модуль тестирует:
- days_remaining() — округление вверх до целых дней
- build_variables() — переменные шаблона письма
- notify_expiring() — рассылку предупреждений когорте warn

Тестируемая функциональность:
1. Выключенный флаг email-уведомлений — письма не отправляются
2. Без SMTP и без email аккаунт пропускается, а не падает
3. Ошибка отправки одному аккаунту не мешает остальным
"""

from datetime import datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from mediakeeper.config.constants import UserType
from mediakeeper.config.yaml_config import YamlConfig
from mediakeeper.core.exceptions import EmailDeliveryError
from mediakeeper.providers.mail.base import BaseMailSender
from mediakeeper.providers.mail.templates import EXPIRY_WARNING_TEMPLATE
from mediakeeper.services.expiry_classifier import AccountSnapshot
from mediakeeper.services.expiry_notification_service import (
    ExpiryNotificationService,
    days_remaining,
)
from mediakeeper.services.run_report import OutcomeStatus, Phase

# ==============================================================================
# ФИКСТУРЫ
# ==============================================================================


@pytest.fixture
def yaml_config() -> YamlConfig:
    """Конфигурация с включёнными email-уведомлениями."""
    return YamlConfig.model_validate(
        {
            "application": {"title": "Медиатека", "url": "https://media.example.com/"},
            "notifications": {"email": {"enabled": True}},
            "expiry": {"timezone": "UTC", "date_format": "%d.%m.%Y"},
        }
    )


@pytest.fixture
def mail_sender() -> AsyncMock:
    """Мок отправителя писем."""
    return AsyncMock(spec=BaseMailSender)


def _account(
    id: int,  # noqa: A002
    expiry_date: datetime,
    email: str | None = "",
) -> AccountSnapshot:
    return AccountSnapshot(
        id=id,
        email=f"user{id}@example.com" if email == "" else email,
        display_name=f"User {id}",
        expiry_date=expiry_date,
        permissions=1,
        user_type=UserType.LOCAL,
    )


# ==============================================================================
# ТЕСТЫ days_remaining
# ==============================================================================


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (timedelta(days=2), 2),
        (timedelta(days=1, hours=12), 2),
        (timedelta(days=1), 1),
        (timedelta(hours=1), 1),
        (timedelta(days=2, seconds=1), 3),
        (timedelta(0), 0),
    ],
)
def test_days_remaining_rounds_up(now: datetime, offset: timedelta, expected: int) -> None:
    """Тест: количество дней округляется вверх."""
    assert days_remaining(now + offset, now) == expected


# ==============================================================================
# ТЕСТЫ build_variables
# ==============================================================================


def test_build_variables_contains_template_fields(
    yaml_config: YamlConfig, mail_sender: AsyncMock, now: datetime
) -> None:
    """Тест: переменные шаблона заполнены из аккаунта и конфигурации."""
    service = ExpiryNotificationService(yaml_config, mail_sender)
    account = _account(2, now + timedelta(days=2))

    variables = service.build_variables(account, now)

    assert variables == {
        "recipientName": "User 2",
        "recipientEmail": "user2@example.com",
        "expiryDate": (now + timedelta(days=2)).strftime("%d.%m.%Y"),
        "daysRemaining": 2,
        "applicationTitle": "Медиатека",
        "applicationUrl": "https://media.example.com",
    }


# ==============================================================================
# ТЕСТЫ notify_expiring
# ==============================================================================


@pytest.mark.asyncio
async def test_notify_sends_one_email_per_account(
    yaml_config: YamlConfig, mail_sender: AsyncMock, now: datetime
) -> None:
    """Тест: аккаунт, истекающий через 2 дня, получает одно письмо."""
    service = ExpiryNotificationService(yaml_config, mail_sender)

    outcomes = await service.notify_expiring([_account(2, now + timedelta(days=2))], now)

    mail_sender.send.assert_awaited_once()
    template, recipient, variables = mail_sender.send.await_args.args
    assert template == EXPIRY_WARNING_TEMPLATE
    assert recipient == "user2@example.com"
    assert variables["daysRemaining"] == 2

    assert len(outcomes) == 1
    assert outcomes[0].status == OutcomeStatus.WARNED
    assert outcomes[0].phase == Phase.WARN


@pytest.mark.asyncio
async def test_notify_skips_when_flag_disabled(mail_sender: AsyncMock, now: datetime) -> None:
    """Тест: при выключенном флаге письма не отправляются."""
    service = ExpiryNotificationService(YamlConfig(), mail_sender)

    outcomes = await service.notify_expiring(
        [_account(2, now + timedelta(days=1)), _account(3, now + timedelta(days=2))], now
    )

    mail_sender.send.assert_not_called()
    assert [o.status for o in outcomes] == [OutcomeStatus.NOTIFICATION_SKIPPED] * 2


@pytest.mark.asyncio
async def test_notify_skips_without_mail_sender(yaml_config: YamlConfig, now: datetime) -> None:
    """Тест: без настроенного SMTP предупреждения пропускаются."""
    service = ExpiryNotificationService(yaml_config, None)

    outcomes = await service.notify_expiring([_account(2, now + timedelta(days=1))], now)

    assert outcomes[0].status == OutcomeStatus.NOTIFICATION_SKIPPED
    assert outcomes[0].detail == "SMTP не настроен"


@pytest.mark.asyncio
async def test_notify_skips_account_without_email(
    yaml_config: YamlConfig, mail_sender: AsyncMock, now: datetime
) -> None:
    """Тест: аккаунт без email пропускается, остальные получают письма."""
    service = ExpiryNotificationService(yaml_config, mail_sender)

    outcomes = await service.notify_expiring(
        [_account(2, now + timedelta(days=1), email=None), _account(3, now + timedelta(days=1))],
        now,
    )

    assert [o.status for o in outcomes] == [
        OutcomeStatus.NOTIFICATION_SKIPPED,
        OutcomeStatus.WARNED,
    ]
    mail_sender.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_notify_failure_does_not_abort_batch(
    yaml_config: YamlConfig, mail_sender: AsyncMock, now: datetime
) -> None:
    """Тест: ошибка отправки одному аккаунту не прерывает рассылку."""
    mail_sender.send.side_effect = [
        EmailDeliveryError("SMTP 550", recipient="user2@example.com"),
        None,
    ]
    service = ExpiryNotificationService(yaml_config, mail_sender)

    outcomes = await service.notify_expiring(
        [_account(2, now + timedelta(days=1)), _account(3, now + timedelta(days=2))], now
    )

    assert mail_sender.send.await_count == 2
    assert outcomes[0].status == OutcomeStatus.NOTIFICATION_FAILED
    assert outcomes[0].error == "SMTP 550"
    assert outcomes[1].status == OutcomeStatus.WARNED


@pytest.mark.asyncio
async def test_notify_empty_cohort(yaml_config: YamlConfig, mail_sender: AsyncMock, now) -> None:
    """Тест: пустая когорта — пустой результат."""
    service = ExpiryNotificationService(yaml_config, mail_sender)

    assert await service.notify_expiring([], now) == []
    mail_sender.send.assert_not_called()
