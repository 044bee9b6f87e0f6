"""Тесты для UserExpiryManager — полного запуска проверки.

Модуль тестирует сквозные сценарии на тестовой БД:
- Предупреждение аккаунту, истекающему через 2 дня
- Отключение просроченного локального аккаунта
- Отключение аккаунта медиасервера без админского ключа
- Изоляция ошибки сохранения в отчёте
- Прерывание запуска при ошибке выборки
- Пропуск повторного запуска, пока идёт предыдущий
"""

import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from mediakeeper.config.constants import DISABLED_PERMISSIONS, UserType
from mediakeeper.config.yaml_config import YamlConfig
from mediakeeper.core.exceptions import DatabaseOperationError
from mediakeeper.db.repositories.user_repo import UserRepository
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.providers.mail.base import BaseMailSender
from mediakeeper.services.expiry_manager import UserExpiryManager
from mediakeeper.services.run_report import OutcomeStatus

# ==============================================================================
# ФИКСТУРЫ
# ==============================================================================


@pytest.fixture
def yaml_config() -> YamlConfig:
    """Конфигурация с включёнными уведомлениями и окном 3 дня."""
    return YamlConfig.model_validate(
        {
            "notifications": {"email": {"enabled": True}},
            "expiry": {"warn_window_days": 3, "timezone": "UTC"},
        }
    )


@pytest.fixture
def mail_sender() -> AsyncMock:
    """Мок отправителя писем."""
    return AsyncMock(spec=BaseMailSender)


@pytest.fixture
def manager(yaml_config: YamlConfig, mail_sender: AsyncMock, session_factory) -> UserExpiryManager:
    """Оркестратор на тестовой БД без медиасерверов."""
    return UserExpiryManager(
        yaml_config=yaml_config,
        mail_sender=mail_sender,
        identity_backends={},
        session_factory=session_factory,
    )


async def _permissions(db_session: AsyncSession, user_id: int) -> int:
    user = await UserRepository(db_session).get_by_id(user_id)
    assert user is not None
    await db_session.refresh(user)
    return user.permissions


# ==============================================================================
# СЦЕНАРИИ
# ==============================================================================


@pytest.mark.asyncio
async def test_account_expiring_in_two_days_is_warned(
    manager: UserExpiryManager, mail_sender: AsyncMock, make_user, now: datetime
) -> None:
    """Тест: аккаунт с истечением через 2 дня получает одно предупреждение."""
    await make_user(id=2, expiry_date=now + timedelta(days=2), permissions=1)

    report = await manager.run(now)

    mail_sender.send.assert_awaited_once()
    assert mail_sender.send.await_args.args[2]["daysRemaining"] == 2
    assert report.warned_count == 1
    assert report.succeeded == [2]
    assert report.is_success


@pytest.mark.asyncio
async def test_expired_local_account_is_disabled(
    manager: UserExpiryManager, db_session: AsyncSession, make_user, now: datetime
) -> None:
    """Тест: просроченный локальный аккаунт отключается без внешних вызовов."""
    await make_user(id=3, expiry_date=now - timedelta(hours=1), permissions=5)

    report = await manager.run(now)

    assert report.disabled_count == 1
    assert report.external_failures == []
    assert await _permissions(db_session, 3) == DISABLED_PERMISSIONS


@pytest.mark.asyncio
async def test_external_account_without_credential_disabled_locally(
    yaml_config: YamlConfig,
    mail_sender: AsyncMock,
    session_factory,
    db_session: AsyncSession,
    make_user,
    now: datetime,
) -> None:
    """Тест: без ключа медиасервера вызов пропускается, локально аккаунт отключён."""
    other_backend = AsyncMock(spec=BaseIdentityBackend)
    other_backend.backend_name = "jellyfin"
    manager = UserExpiryManager(
        yaml_config=yaml_config,
        mail_sender=mail_sender,
        identity_backends={UserType.JELLYFIN: other_backend},
        session_factory=session_factory,
    )
    await make_user(
        id=4,
        expiry_date=now - timedelta(days=1),
        permissions=3,
        user_type=UserType.EMBY,
        jellyfin_user_id="emby-4",
    )

    report = await manager.run(now)

    other_backend.disable_account.assert_not_called()
    assert report.outcomes[0].status == OutcomeStatus.DISABLED
    assert await _permissions(db_session, 4) == DISABLED_PERMISSIONS


@pytest.mark.asyncio
async def test_persist_failure_reported_and_isolated(
    manager: UserExpiryManager, db_session: AsyncSession, make_user, now: datetime
) -> None:
    """Тест: один аккаунт не сохранился, второй отключён; в отчёте 1 ошибка и 1 успех."""
    await make_user(id=2, expiry_date=now - timedelta(days=2), permissions=1)
    await make_user(id=3, expiry_date=now - timedelta(days=1), permissions=1)

    original_disable = UserRepository.disable

    async def flaky_disable(self: UserRepository, user_id: int) -> bool:
        if user_id == 2:
            raise DatabaseOperationError(
                "disable", OperationalError('UPDATE "user"', {}, Exception("locked"))
            )
        return await original_disable(self, user_id)

    with patch.object(UserRepository, "disable", flaky_disable):
        report = await manager.run(now)

    assert report.succeeded == [3]
    assert [user_id for user_id, _ in report.failed] == [2]
    assert report.failed_count == 1
    assert not report.is_success
    assert await _permissions(db_session, 3) == DISABLED_PERMISSIONS
    assert await _permissions(db_session, 2) == 1


@pytest.mark.asyncio
async def test_failed_persist_retried_on_next_run(
    manager: UserExpiryManager, db_session: AsyncSession, make_user, now: datetime
) -> None:
    """Тест: аккаунт, который не удалось сохранить, отключается следующим запуском."""
    await make_user(id=2, expiry_date=now - timedelta(days=1), permissions=1)

    with patch.object(
        UserRepository,
        "disable",
        AsyncMock(side_effect=DatabaseOperationError("disable", RuntimeError("locked"))),
    ):
        first = await manager.run(now)

    second = await manager.run(now + timedelta(hours=24))

    assert first.failed_count == 1
    assert second.succeeded == [2]
    assert await _permissions(db_session, 2) == DISABLED_PERMISSIONS


# ==============================================================================
# ИНВАРИАНТЫ
# ==============================================================================


@pytest.mark.asyncio
async def test_owner_never_warned_or_disabled(
    manager: UserExpiryManager,
    mail_sender: AsyncMock,
    db_session: AsyncSession,
    make_user,
    now: datetime,
) -> None:
    """Тест: владелец не предупреждается и не отключается."""
    await make_user(id=1, expiry_date=now - timedelta(days=5), permissions=2)

    report = await manager.run(now)

    assert report.outcomes == []
    mail_sender.send.assert_not_called()
    assert await _permissions(db_session, 1) == 2


@pytest.mark.asyncio
async def test_accounts_without_expiry_untouched(
    manager: UserExpiryManager, mail_sender: AsyncMock, make_user, now: datetime
) -> None:
    """Тест: аккаунты без даты истечения не обрабатываются."""
    await make_user(id=2, expiry_date=None)
    await make_user(id=3, expiry_date=None, permissions=0)

    report = await manager.run(now)

    assert report.outcomes == []
    mail_sender.send.assert_not_called()


@pytest.mark.asyncio
async def test_second_run_is_idempotent(
    manager: UserExpiryManager, make_user, now: datetime
) -> None:
    """Тест: повторный запуск не находит уже отключённых аккаунтов."""
    await make_user(id=2, expiry_date=now - timedelta(days=1), permissions=4)

    first = await manager.run(now)
    second = await manager.run(now)

    assert first.disabled_count == 1
    assert second.outcomes == []


# ==============================================================================
# ОШИБКИ УРОВНЯ ЗАПУСКА
# ==============================================================================


@pytest.mark.asyncio
async def test_query_failure_aborts_run_before_mutation(
    manager: UserExpiryManager,
    mail_sender: AsyncMock,
    db_session: AsyncSession,
    make_user,
    now: datetime,
) -> None:
    """Тест: ошибка выборки прерывает запуск до отправки писем и изменений."""
    await make_user(id=2, expiry_date=now + timedelta(days=1))
    await make_user(id=3, expiry_date=now - timedelta(days=1), permissions=1)

    with patch.object(
        UserRepository,
        "find_by_expiry_before",
        AsyncMock(side_effect=DatabaseOperationError("find_by_expiry_before", RuntimeError())),
    ):
        report = await manager.run(now)

    assert report.error is not None
    assert report.outcomes == []
    assert not report.is_success
    mail_sender.send.assert_not_called()
    assert await _permissions(db_session, 3) == 1


@pytest.mark.asyncio
async def test_reentrant_run_is_skipped(
    yaml_config: YamlConfig, mail_sender: AsyncMock, session_factory, make_user, now: datetime
) -> None:
    """Тест: запуск во время идущего запуска пропускается, а не ставится в очередь."""
    release = asyncio.Event()

    async def slow_send(*args, **kwargs) -> None:
        await release.wait()

    mail_sender.send.side_effect = slow_send
    await make_user(id=2, expiry_date=now + timedelta(days=1))

    manager = UserExpiryManager(
        yaml_config=yaml_config,
        mail_sender=mail_sender,
        identity_backends={},
        session_factory=session_factory,
    )

    first_task = asyncio.create_task(manager.run(now))
    while not manager.is_running:
        await asyncio.sleep(0)

    skipped = await manager.run(now)
    release.set()
    first = await first_task

    assert skipped.skipped is True
    assert skipped.outcomes == []
    assert first.warned_count == 1
    assert mail_sender.send.await_count == 1
    assert not manager.is_running
