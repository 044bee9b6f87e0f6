"""Классификация аккаунтов по дате истечения.

Состояние аккаунта не хранится в БД, а вычисляется из expiry_date,
permissions и текущего времени:

    none    — действий не требуется
    warn    — истекает в ближайшие warn_window (now ≤ expiry ≤ now + window)
    disable — уже истёк (expiry < now) и ещё не отключён (permissions != 0)

Владелец (id == 1) и аккаунты без даты истечения всегда в состоянии none.

Функция classify() чистая: не обращается к БД и не зависит от часов.
ExpiryClassifier строит из неё когорты на основе выборок репозитория.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError

from mediakeeper.config.constants import (
    DISABLED_PERMISSIONS,
    OWNER_USER_ID,
    UserType,
)
from mediakeeper.core.exceptions import DatabaseError, ExpiryQueryError
from mediakeeper.db.models.user import User
from mediakeeper.db.repositories.user_repo import UserRepository
from mediakeeper.utils.logging import get_logger
from mediakeeper.utils.timezone import ensure_utc_aware

logger = get_logger(__name__)


class ExpiryState(StrEnum):
    """Вычисляемое состояние аккаунта."""

    NONE = "none"
    WARN = "warn"
    DISABLE = "disable"


@dataclass(frozen=True)
class AccountSnapshot:
    """Неизменяемая копия аккаунта на момент классификации.

    Сервисы работают со снимками, а не с ORM-объектами: после commit
    или rollback объект сессии может устареть.

    Attributes:
        id: ID аккаунта.
        email: Адрес для уведомлений.
        display_name: Отображаемое имя.
        expiry_date: Дата истечения (UTC) или None.
        permissions: Битовая маска прав.
        user_type: Источник аккаунта.
        external_account_id: ID аккаунта на медиасервере.
    """

    id: int
    email: str | None
    display_name: str | None
    expiry_date: datetime | None
    permissions: int
    user_type: UserType
    external_account_id: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "AccountSnapshot":
        """Создать снимок из ORM-объекта."""
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            expiry_date=ensure_utc_aware(user.expiry_date) if user.expiry_date else None,
            permissions=user.permissions,
            user_type=UserType(user.user_type),
            external_account_id=user.jellyfin_user_id,
        )

    @property
    def is_owner(self) -> bool:
        """Является ли аккаунт владельцем."""
        return self.id == OWNER_USER_ID

    @property
    def is_disabled(self) -> bool:
        """Отключён ли аккаунт."""
        return self.permissions == DISABLED_PERMISSIONS


def classify(account: AccountSnapshot, now: datetime, window: timedelta) -> ExpiryState:
    """Определить состояние аккаунта.

    Args:
        account: Снимок аккаунта.
        now: Текущий момент.
        window: Окно предупреждения.

    Returns:
        Состояние аккаунта.
    """
    if account.is_owner or account.expiry_date is None:
        return ExpiryState.NONE

    expiry = ensure_utc_aware(account.expiry_date)
    now = ensure_utc_aware(now)

    if expiry < now:
        return ExpiryState.NONE if account.is_disabled else ExpiryState.DISABLE
    if expiry <= now + window:
        return ExpiryState.WARN
    return ExpiryState.NONE


@dataclass
class ExpiryCohorts:
    """Когорты одного запуска.

    Attributes:
        now: Момент, на который построены когорты.
        warn: Аккаунты для предупреждения.
        disable: Аккаунты для отключения.
    """

    now: datetime
    warn: list[AccountSnapshot] = field(default_factory=list)
    disable: list[AccountSnapshot] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """Нет ни одного аккаунта для обработки."""
        return not self.warn and not self.disable


class ExpiryClassifier:
    """Построение когорт warn/disable по данным репозитория.

    Оба запроса выполняются до любых изменений в БД. Если хотя бы один
    не удался — запуск прерывается целиком (ExpiryQueryError).
    """

    def __init__(self, repo: UserRepository, warn_window: timedelta) -> None:
        """Инициализировать классификатор.

        Args:
            repo: Репозиторий пользователей.
            warn_window: Окно предупреждения.
        """
        self._repo = repo
        self._warn_window = warn_window

    async def classify_cohorts(self, now: datetime) -> ExpiryCohorts:
        """Построить когорты на момент now.

        Args:
            now: Текущий момент (один на весь запуск).

        Returns:
            Когорты для предупреждения и отключения.

        Raises:
            ExpiryQueryError: Не удалось выполнить запрос к БД.
        """
        now = ensure_utc_aware(now)

        try:
            expiring = await self._repo.find_by_expiry_range(now, now + self._warn_window)
            expired = await self._repo.find_by_expiry_before(now)
        except (DatabaseError, SQLAlchemyError) as e:
            raise ExpiryQueryError(
                "Не удалось получить аккаунты по дате истечения", original_error=e
            ) from e

        cohorts = ExpiryCohorts(now=now)
        for user in expiring:
            snapshot = AccountSnapshot.from_user(user)
            if classify(snapshot, now, self._warn_window) == ExpiryState.WARN:
                cohorts.warn.append(snapshot)
        for user in expired:
            snapshot = AccountSnapshot.from_user(user)
            if classify(snapshot, now, self._warn_window) == ExpiryState.DISABLE:
                cohorts.disable.append(snapshot)

        logger.info(
            "Найдено аккаунтов: истекают в ближайшие %s — %d, к отключению — %d",
            self._warn_window,
            len(cohorts.warn),
            len(cohorts.disable),
        )
        return cohorts
