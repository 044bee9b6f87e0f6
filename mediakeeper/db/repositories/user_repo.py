"""Репозиторий для работы с пользователями.

Содержит все операции с таблицей "user", нужные проверке истечения:
- Поиск аккаунтов по дате истечения (диапазон и "до момента")
- Сохранение аккаунта
- Отключение аккаунта (permissions = 0)

Все даты приводятся к UTC перед запросом: SQLite хранит datetime
без часового пояса, поэтому сравнение корректно только в одной зоне.
"""

from datetime import datetime

from sqlalchemy import Select, select, update
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mediakeeper.config.constants import (
    DEFAULT_PERMISSIONS,
    DISABLED_PERMISSIONS,
    OWNER_USER_ID,
    UserType,
)
from mediakeeper.core.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    DatabaseOperationError,
)
from mediakeeper.db.models.user import User
from mediakeeper.utils.timezone import ensure_utc_aware


class UserRepository:
    """Репозиторий для работы с пользователями.

    Использует Dependency Injection — сессия передаётся в конструктор.
    Это позволяет легко тестировать код без реальной БД.

    Пример использования:
        async with DatabaseSession() as session:
            repo = UserRepository(session)
            users = await repo.find_by_expiry_before(datetime.now(UTC))
    """

    def __init__(self, session: AsyncSession) -> None:
        """Инициализировать репозиторий.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def get_by_id(self, user_id: int) -> User | None:
        """Найти пользователя по внутреннему ID.

        Args:
            user_id: Внутренний ID пользователя.

        Returns:
            User если найден, None если не существует.
        """
        return await self._session.get(User, user_id)

    async def create(  # noqa: PLR0913
        self,
        *,
        email: str | None = None,
        username: str | None = None,
        expiry_date: datetime | None = None,
        permissions: int = DEFAULT_PERMISSIONS,
        user_type: UserType = UserType.LOCAL,
        jellyfin_user_id: str | None = None,
    ) -> User:
        """Создать нового пользователя.

        Args:
            email: Адрес почты.
            username: Имя пользователя.
            expiry_date: Дата истечения доступа (None — бессрочно).
            permissions: Битовая маска прав.
            user_type: Источник аккаунта.
            jellyfin_user_id: ID аккаунта на медиасервере.

        Returns:
            Созданный объект User (уже в БД).
        """
        user = User(
            email=email,
            username=username,
            expiry_date=ensure_utc_aware(expiry_date) if expiry_date else None,
            permissions=permissions,
            user_type=user_type,
            jellyfin_user_id=jellyfin_user_id,
        )
        return await self.save(user)

    async def find_by_expiry_range(self, start: datetime, end: datetime) -> list[User]:
        """Найти аккаунты с датой истечения в диапазоне [start, end].

        Обе границы включительно. Аккаунты без даты истечения не попадают
        в выборку.

        Args:
            start: Начало диапазона.
            end: Конец диапазона.

        Returns:
            Список аккаунтов, отсортированный по дате истечения.

        Raises:
            DatabaseOperationError: Если запрос не удался.
            DatabaseConnectionError: Если соединение с БД потеряно.
        """
        stmt = (
            select(User)
            .where(
                User.expiry_date.is_not(None),
                User.expiry_date.between(
                    ensure_utc_aware(start), ensure_utc_aware(end)
                ),
            )
            .order_by(User.expiry_date.asc(), User.id.asc())
        )
        return await self._fetch_all(stmt, "find_by_expiry_range")

    async def find_by_expiry_before(self, moment: datetime) -> list[User]:
        """Найти аккаунты, чья дата истечения строго раньше moment.

        Args:
            moment: Граница (обычно текущее время).

        Returns:
            Список аккаунтов, отсортированный по дате истечения.

        Raises:
            DatabaseOperationError: Если запрос не удался.
            DatabaseConnectionError: Если соединение с БД потеряно.
        """
        stmt = (
            select(User)
            .where(
                User.expiry_date.is_not(None),
                User.expiry_date < ensure_utc_aware(moment),
            )
            .order_by(User.expiry_date.asc(), User.id.asc())
        )
        return await self._fetch_all(stmt, "find_by_expiry_before")

    async def save(self, user: User) -> User:
        """Сохранить аккаунт (insert или update одной записи).

        Args:
            user: Аккаунт для сохранения.

        Returns:
            Сохранённый и обновлённый из БД объект User.

        Raises:
            DatabaseOperationError: Если commit не удался
                (транзакция откатывается).
        """
        try:
            self._session.add(user)
            await self._session.commit()
            await self._session.refresh(user)
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise _wrap_error("save", e) from e
        return user

    async def disable(self, user_id: int) -> bool:
        """Отключить аккаунт: permissions = 0.

        Меняется только поле permissions — дата истечения сохраняется
        для истории. Владелец и уже отключённые аккаунты не затрагиваются.

        Args:
            user_id: ID аккаунта.

        Returns:
            True если аккаунт был отключён этим вызовом,
            False если он уже был отключён, не найден или это владелец.

        Raises:
            DatabaseOperationError: Если запрос или commit не удались
                (транзакция откатывается).
        """
        stmt = (
            update(User)
            .where(
                User.id == user_id,
                User.id != OWNER_USER_ID,
                User.permissions != DISABLED_PERMISSIONS,
            )
            .values(permissions=DISABLED_PERMISSIONS)
        )
        try:
            result = await self._session.execute(stmt)
            await self._session.commit()
        except SQLAlchemyError as e:
            await self._session.rollback()
            raise _wrap_error("disable", e) from e
        return bool(result.rowcount)

    async def _fetch_all(
        self, stmt: Select[tuple[User]], operation: str
    ) -> list[User]:
        """Выполнить SELECT и вернуть список пользователей.

        Args:
            stmt: SELECT-запрос.
            operation: Название операции для сообщения об ошибке.

        Returns:
            Список пользователей.
        """
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as e:
            raise _wrap_error(operation, e) from e
        return list(result.scalars().all())


def _wrap_error(operation: str, error: SQLAlchemyError) -> DatabaseError:
    """Превратить ошибку SQLAlchemy в исключение приложения.

    Потерянное соединение — DatabaseConnectionError, остальное —
    DatabaseOperationError (retryable для OperationalError: блокировки,
    таймауты).
    """
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return DatabaseConnectionError(error)
    return DatabaseOperationError(
        operation, error, retryable=isinstance(error, OperationalError)
    )
