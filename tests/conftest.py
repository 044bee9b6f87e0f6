"""Общие фикстуры для всех тестов.

Этот файл содержит pytest-фикстуры, которые используются во всех тестах:
- Тестовая БД SQLite в памяти (для изоляции тестов)
- Асинхронные сессии SQLAlchemy
- Фабрика для создания тестовых пользователей
- Фабрика сессий для инжекции тестовой БД в сервисы
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mediakeeper.config.constants import DEFAULT_PERMISSIONS, UserType
from mediakeeper.db.models.user import User
from mediakeeper.db.models_base import Base

# Фиксированный момент "сейчас" для тестов, зависящих от времени
NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

UserFactory = Callable[..., Awaitable[User]]


@pytest.fixture
def now() -> datetime:
    """Фиксированный момент проверки."""
    return NOW


@pytest_asyncio.fixture(scope="function")
async def test_engine() -> AsyncGenerator[Any, None]:
    """Создать тестовый движок SQLAlchemy.

    Использует SQLite в памяти (:memory:) для полной изоляции тестов.
    Каждый тест получает чистую БД без данных из предыдущих тестов.

    Yields:
        Асинхронный движок SQLAlchemy для тестовой БД.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,  # Отключаем логи SQL в тестах
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Создать асинхронную сессию БД для теста.

    Args:
        test_engine: Тестовый движок SQLAlchemy из фикстуры test_engine.

    Yields:
        Асинхронная сессия для работы с тестовой БД.
    """
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_user(db_session: AsyncSession) -> UserFactory:
    """Фабрика тестовых пользователей.

    ID задаётся явно: id == 1 — владелец, поэтому тестовые аккаунты
    обычно начинаются с 2.

    Example:
        user = await make_user(id=2, expiry_date=now + timedelta(days=2))
    """

    async def _make_user(
        *,
        id: int,  # noqa: A002
        expiry_date: datetime | None = None,
        permissions: int = DEFAULT_PERMISSIONS,
        user_type: UserType = UserType.LOCAL,
        email: str | None = "",
        username: str | None = None,
        jellyfin_user_id: str | None = None,
    ) -> User:
        user = User(
            id=id,
            email=f"user{id}@example.com" if email == "" else email,
            username=username or f"User {id}",
            expiry_date=expiry_date,
            permissions=permissions,
            user_type=user_type,
            jellyfin_user_id=jellyfin_user_id,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def session_factory(
    db_session: AsyncSession,
) -> Callable[[], AbstractAsyncContextManager[AsyncSession]]:
    """Создать фабрику сессий БД для тестов с dependency injection.

    Возвращает фабрику, которая создаёт контекстный менеджер,
    возвращающий тестовую сессию БД. Используется для инжекции
    тестовой БД в UserExpiryManager вместо реальной БД.

    Args:
        db_session: Тестовая сессия БД.

    Returns:
        Фабрика сессий, совместимая с типом DatabaseSession.
    """

    @asynccontextmanager
    async def _session_factory() -> AsyncGenerator[AsyncSession, None]:
        """Контекстный менеджер, возвращающий тестовую сессию."""
        yield db_session

    return _session_factory
