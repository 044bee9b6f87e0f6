"""Подключение к базе данных аккаунтов.

Схема принадлежит основному приложению медиатеки: mediakeeper только
читает таблицу "user" и меняет в ней permissions. Таблицы здесь не
создаются и не мигрируются; verify_schema() при запуске проверяет, что
они есть.

Источник данных:
- DATABASE__POSTGRES_URL — PostgreSQL (драйвер asyncpg)
- DATABASE__SQLITE_PATH — SQLite-файл основного приложения (драйвер aiosqlite)
- иначе DATA_DIR/mediakeeper.db

Engine и фабрика сессий создаются при первом обращении, а не при импорте,
чтобы тесты могли подставить свою БД. Модели наследуются от Base из
mediakeeper.db.models_base.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import Connection, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from mediakeeper.config.constants import DATA_DIR
from mediakeeper.core.exceptions import DatabaseConnectionError, DatabaseSchemaError
from mediakeeper.db.models.user import User
from mediakeeper.db.models_base import Base

if TYPE_CHECKING:
    from mediakeeper.config.models import DatabaseSettings

__all__ = [
    "Base",
    "DatabaseSession",
    "build_database_url",
    "dispose_engine",
    "get_async_session_factory",
    "get_engine",
    "verify_schema",
]

SQLITE_FILE_NAME = "mediakeeper.db"

# Сколько секунд SQLite ждёт освобождения блокировки, прежде чем
# UPDATE упадёт с "database is locked"
SQLITE_BUSY_TIMEOUT = 15

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_database_url(
    database: "DatabaseSettings", data_dir: Path = DATA_DIR
) -> str:
    """Собрать async-URL SQLAlchemy для базы аккаунтов.

    Args:
        database: Настройки БД из окружения.
        data_dir: Папка для SQLite-файла.

    Returns:
        URL PostgreSQL, если он задан, иначе URL SQLite-файла
        (sqlite_path или DATA_DIR/mediakeeper.db).
    """
    if database.postgres_url:
        return database.postgres_url
    sqlite_path = database.sqlite_path or data_dir / SQLITE_FILE_NAME
    return f"sqlite+aiosqlite:///{sqlite_path}"


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT}}
    return {"pool_pre_ping": True}


def get_engine() -> AsyncEngine:
    """Engine базы аккаунтов (создаётся при первом вызове)."""
    global _engine
    if _engine is None:
        # Настройки читаются здесь, а не при импорте модуля
        from mediakeeper.config.settings import settings

        url = build_database_url(settings.database)
        _engine = create_async_engine(url, echo=False, **_engine_options(url))
    return _engine


def get_async_session_factory() -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий; expire_on_commit=False, чтобы объекты жили после commit."""
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            get_engine(), class_=AsyncSession, expire_on_commit=False
        )
    return _async_session_factory


def _existing_columns(connection: Connection, table_name: str) -> set[str] | None:
    inspector = inspect(connection)
    if not inspector.has_table(table_name):
        return None
    return {column["name"] for column in inspector.get_columns(table_name)}


async def verify_schema(engine: AsyncEngine | None = None) -> None:
    """Проверить, что в базе есть таблица "user" со всеми нужными колонками.

    Args:
        engine: Engine для проверки (по умолчанию — engine приложения).

    Raises:
        DatabaseSchemaError: Нет таблицы или части колонок.
        DatabaseConnectionError: Не удалось подключиться к БД.
    """
    table = User.__table__
    try:
        async with (engine or get_engine()).connect() as conn:
            existing = await conn.run_sync(_existing_columns, table.name)
    except SQLAlchemyError as e:
        raise DatabaseConnectionError(e) from e

    if existing is None:
        raise DatabaseSchemaError(table.name, [])
    missing = [column.name for column in table.columns if column.name not in existing]
    if missing:
        raise DatabaseSchemaError(table.name, missing)


async def dispose_engine() -> None:
    """Закрыть пул соединений при остановке приложения."""
    global _engine, _async_session_factory
    engine, _engine, _async_session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()


class DatabaseSession:
    """Сессия БД на один запуск проверки.

    При выходе по исключению транзакция откатывается, сессия
    закрывается в любом случае.

        async with DatabaseSession() as session:
            cohorts = await ExpiryClassifier(UserRepository(session), window).classify_cohorts(now)
    """

    def __init__(self) -> None:
        self._session: AsyncSession | None = None

    async def __aenter__(self) -> AsyncSession:
        self._session = get_async_session_factory()()
        return self._session

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        try:
            if exc_type is not None:
                await session.rollback()
        finally:
            await session.close()
