"""Модель пользователя.

Отображение на таблицу "user" основного приложения медиатеки. Схемой
владеет основное приложение (имена колонок в camelCase, userType —
целое число), этот сервис только читает даты истечения и отключает
просроченные аккаунты.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, String, TypeDecorator, func
from sqlalchemy.engine import Dialect
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from mediakeeper.config.constants import (
    DEFAULT_PERMISSIONS,
    DISABLED_PERMISSIONS,
    OWNER_USER_ID,
    USER_TYPE_CODES,
    UserType,
)
from mediakeeper.db.models_base import Base

_USER_TYPE_BY_CODE = {code: user_type for user_type, code in USER_TYPE_CODES.items()}


class UserTypeCode(TypeDecorator[UserType]):
    """UserType ↔ целочисленный код колонки userType.

    Неизвестный код читается как LOCAL: такой аккаунт отключается только
    локально, а выборка по датам не падает из-за одной строки.
    """

    impl = Integer
    cache_ok = True

    @override
    def process_bind_param(self, value: Any, dialect: Dialect) -> int | None:
        if value is None:
            return None
        return USER_TYPE_CODES[UserType(value)]

    @override
    def process_result_value(self, value: Any, dialect: Dialect) -> UserType | None:
        if value is None:
            return None
        return _USER_TYPE_BY_CODE.get(int(value), UserType.LOCAL)


class User(Base):
    """Аккаунт пользователя.

    Attributes:
        id: Внутренний ID (автоинкремент). id == 1 — владелец.
        email: Адрес для уведомлений.
        username: Имя, заданное в основном приложении.
        plex_username: Имя в Plex (для аккаунтов Plex).
        jellyfin_username: Имя в Jellyfin/Emby.
        expiry_date: Когда истекает доступ. None — доступ бессрочный.
            При отключении не меняется, чтобы сохранить историю.
        permissions: Битовая маска прав. 0 — аккаунт отключён.
        user_type: Откуда пришёл аккаунт (local, plex, jellyfin, emby).
        jellyfin_user_id: ID аккаунта на медиасервере (Jellyfin или Emby).
        created_at: Дата создания.
        updated_at: Дата последнего изменения.
    """

    __tablename__ = "user"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    username: Mapped[str | None] = mapped_column(String(255), nullable=True)
    plex_username: Mapped[str | None] = mapped_column(
        "plexUsername", String(255), nullable=True
    )
    jellyfin_username: Mapped[str | None] = mapped_column(
        "jellyfinUsername", String(255), nullable=True
    )

    # timezone=True — "timestamp with time zone", как в миграции основного приложения
    expiry_date: Mapped[datetime | None] = mapped_column(
        "expiryDate",
        DateTime(timezone=True),
        nullable=True,
    )

    permissions: Mapped[int] = mapped_column(
        Integer,
        default=DEFAULT_PERMISSIONS,
        nullable=False,
    )

    user_type: Mapped[UserType] = mapped_column(
        "userType",
        UserTypeCode(),
        default=UserType.LOCAL,
        nullable=False,
    )

    jellyfin_user_id: Mapped[str | None] = mapped_column(
        "jellyfinUserId", String(255), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        "createdAt",
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    @property
    def display_name(self) -> str | None:
        """Имя для писем: как его показывает основное приложение."""
        return self.username or self.plex_username or self.jellyfin_username or self.email

    @property
    def is_owner(self) -> bool:
        """Является ли аккаунт владельцем."""
        return self.id == OWNER_USER_ID

    @property
    def is_disabled(self) -> bool:
        """Отключён ли аккаунт (permissions == 0)."""
        return self.permissions == DISABLED_PERMISSIONS

    @override
    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, email={self.email}, "
            f"user_type={self.user_type}, permissions={self.permissions})>"
        )
