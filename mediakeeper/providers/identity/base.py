"""Базовый адаптер для медиасерверов (identity backends).

Аккаунт пользователя может жить не только в локальной БД, но и на
медиасервере (Jellyfin, Emby). Когда доступ истекает, аккаунт нужно
отключить и там, иначе пользователь продолжит смотреть контент.

Этот модуль определяет абстрактный интерфейс, который должны реализовать
все бэкенды. Сервис деактивации выбирает бэкенд по user_type аккаунта;
для локальных аккаунтов бэкенд не вызывается вовсе.

Паттерн: Adapter (GoF) + Strategy
"""

from abc import ABC, abstractmethod

from mediakeeper.config.constants import UserType


class BaseIdentityBackend(ABC):
    """Абстрактный админский клиент медиасервера.

    Все бэкенды должны наследоваться от этого класса и реализовать
    абстрактные методы.

    Пример реализации:
        class MyBackend(BaseIdentityBackend):
            @property
            def backend_name(self) -> str:
                return "my_server"

            @property
            def user_types(self) -> frozenset[UserType]:
                return frozenset({UserType.JELLYFIN})

            async def disable_account(self, external_id: str) -> None:
                # Вызов API медиасервера
                ...
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Название бэкенда (jellyfin, emby).

        Используется в логах и в отчёте о запуске.
        """

    @property
    @abstractmethod
    def user_types(self) -> frozenset[UserType]:
        """Типы аккаунтов, которые обслуживает бэкенд."""

    @abstractmethod
    async def disable_account(self, external_id: str) -> None:
        """Отключить аккаунт на медиасервере.

        Повторный вызов для уже отключённого аккаунта — не ошибка.

        Args:
            external_id: ID аккаунта на стороне медиасервера.

        Raises:
            IdentityBackendError: При ошибке API медиасервера.
        """

    async def close(self) -> None:  # noqa: B027
        """Освободить ресурсы (HTTP-клиент).

        По умолчанию ничего не делает. Переопределите, если бэкенд
        держит соединения.
        """
