"""Сборка бэкендов медиасерверов по настройкам.

Сервис деактивации получает словарь {UserType: бэкенд}. Бэкенд попадает
в словарь, только если для него заданы адрес и админский ключ.
Отсутствие ключа — штатный режим: аккаунты отключаются только локально.
"""

from typing import TYPE_CHECKING

from mediakeeper.config.constants import UserType
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.providers.identity.jellyfin import (
    create_emby_backend,
    create_jellyfin_backend,
)
from mediakeeper.utils.logging import get_logger

if TYPE_CHECKING:
    from mediakeeper.config.settings import Settings

logger = get_logger(__name__)


def create_identity_backends(settings: "Settings") -> dict[UserType, BaseIdentityBackend]:
    """Создать клиенты всех настроенных медиасерверов.

    Args:
        settings: Настройки приложения.

    Returns:
        Словарь: тип аккаунта → бэкенд. Пустой, если ничего не настроено.
    """
    backends: dict[UserType, BaseIdentityBackend] = {}

    candidates = (
        create_jellyfin_backend(settings.jellyfin),
        create_emby_backend(settings.emby),
    )
    for backend in candidates:
        if backend is None:
            continue
        for user_type in backend.user_types:
            backends[user_type] = backend
        logger.info("Медиасервер %s подключён", backend.backend_name)

    if not backends:
        logger.info(
            "Админский доступ к медиасерверам не настроен, "
            "аккаунты будут отключаться только локально"
        )

    return backends


async def close_identity_backends(
    backends: dict[UserType, BaseIdentityBackend],
) -> None:
    """Закрыть HTTP-клиенты всех бэкендов.

    Один бэкенд может обслуживать несколько типов аккаунтов,
    поэтому каждый закрывается один раз.

    Args:
        backends: Словарь бэкендов из create_identity_backends().
    """
    unique = {id(backend): backend for backend in backends.values()}
    for backend in unique.values():
        await backend.close()
