"""Админские клиенты медиасерверов.

Архитектура:
- BaseIdentityBackend — абстрактный интерфейс (disable_account)
- JellyfinIdentityBackend, EmbyIdentityBackend — реализации через HTTP API
- create_identity_backends() — сборка по настройкам окружения

Пример использования:
    from mediakeeper.providers.identity import create_identity_backends

    backends = create_identity_backends(settings)
    backend = backends.get(UserType.JELLYFIN)
    if backend is not None:
        await backend.disable_account(user.jellyfin_user_id)
"""

from mediakeeper.core.exceptions import IdentityBackendError
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.providers.identity.jellyfin import (
    EmbyIdentityBackend,
    JellyfinIdentityBackend,
    create_emby_backend,
    create_jellyfin_backend,
)
from mediakeeper.providers.identity.registry import (
    close_identity_backends,
    create_identity_backends,
)

__all__ = [
    "BaseIdentityBackend",
    "EmbyIdentityBackend",
    "IdentityBackendError",
    "JellyfinIdentityBackend",
    "close_identity_backends",
    "create_emby_backend",
    "create_identity_backends",
    "create_jellyfin_backend",
]
