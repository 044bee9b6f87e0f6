"""Тесты для сборки бэкендов медиасерверов по настройкам."""

from unittest.mock import AsyncMock

import pytest
from pydantic import SecretStr

from mediakeeper.config.constants import UserType
from mediakeeper.config.models import MediaServerSettings
from mediakeeper.config.settings import Settings
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.providers.identity.jellyfin import (
    EmbyIdentityBackend,
    JellyfinIdentityBackend,
)
from mediakeeper.providers.identity.registry import (
    close_identity_backends,
    create_identity_backends,
)


def _settings(**kwargs: MediaServerSettings) -> Settings:
    return Settings.model_construct(**kwargs)


def test_no_backends_when_not_configured() -> None:
    """Тест: без ключей словарь пуст."""
    settings = _settings(jellyfin=MediaServerSettings(), emby=MediaServerSettings())

    assert create_identity_backends(settings) == {}


def test_only_configured_backends_created() -> None:
    """Тест: создаётся только бэкенд с адресом и ключом."""
    settings = _settings(
        jellyfin=MediaServerSettings(url="http://jf:8096", admin_api_key=SecretStr("k")),
        emby=MediaServerSettings(url="http://emby:8096"),
    )

    backends = create_identity_backends(settings)

    assert set(backends) == {UserType.JELLYFIN}
    assert isinstance(backends[UserType.JELLYFIN], JellyfinIdentityBackend)


def test_both_backends_created() -> None:
    """Тест: Jellyfin и Emby настраиваются независимо."""
    settings = _settings(
        jellyfin=MediaServerSettings(url="http://jf:8096", admin_api_key=SecretStr("k1")),
        emby=MediaServerSettings(url="http://emby:8096", admin_api_key=SecretStr("k2")),
    )

    backends = create_identity_backends(settings)

    assert isinstance(backends[UserType.EMBY], EmbyIdentityBackend)
    assert isinstance(backends[UserType.JELLYFIN], JellyfinIdentityBackend)


@pytest.mark.asyncio
async def test_close_identity_backends_closes_each_once() -> None:
    """Тест: бэкенд, обслуживающий несколько типов, закрывается один раз."""
    backend = AsyncMock(spec=BaseIdentityBackend)

    await close_identity_backends({UserType.JELLYFIN: backend, UserType.EMBY: backend})

    backend.close.assert_awaited_once()
