"""Админский клиент Jellyfin и Emby.

Отключение аккаунта делается через политику пользователя:
1. GET /Users/{id} — получаем текущую политику (Policy)
2. Ставим Policy.IsDisabled = true
3. POST /Users/{id}/Policy — сохраняем политику целиком

Политику нельзя отправить частично: сервер перезапишет все поля,
поэтому сначала читаем её полностью.

Emby использует тот же API под префиксом /emby.

Аутентификация: админский API-ключ в заголовке X-Emby-Token
(Jellyfin принимает этот заголовок для совместимости с Emby).
"""

from typing import Any

import httpx
from typing_extensions import override

from mediakeeper.config.constants import UserType
from mediakeeper.config.models import MediaServerSettings
from mediakeeper.core.exceptions import (
    IdentityAccountNotFoundError,
    IdentityBackendAuthError,
    IdentityBackendError,
)
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.utils.logging import get_logger

logger = get_logger(__name__)

# Таймаут для HTTP-запросов к медиасерверу (секунды)
HTTP_TIMEOUT = 30.0

# Заголовок с API-ключом
AUTH_HEADER = "X-Emby-Token"

HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404


class JellyfinIdentityBackend(BaseIdentityBackend):
    """Админский клиент Jellyfin.

    HTTP-клиент создаётся лениво при первом запросе и переиспользуется.
    Для тестов клиент можно передать в конструктор
    (например, с httpx.MockTransport).

    Пример использования:
        backend = JellyfinIdentityBackend(
            base_url="http://jellyfin:8096",
            api_key="admin-key",
        )
        await backend.disable_account("5f3c...")
        await backend.close()
    """

    BACKEND_NAME = "jellyfin"
    PATH_PREFIX = ""
    USER_TYPES = frozenset({UserType.JELLYFIN})

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = HTTP_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Инициализировать клиент.

        Args:
            base_url: Адрес медиасервера (http://host:8096).
            api_key: Админский API-ключ.
            timeout: Таймаут HTTP-запросов в секундах.
            client: Готовый HTTP-клиент (для тестов).
        """
        self._base_url = base_url.rstrip("/") + self.PATH_PREFIX
        self._api_key = api_key
        self._timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Получить или создать HTTP-клиент.

        Returns:
            Настроенный httpx.AsyncClient.
        """
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers={
                    AUTH_HEADER: self._api_key,
                    "Accept": "application/json",
                },
            )
        return self._client

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент.

        Вызовите при завершении работы приложения.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    @override
    def backend_name(self) -> str:
        """Название бэкенда."""
        return self.BACKEND_NAME

    @property
    @override
    def user_types(self) -> frozenset[UserType]:
        """Типы аккаунтов этого бэкенда."""
        return self.USER_TYPES

    @override
    async def disable_account(self, external_id: str) -> None:
        """Отключить аккаунт через политику пользователя.

        Если политика уже содержит IsDisabled = true, повторный POST
        не отправляется.

        Args:
            external_id: ID пользователя на медиасервере.

        Raises:
            IdentityBackendAuthError: Ключ недействителен (401/403).
            IdentityAccountNotFoundError: Пользователь не найден (404).
            IdentityBackendError: Любая другая ошибка HTTP или сети.
        """
        user_data = await self._request("GET", f"/Users/{external_id}", external_id)
        policy: dict[str, Any] = dict(user_data.get("Policy") or {})

        if policy.get("IsDisabled") is True:
            logger.info(
                "%s: аккаунт %s уже отключён",
                self.backend_name,
                external_id,
            )
            return

        policy["IsDisabled"] = True
        await self._request(
            "POST",
            f"/Users/{external_id}/Policy",
            external_id,
            json=policy,
        )

        logger.info(
            "%s: аккаунт %s отключён",
            self.backend_name,
            external_id,
        )

    async def _request(
        self,
        method: str,
        path: str,
        external_id: str,
        *,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Выполнить запрос к API и преобразовать ошибки.

        Args:
            method: HTTP-метод.
            path: Путь относительно базового адреса.
            external_id: ID пользователя (для сообщения об ошибке).
            json: Тело запроса.

        Returns:
            Распарсенный JSON-ответ (пустой dict, если тела нет).

        Raises:
            IdentityBackendError: При любой ошибке запроса.
        """
        client = await self._get_client()

        try:
            response = await client.request(method, path, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise self._map_status_error(e, external_id) from e
        except httpx.TimeoutException as e:
            logger.warning("%s: таймаут запроса %s %s", self.backend_name, method, path)
            raise IdentityBackendError(
                "Таймаут запроса к медиасерверу",
                backend=self.backend_name,
                external_id=external_id,
                original_error=e,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityBackendError(
                f"Ошибка HTTP: {e}",
                backend=self.backend_name,
                external_id=external_id,
                original_error=e,
            ) from e

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            # Например, HTML-страница обратного прокси со статусом 200
            raise IdentityBackendError(
                "Медиасервер вернул не JSON",
                backend=self.backend_name,
                external_id=external_id,
                original_error=e,
            ) from e
        return data if isinstance(data, dict) else {}

    def _map_status_error(
        self, error: httpx.HTTPStatusError, external_id: str
    ) -> IdentityBackendError:
        """Преобразовать HTTP-статус в исключение бэкенда.

        Args:
            error: Ошибка httpx с ответом сервера.
            external_id: ID пользователя на медиасервере.

        Returns:
            Исключение подходящего типа.
        """
        status_code = error.response.status_code

        if status_code in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN):
            return IdentityBackendAuthError(
                "Админский API-ключ отклонён медиасервером",
                backend=self.backend_name,
                external_id=external_id,
                status_code=status_code,
                original_error=error,
            )
        if status_code == HTTP_NOT_FOUND:
            return IdentityAccountNotFoundError(
                f"Пользователь {external_id} не найден",
                backend=self.backend_name,
                external_id=external_id,
                status_code=status_code,
                original_error=error,
            )
        return IdentityBackendError(
            f"Медиасервер вернул HTTP {status_code}",
            backend=self.backend_name,
            external_id=external_id,
            status_code=status_code,
            original_error=error,
        )


class EmbyIdentityBackend(JellyfinIdentityBackend):
    """Админский клиент Emby (тот же API под префиксом /emby)."""

    BACKEND_NAME = "emby"
    PATH_PREFIX = "/emby"
    USER_TYPES = frozenset({UserType.EMBY})


def create_jellyfin_backend(
    settings: MediaServerSettings,
) -> JellyfinIdentityBackend | None:
    """Фабричная функция для клиента Jellyfin.

    Args:
        settings: Настройки медиасервера (JELLYFIN__*).

    Returns:
        Клиент или None, если адрес или ключ не заданы.
    """
    if not settings.is_configured or settings.admin_api_key is None:
        return None
    return JellyfinIdentityBackend(
        base_url=settings.url or "",
        api_key=settings.admin_api_key.get_secret_value(),
        timeout=settings.timeout,
    )


def create_emby_backend(settings: MediaServerSettings) -> EmbyIdentityBackend | None:
    """Фабричная функция для клиента Emby.

    Args:
        settings: Настройки медиасервера (EMBY__*).

    Returns:
        Клиент или None, если адрес или ключ не заданы.
    """
    if not settings.is_configured or settings.admin_api_key is None:
        return None
    return EmbyIdentityBackend(
        base_url=settings.url or "",
        api_key=settings.admin_api_key.get_secret_value(),
        timeout=settings.timeout,
    )
