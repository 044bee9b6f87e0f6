"""Константы приложения."""

from enum import StrEnum
from pathlib import Path

# ==============================================================================
# ПУТИ К ФАЙЛАМ И ДИРЕКТОРИЯМ
# ==============================================================================

# Корень проекта (где лежит pyproject.toml)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Папка для данных (база SQLite, логи)
#
# В контейнере: /data — примонтированный том
# Локально: ./data — папка в корне проекта
_CONTAINER_DATA = Path("/data")
DATA_DIR = _CONTAINER_DATA if _CONTAINER_DATA.exists() else PROJECT_ROOT / "data"

# Создаём директорию если не существует (важно для первого запуска)
DATA_DIR.mkdir(parents=True, exist_ok=True)


# ==============================================================================
# АККАУНТЫ
# ==============================================================================

# Владелец — первый созданный аккаунт. Его никогда не предупреждаем
# и никогда не отключаем.
OWNER_USER_ID = 1

# permissions == 0 — единственный признак отключённого аккаунта
DISABLED_PERMISSIONS = 0

# Права по умолчанию для новых аккаунтов (право на запросы)
DEFAULT_PERMISSIONS = 2


class UserType(StrEnum):
    """Источник учётной записи (identity backend).

    Значения:
        LOCAL: Локальный аккаунт, существует только в нашей БД.
        PLEX: Аккаунт Plex. Доступ отзывается только локально —
            администрирование Plex-аккаунтов не поддерживается.
        JELLYFIN: Аккаунт из Jellyfin. При отключении блокируется
            и на сервере Jellyfin (если настроен админский ключ).
        EMBY: Аккаунт из Emby. Аналогично Jellyfin.
    """

    LOCAL = "local"
    PLEX = "plex"
    JELLYFIN = "jellyfin"
    EMBY = "emby"


# Как основное приложение хранит userType в таблице "user" (целое число)
USER_TYPE_CODES: dict[UserType, int] = {
    UserType.PLEX: 1,
    UserType.LOCAL: 2,
    UserType.JELLYFIN: 3,
    UserType.EMBY: 4,
}
