"""Настройки из переменных окружения и .env.

Модуль читает окружение при импорте. Тестам нужны только классы
настроек — их берут из mediakeeper.config.models, не трогая .env:

    from mediakeeper.config.models import EmailSettings  # без побочных эффектов
"""

import sys

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from mediakeeper.config.constants import PROJECT_ROOT
from mediakeeper.config.models import (
    DatabaseSettings,
    EmailSettings,
    LoggingSettings,
    MediaServerSettings,
    TelegramLoggingSettings,
)

__all__ = [
    "DatabaseSettings",
    "EmailSettings",
    "LoggingSettings",
    "MediaServerSettings",
    "Settings",
    "TelegramLoggingSettings",
    "load_settings",
    "settings",
]

_ENV_FILE = PROJECT_ROOT / ".env"

CONFIG_ERROR_HEADER = "mediakeeper не запущен: некорректные переменные окружения (.env)"


class Settings(BaseSettings):
    """Секреты и адреса внешних систем.

    Переменные окружения важнее значений из .env. Вложенные поля
    задаются через двойное подчёркивание:
        JELLYFIN__ADMIN_API_KEY=...
        EMAIL__HOST=smtp.example.com

    Без JELLYFIN__ADMIN_API_KEY / EMBY__ADMIN_API_KEY аккаунты
    медиасерверов отключаются только локально; без EMAIL__HOST письма
    не отправляются.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    email: EmailSettings = EmailSettings()
    jellyfin: MediaServerSettings = MediaServerSettings()
    emby: MediaServerSettings = MediaServerSettings()


def describe_validation_error(error: ValidationError) -> str:
    """Описать ошибки валидации по-русски, с именами переменных окружения.

    Args:
        error: Ошибка pydantic.

    Returns:
        Многострочный текст: заголовок и по строке на каждую переменную,
        например "EMAIL__PORT: Input should be a valid integer".
    """
    lines = [CONFIG_ERROR_HEADER]
    for err in error.errors():
        # ("email", "port") → EMAIL__PORT
        variable = "__".join(str(part) for part in err["loc"]).upper()
        lines.append(f"  {variable}: {err['msg']} ({err['type']})")
    return "\n".join(lines)


def load_settings() -> Settings:
    """Прочитать настройки; при ошибке напечатать её и завершить процесс."""
    try:
        return Settings()
    except ValidationError as e:
        print(describe_validation_error(e), file=sys.stderr)
        sys.exit(1)


settings = load_settings()
