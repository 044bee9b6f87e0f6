"""Загрузчик YAML-конфигурации.

Этот модуль загружает и валидирует config.yaml — файл с настройками,
которые можно менять без изменения кода.

Содержимое config.yaml:
- Название и адрес приложения (для писем)
- Глобальное включение email-уведомлений
- Политика истечения доступа (окно предупреждения, интервал проверки)
"""

from datetime import timedelta
from pathlib import Path
from zoneinfo import ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, Field, field_validator

from mediakeeper.utils.timezone import get_timezone


class ApplicationConfig(BaseModel):
    """Оформление приложения — подставляется в письма.

    Attributes:
        title: Название приложения (в теме и тексте письма).
        url: Публичный адрес приложения. None — ссылка в письмо не добавляется.
    """

    title: str = Field(default="Jellyseerr", min_length=1)
    url: str | None = None

    @field_validator("url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Убрать завершающий слэш: https://example.com/ → https://example.com."""
        if v is None:
            return None
        return v.rstrip("/") or None


class EmailNotificationsConfig(BaseModel):
    """Настройки email-уведомлений.

    Attributes:
        enabled: Глобальный флаг. Если False — предупреждения об истечении
            не отправляются (это не ошибка, а штатный пропуск).
    """

    enabled: bool = False


class NotificationsConfig(BaseModel):
    """Настройки каналов уведомлений."""

    email: EmailNotificationsConfig = EmailNotificationsConfig()


class ExpiryConfig(BaseModel):
    """Политика истечения доступа.

    Attributes:
        enabled: Включена ли периодическая проверка.
            Если False — задача не регистрируется в планировщике.
        warn_window_days: За сколько дней до истечения предупреждать.
            Аккаунт попадает в рассылку предупреждений на каждом запуске,
            пока его дата истечения в окне [сейчас, сейчас + окно].
        check_interval_hours: Интервал между запусками проверки.
            При 24 часах и окне 3 дня пользователь получит не более
            трёх-четырёх напоминаний.
        run_on_startup: Запустить проверку сразу при старте приложения.
        date_format: Формат даты истечения в письмах (strftime).
        timezone: Часовой пояс для отображения даты истечения в письмах.
    """

    enabled: bool = True
    warn_window_days: float = Field(default=3, gt=0, le=60)
    check_interval_hours: float = Field(default=24, gt=0, le=24 * 7)
    run_on_startup: bool = True
    date_format: str = "%d.%m.%Y"
    timezone: str = "Europe/Moscow"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Проверить, что часовой пояс существует в базе IANA."""
        try:
            get_timezone(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Неизвестный часовой пояс: {v}") from e
        return v

    @property
    def warn_window(self) -> timedelta:
        """Окно предупреждения в виде timedelta."""
        return timedelta(days=self.warn_window_days)


class YamlConfig(BaseModel):
    """Главная YAML-конфигурация.

    Загружается из config.yaml при старте приложения.
    """

    application: ApplicationConfig = ApplicationConfig()
    notifications: NotificationsConfig = NotificationsConfig()
    expiry: ExpiryConfig = ExpiryConfig()

    @property
    def email_notifications_enabled(self) -> bool:
        """Включены ли email-уведомления глобально."""
        return self.notifications.email.enabled


def load_yaml_config(path: Path | str = "config.yaml") -> YamlConfig:
    """Загрузить и валидировать YAML-конфигурацию.

    Args:
        path: Путь к файлу конфигурации.

    Returns:
        Валидированный объект конфигурации. Если файла нет —
        конфигурация по умолчанию.

    Raises:
        yaml.YAMLError: Некорректный YAML.
        pydantic.ValidationError: Некорректная конфигурация.
    """
    config_path = Path(path)

    if not config_path.exists():
        return YamlConfig()

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return YamlConfig.model_validate(data)


yaml_config = load_yaml_config()
