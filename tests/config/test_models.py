"""Тесты для моделей настроек из mediakeeper/config/models.py.

Проверяет:
- Свойство is_configured у настроек медиасервера и SMTP
- Свойство is_enabled у Telegram-логирования
"""

import pytest
from pydantic import SecretStr, ValidationError

from mediakeeper.config.models import (
    EmailSettings,
    MediaServerSettings,
    TelegramLoggingSettings,
)
from mediakeeper.config.settings import CONFIG_ERROR_HEADER, describe_validation_error


class TestMediaServerSettings:
    """Тесты для класса MediaServerSettings."""

    def test_not_configured_by_default(self) -> None:
        """Проверить, что без адреса и ключа доступ не настроен."""
        # Arrange
        settings = MediaServerSettings()

        # Act
        result = settings.is_configured

        # Assert
        assert result is False

    def test_key_without_url_is_not_configured(self) -> None:
        """Проверить, что одного ключа недостаточно."""
        settings = MediaServerSettings(admin_api_key=SecretStr("key"))

        assert settings.is_configured is False

    def test_url_and_key_configured(self) -> None:
        """Проверить, что адрес и ключ вместе включают доступ."""
        settings = MediaServerSettings(url="http://jf:8096", admin_api_key=SecretStr("key"))

        assert settings.is_configured is True
        assert "key" not in repr(settings)


class TestEmailSettings:
    """Тесты для класса EmailSettings."""

    def test_requires_host_and_sender(self) -> None:
        """Проверить, что SMTP настроен только при host и sender_address."""
        assert EmailSettings().is_configured is False
        assert EmailSettings(host="smtp.example.com").is_configured is False
        assert (
            EmailSettings(host="smtp.example.com", sender_address="a@example.com").is_configured
            is True
        )

    def test_defaults(self) -> None:
        """Проверить значения по умолчанию (порт 587, STARTTLS)."""
        settings = EmailSettings()

        assert settings.port == 587
        assert settings.use_starttls is True
        assert settings.use_ssl is False


class TestTelegramLoggingSettings:
    """Тесты для класса TelegramLoggingSettings."""

    def test_enabled_requires_chat_and_token(self) -> None:
        """Проверить, что для отправки нужны и chat_id, и токен."""
        assert TelegramLoggingSettings().is_enabled is False
        assert TelegramLoggingSettings(chat_id=1).is_enabled is False
        assert (
            TelegramLoggingSettings(chat_id=1, bot_token=SecretStr("t")).is_enabled is True
        )


class TestDescribeValidationError:
    """Тесты для сообщения об ошибке конфигурации."""

    def test_names_environment_variable(self) -> None:
        """Проверить, что в сообщении указана переменная окружения."""
        # Arrange
        with pytest.raises(ValidationError) as exc_info:
            MediaServerSettings(timeout="не число")  # type: ignore[arg-type]

        # Act
        message = describe_validation_error(exc_info.value)

        # Assert
        assert message.splitlines()[0] == CONFIG_ERROR_HEADER
        assert "TIMEOUT:" in message
