"""Отправка писем через SMTP.

smtplib — синхронная библиотека, поэтому отправка выполняется в отдельном
потоке (asyncio.to_thread) и не блокирует event loop планировщика.

Режимы подключения:
- use_ssl=True — неявный TLS (SMTP_SSL, обычно порт 465)
- use_starttls=True — STARTTLS после подключения (обычно порт 587)
- оба False — без шифрования (только для локальных релеев)
"""

import asyncio
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import TYPE_CHECKING, Any

from typing_extensions import override

from mediakeeper.config.models import EmailSettings
from mediakeeper.core.exceptions import EmailDeliveryError
from mediakeeper.providers.mail.base import BaseMailSender
from mediakeeper.providers.mail.templates import render_template
from mediakeeper.utils.logging import get_logger

if TYPE_CHECKING:
    from mediakeeper.config.settings import Settings
    from mediakeeper.config.yaml_config import YamlConfig

logger = get_logger(__name__)


class SmtpMailSender(BaseMailSender):
    """Отправитель писем через SMTP-сервер.

    Пример использования:
        sender = SmtpMailSender(settings.email, application_title="Jellyseerr")
        await sender.send(
            "expiry_warning",
            "user@example.com",
            {"recipientName": "Иван", "daysRemaining": 2, ...},
        )
    """

    def __init__(self, settings: EmailSettings, application_title: str) -> None:
        """Инициализировать отправителя.

        Args:
            settings: Настройки SMTP.
            application_title: Название приложения (имя отправителя по умолчанию).
        """
        self._settings = settings
        self._sender_name = settings.sender_name or application_title

    @override
    async def send(self, template: str, recipient: str, variables: dict[str, Any]) -> None:
        """Отправить письмо по шаблону.

        Args:
            template: Имя шаблона.
            recipient: Адрес получателя.
            variables: Переменные шаблона.

        Raises:
            EmailTemplateNotFoundError: Шаблон не существует.
            EmailDeliveryError: SMTP-сервер недоступен или отклонил письмо.
        """
        message = self._build_message(template, recipient, variables)

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            raise EmailDeliveryError(
                f"Не удалось отправить письмо: {e}",
                recipient=recipient,
                original_error=e,
            ) from e

        logger.debug("Письмо %s отправлено на %s", template, recipient)

    def _build_message(
        self, template: str, recipient: str, variables: dict[str, Any]
    ) -> EmailMessage:
        """Собрать письмо: текст + HTML-альтернатива."""
        rendered = render_template(template, variables)

        message = EmailMessage()
        message["Subject"] = rendered.subject
        message["From"] = formataddr((self._sender_name, self._settings.sender_address or ""))
        message["To"] = recipient
        message.set_content(rendered.text)
        message.add_alternative(rendered.html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        """Отправить письмо (синхронно, вызывается в отдельном потоке)."""
        settings = self._settings
        host = settings.host or ""

        smtp: smtplib.SMTP
        if settings.use_ssl:
            smtp = smtplib.SMTP_SSL(host, settings.port, timeout=settings.timeout)
        else:
            smtp = smtplib.SMTP(host, settings.port, timeout=settings.timeout)

        with smtp:
            if settings.use_starttls and not settings.use_ssl:
                smtp.starttls()
            if settings.username and settings.password is not None:
                smtp.login(settings.username, settings.password.get_secret_value())
            smtp.send_message(message)


def create_mail_sender(
    settings: "Settings", yaml_config: "YamlConfig"
) -> SmtpMailSender | None:
    """Фабричная функция для отправителя писем.

    Args:
        settings: Настройки приложения (EMAIL__*).
        yaml_config: Конфигурация из config.yaml (название приложения).

    Returns:
        Отправитель или None, если SMTP не настроен.
    """
    if not settings.email.is_configured:
        logger.info("SMTP не настроен, письма отправляться не будут")
        return None
    return SmtpMailSender(settings.email, application_title=yaml_config.application.title)
