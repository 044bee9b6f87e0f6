"""Отправка писем.

- BaseMailSender — абстрактный интерфейс
- SmtpMailSender — отправка через SMTP
- templates — встроенные шаблоны писем
"""

from mediakeeper.providers.mail.base import BaseMailSender
from mediakeeper.providers.mail.smtp import SmtpMailSender, create_mail_sender
from mediakeeper.providers.mail.templates import (
    EXPIRY_WARNING_TEMPLATE,
    render_template,
)

__all__ = [
    "EXPIRY_WARNING_TEMPLATE",
    "BaseMailSender",
    "SmtpMailSender",
    "create_mail_sender",
    "render_template",
]
