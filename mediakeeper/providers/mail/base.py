"""Базовый интерфейс отправки писем."""

from abc import ABC, abstractmethod
from typing import Any


class BaseMailSender(ABC):
    """Абстрактный отправитель писем.

    Сервис уведомлений не знает, как именно доставляется письмо:
    в тестах подставляется mock, в продакшене — SmtpMailSender.
    """

    @abstractmethod
    async def send(self, template: str, recipient: str, variables: dict[str, Any]) -> None:
        """Отправить письмо по шаблону.

        Args:
            template: Имя шаблона (например, "expiry_warning").
            recipient: Адрес получателя.
            variables: Переменные шаблона.

        Raises:
            NotificationError: Письмо не отправлено.
        """
