"""Репозитории для работы с данными.

Репозиторий — это паттерн, который инкапсулирует логику доступа к данным.
Сервисы вызывают методы репозитория вместо прямых SQL-запросов.
"""

from mediakeeper.db.repositories.user_repo import UserRepository

__all__ = [
    "UserRepository",
]
