"""Модели базы данных (таблицы).

Все модели должны наследоваться от Base (из db.models_base).
"""

from mediakeeper.db.models.user import User

__all__ = [
    "User",
]
