"""Mediakeeper — контроль срока доступа к медиатеке.

Периодически предупреждает пользователей об истечении доступа
и отключает просроченные аккаунты (локально и на медиасервере).
"""

__version__ = "1.0.0"
