"""Планировщик задач (APScheduler).

Модуль содержит периодическую задачу проверки истечения доступа:
предупреждения пользователям и отключение просроченных аккаунтов.

Планировщик запускается вместе с приложением и работает как фоновая задача.
"""

from mediakeeper.scheduler.runner import create_scheduler, start_scheduler, stop_scheduler

__all__ = ["create_scheduler", "start_scheduler", "stop_scheduler"]
