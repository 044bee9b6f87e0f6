"""Модуль приложения.

Содержит управление жизненным циклом (startup/shutdown).
"""

from mediakeeper.app.lifecycle import ApplicationLifecycle

__all__ = [
    "ApplicationLifecycle",
]
