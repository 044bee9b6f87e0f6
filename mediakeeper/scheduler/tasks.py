"""Задачи планировщика.

process_user_expiry — периодическая проверка истечения доступа:
1. Находим аккаунты, истекающие в ближайшие дни, и отправляем предупреждения
2. Находим просроченные аккаунты и отключаем их (локально и на медиасервере)

Важно: задача идемпотентна (безопасно запускать повторно) и никогда
не выбрасывает исключений — APScheduler только залогировал бы их.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from mediakeeper.utils.logging import get_logger

if TYPE_CHECKING:
    from mediakeeper.services.expiry_manager import UserExpiryManager
    from mediakeeper.services.run_report import RunReport

logger = get_logger(__name__)


async def process_user_expiry(manager: UserExpiryManager) -> RunReport | None:
    """Выполнить проверку истечения доступа.

    Args:
        manager: Оркестратор проверки.

    Returns:
        Отчёт о запуске или None, если запуск упал с неожиданной ошибкой.
    """
    try:
        report = await manager.run()
    except Exception:
        logger.exception("Критическая ошибка при проверке истечения доступа")
        return None

    for outcome in report.external_failures:
        logger.warning(
            "Аккаунт user_id=%s не отключён на медиасервере %s: %s",
            outcome.user_id,
            outcome.backend,
            outcome.error,
        )

    return report
