"""Entry point для запуска через python -m mediakeeper.

Запускает планировщик проверки истечения доступа и работает
до SIGINT/SIGTERM.

Использование:
    python -m mediakeeper                      # Фоновый режим (по расписанию)
    python -m mediakeeper --once               # Одна проверка и выход
    python -m mediakeeper --config my.yaml     # Другой файл конфигурации
    python -m mediakeeper --help               # Показать справку
"""

import argparse
import asyncio
import contextlib
import signal
import sys

from mediakeeper.app.lifecycle import ApplicationLifecycle
from mediakeeper.config.settings import settings
from mediakeeper.config.yaml_config import load_yaml_config
from mediakeeper.core.exceptions import DatabaseError
from mediakeeper.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


async def run_forever(lifecycle: ApplicationLifecycle) -> int:
    """Запустить приложение и ждать сигнала остановки.

    Returns:
        Код выхода: 0 — штатная остановка, 1 — БД недоступна при запуске.
    """
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # На Windows add_signal_handler не поддерживается
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await lifecycle.startup()
        await stop_event.wait()
    except DatabaseError:
        logger.exception("Запуск невозможен: проверьте DATABASE__* в .env")
        return 1
    finally:
        await lifecycle.shutdown()
    return 0


async def run_once(lifecycle: ApplicationLifecycle) -> int:
    """Выполнить одну проверку.

    Returns:
        Код выхода: 0 — успех, 1 — запуск завершился с ошибками.
    """
    try:
        await lifecycle.check_database()
        report = await lifecycle.build_manager().run()
    except DatabaseError:
        logger.exception("Проверка невозможна: проверьте DATABASE__* в .env")
        return 1
    finally:
        await lifecycle.shutdown()

    print(report.summary())
    return 0 if report.is_success else 1


def main() -> None:
    """Запустить приложение."""
    parser = argparse.ArgumentParser(
        description="Mediakeeper — предупреждения и отключение аккаунтов с истёкшим доступом",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры:
    python -m mediakeeper               # Работа по расписанию
    python -m mediakeeper --once        # Одна проверка (для cron)
        """,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Выполнить одну проверку и завершиться",
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Путь к config.yaml (по умолчанию: config.yaml)",
    )
    args = parser.parse_args()

    setup_logging(
        level=settings.logging.level,
        timezone_name=settings.logging.timezone,
        telegram_settings=settings.logging.telegram,
    )

    yaml_config = load_yaml_config(args.config)
    lifecycle = ApplicationLifecycle(settings, yaml_config)

    if args.once:
        sys.exit(asyncio.run(run_once(lifecycle)))

    sys.exit(asyncio.run(run_forever(lifecycle)))


if __name__ == "__main__":
    main()
