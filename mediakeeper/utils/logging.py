"""Логирование mediakeeper.

Каналы вывода:
1. Консоль (stdout) — цветные уровни, если терминал их поддерживает
2. Файл data/logs/mediakeeper.log с ротацией
3. Telegram — алерты администратору об ошибках проверки (опционально)

Формат строки:
    25-06-15 12:00:00 | WARNING | services.deactivation_service | Аккаунт 4: ...
"""

import logging
import os
import queue
import sys
import threading
import traceback
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from typing_extensions import override

from mediakeeper.config.constants import DATA_DIR
from mediakeeper.utils.timezone import get_timezone

if TYPE_CHECKING:
    from mediakeeper.config.models import TelegramLoggingSettings

LOGS_DIR = DATA_DIR / "logs"
LOG_FILE_NAME = "mediakeeper.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%y-%m-%d %H:%M:%S"

LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 3

PACKAGE_PREFIX = "mediakeeper."

# Лимит Telegram — 4096 символов, оставляем место под разметку
TELEGRAM_MESSAGE_MAX_LENGTH = 3500
TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/{method}"

# Библиотеки, которые слишком подробно пишут на INFO
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "aiosqlite")

_HTML_ESCAPE = str.maketrans({"&": "&amp;", "<": "&lt;", ">": "&gt;"})


class AnsiColors:
    """ANSI-коды цветов для консоли."""

    RESET = "\033[0m"

    DEBUG = "\033[36m"
    INFO = "\033[32m"
    WARNING = "\033[33m"
    ERROR = "\033[31m"
    CRITICAL = "\033[35m"


LEVEL_STYLES: dict[str, tuple[str, str]] = {
    # уровень: (цвет в консоли, значок в Telegram)
    "DEBUG": (AnsiColors.DEBUG, "🔍"),
    "INFO": (AnsiColors.INFO, "ℹ️"),
    "WARNING": (AnsiColors.WARNING, "⚠️"),
    "ERROR": (AnsiColors.ERROR, "🚨"),
    "CRITICAL": (AnsiColors.CRITICAL, "💀"),
}


class TimezoneFormatter(logging.Formatter):
    """Форматтер, который показывает время в заданном часовом поясе.

    Сервер обычно работает в UTC, а администратору удобнее читать логи
    в своём поясе (тот же, что и для дат в письмах).
    """

    def __init__(
        self,
        fmt: str | None = LOG_FORMAT,
        datefmt: str | None = LOG_DATE_FORMAT,
        timezone_name: str = "UTC",
    ) -> None:
        super().__init__(fmt, datefmt)
        self.timezone = get_timezone(timezone_name)

    @override
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        moment = datetime.fromtimestamp(record.created, tz=self.timezone)
        return moment.strftime(datefmt or self.default_time_format)


class ColoredFormatter(TimezoneFormatter):
    """Консольный форматтер: короткое имя модуля и цветной уровень.

    Префикс "mediakeeper." убирается только на время форматирования,
    остальные handler-ы видят исходное имя логгера.
    """

    def __init__(
        self,
        fmt: str | None = LOG_FORMAT,
        datefmt: str | None = LOG_DATE_FORMAT,
        timezone_name: str = "UTC",
        use_colors: bool = True,
    ) -> None:
        super().__init__(fmt, datefmt, timezone_name)
        self.use_colors = use_colors

    @override
    def format(self, record: logging.LogRecord) -> str:
        logger_name = record.name
        record.name = logger_name.removeprefix(PACKAGE_PREFIX)
        try:
            line = super().format(record)
        finally:
            record.name = logger_name

        color = LEVEL_STYLES.get(record.levelname, ("", ""))[0]
        if not self.use_colors or not color:
            return line

        level = record.levelname
        return line.replace(f"| {level} |", f"| {color}{level}{AnsiColors.RESET} |", 1)


class TelegramHandler(logging.Handler):
    """Handler, пересылающий ошибки проверки аккаунтов в Telegram.

    emit() только кладёт запись в очередь: отправка идёт в отдельном
    потоке, чтобы сетевые задержки не тормозили event loop планировщика.
    Записи длиннее TELEGRAM_MESSAGE_MAX_LENGTH уходят файлом .txt.
    """

    def __init__(self, bot_token: str, chat_id: int, level: int = logging.ERROR) -> None:
        """Создать handler и запустить поток отправки.

        Args:
            bot_token: Токен Telegram-бота.
            chat_id: ID чата администратора или группы.
            level: Минимальный уровень пересылаемых записей.
        """
        super().__init__(level)
        self.bot_token = bot_token
        self.chat_id = chat_id

        self._http_client = httpx.Client(
            timeout=httpx.Timeout(connect=5.0, read=30.0, write=30.0, pool=5.0)
        )
        # None — сигнал остановки потока
        self._queue: queue.Queue[logging.LogRecord | None] = queue.Queue()
        self._worker_thread = threading.Thread(
            target=self._drain_queue, daemon=True, name="telegram-alerts"
        )
        self._worker_thread.start()

    @override
    def emit(self, record: logging.LogRecord) -> None:
        self._queue.put(record)

    def _drain_queue(self) -> None:
        while (record := self._queue.get()) is not None:
            try:
                self._send_to_telegram(record)
            except Exception as e:
                # Поток должен пережить любую ошибку отправки.
                # Не через logging: ошибка снова попала бы в этот handler
                sys.stderr.write(f"[TelegramHandler] Не удалось отправить алерт: {e}\n")

    def _send_to_telegram(self, record: logging.LogRecord) -> None:
        message = self._format_message(record)
        if len(message) <= TELEGRAM_MESSAGE_MAX_LENGTH:
            self._call("sendMessage", data={"text": message, "parse_mode": "HTML"})
            return

        icon = self._icon(record)
        self._call(
            "sendMessage",
            data={
                "text": f"{icon} <b>{record.levelname}</b>\n\nТекст ошибки во вложении.",
                "parse_mode": "HTML",
            },
        )
        created = datetime.fromtimestamp(record.created, tz=UTC)
        filename = f"mediakeeper_{record.levelname.lower()}_{created:%Y%m%d_%H%M%S}.txt"
        self._call(
            "sendDocument",
            files={"document": (filename, self._plain_text(record).encode("utf-8"))},
        )

    def _format_message(self, record: logging.LogRecord) -> str:
        """Собрать HTML-сообщение для Telegram.

        Args:
            record: Запись лога.

        Returns:
            Заголовок с уровнем, временем (UTC) и модулем, затем текст
            записи и traceback, если он есть.
        """
        created = datetime.fromtimestamp(record.created, tz=UTC)
        lines = [
            f"{self._icon(record)} <b>{record.levelname}</b>",
            f"🕐 {created:%Y-%m-%d %H:%M:%S} UTC",
            f"📍 {record.name}",
            "",
            self._escape_html(record.getMessage()),
        ]
        if record.exc_info:
            tb = "".join(traceback.format_exception(*record.exc_info))
            lines += ["", "<b>Traceback:</b>", f"<pre>{self._escape_html(tb)}</pre>"]
        return "\n".join(lines)

    def _plain_text(self, record: logging.LogRecord) -> str:
        text = f"{record.levelname} {record.name}\n\n{record.getMessage()}"
        if record.exc_info:
            text += "\n\n" + "".join(traceback.format_exception(*record.exc_info))
        return text

    def _icon(self, record: logging.LogRecord) -> str:
        return LEVEL_STYLES.get(record.levelname, ("", "📝"))[1]

    def _escape_html(self, text: str) -> str:
        return text.translate(_HTML_ESCAPE)

    def _call(
        self,
        method: str,
        data: dict[str, str] | None = None,
        files: dict[str, tuple[str, bytes]] | None = None,
    ) -> None:
        url = TELEGRAM_API_URL.format(token=self.bot_token, method=method)
        self._http_client.post(url, data={"chat_id": self.chat_id, **(data or {})}, files=files)

    @override
    def close(self) -> None:
        self._queue.put(None)
        self._worker_thread.join(timeout=5.0)
        self._http_client.close()
        super().close()


def _should_use_colors() -> bool:
    """Цвета только для tty и без переменной NO_COLOR (https://no-color.org/)."""
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def _build_file_handler(logs_dir: Path, timezone_name: str) -> RotatingFileHandler:
    logs_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        logs_dir / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setFormatter(TimezoneFormatter(timezone_name=timezone_name))
    return handler


def _build_telegram_handler(settings: "TelegramLoggingSettings") -> TelegramHandler:
    level = logging.getLevelName(settings.level.upper())
    return TelegramHandler(
        bot_token=settings.bot_token.get_secret_value(),  # type: ignore[union-attr]
        chat_id=settings.chat_id,  # type: ignore[arg-type]
        level=level if isinstance(level, int) else logging.ERROR,
    )


def setup_logging(
    level: str = "INFO",
    timezone_name: str = "UTC",
    telegram_settings: "TelegramLoggingSettings | None" = None,
    logs_dir: Path = LOGS_DIR,
) -> None:
    """Настроить корневой логгер приложения.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timezone_name: Часовой пояс для времени в консоли и файле.
        telegram_settings: Настройки алертов в Telegram; handler
            подключается, только если заданы chat_id и bot_token.
        logs_dir: Папка для файла лога.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        ColoredFormatter(timezone_name=timezone_name, use_colors=_should_use_colors())
    )
    root_logger.addHandler(console_handler)
    root_logger.addHandler(_build_file_handler(logs_dir, timezone_name))

    if telegram_settings and telegram_settings.is_enabled:
        root_logger.addHandler(_build_telegram_handler(telegram_settings))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер модуля (обычно get_logger(__name__))."""
    return logging.getLogger(name)
