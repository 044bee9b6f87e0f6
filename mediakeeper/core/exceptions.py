"""Централизованные исключения приложения.

Этот модуль содержит ВСЕ кастомные исключения проекта.
Удобный импорт: `from mediakeeper.core.exceptions import SomeError`

Организация исключений по доменам:
- Database: Ошибки работы с БД
- Expiry: Ошибки проверки истечения доступа (фатальные для запуска)
- Notifications: Ошибки отправки уведомлений
- Identity Backends: Ошибки медиасерверов (Jellyfin, Emby)

Политика распространения:
- Ошибка при выборке аккаунтов (ExpiryQueryError) прерывает весь запуск.
- Ошибки по отдельному аккаунту (NotificationError, IdentityBackendError,
  DatabaseOperationError при сохранении) логируются и записываются в отчёт,
  но не прерывают обработку остальных аккаунтов.
"""

from typing_extensions import override

# =============================================================================
# DATABASE EXCEPTIONS
# =============================================================================


class DatabaseError(Exception):
    """Базовое исключение для ошибок работы с БД.

    Может быть потенциально восстановимым (retry) в зависимости от причины.
    """

    def __init__(self, message: str, retryable: bool = False) -> None:
        """Создать исключение БД.

        Args:
            message: Описание ошибки.
            retryable: Можно ли повторить операцию (True для временных сбоев).
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable


class DatabaseConnectionError(DatabaseError):
    """Ошибка подключения к базе данных.

    Потенциально восстановимая — может помочь retry через несколько секунд.
    """

    def __init__(self, original_error: Exception) -> None:
        """Создать исключение о проблемах с подключением к БД.

        Args:
            original_error: Оригинальное исключение от SQLAlchemy.
        """
        super().__init__(
            f"Не удалось подключиться к БД: {original_error}",
            retryable=True,
        )
        self.original_error = original_error


class DatabaseSchemaError(DatabaseError):
    """В базе нет таблицы или колонок, с которыми работает сервис.

    Обычно значит, что mediakeeper направлен не на базу основного
    приложения. Невосстановимая без изменения конфигурации.
    """

    def __init__(self, table: str, missing: list[str]) -> None:
        """Создать исключение о несовпадении схемы.

        Args:
            table: Имя таблицы.
            missing: Отсутствующие колонки (пусто, если нет самой таблицы).
        """
        detail = "нет колонок " + ", ".join(missing) if missing else "таблица не найдена"
        super().__init__(f"Схема БД не подходит: \"{table}\" — {detail}")
        self.table = table
        self.missing = missing


class DatabaseOperationError(DatabaseError):
    """Ошибка выполнения операции с БД.

    Может быть восстановимой (deadlock, timeout) или невосстановимой
    (constraint violation).
    """

    def __init__(
        self, operation: str, original_error: Exception, retryable: bool = False
    ) -> None:
        """Создать исключение об ошибке операции БД.

        Args:
            operation: Название операции (save, disable, find_by_expiry_range).
            original_error: Оригинальное исключение от SQLAlchemy.
            retryable: Можно ли повторить операцию.
        """
        super().__init__(
            f"Ошибка выполнения операции '{operation}': {original_error}",
            retryable=retryable,
        )
        self.operation = operation
        self.original_error = original_error


# =============================================================================
# EXPIRY EXCEPTIONS
# =============================================================================


class ExpiryQueryError(Exception):
    """Не удалось выбрать аккаунты для проверки истечения.

    Фатальная для запуска ошибка: ни один аккаунт не обрабатывается,
    запуск завершается с ошибкой уровня запуска.

    Attributes:
        message: Описание ошибки.
        original_error: Оригинальное исключение (обычно DatabaseError).
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        """Создать исключение.

        Args:
            message: Описание ошибки.
            original_error: Оригинальное исключение.
        """
        super().__init__(message)
        self.message = message
        self.original_error = original_error


# =============================================================================
# NOTIFICATION EXCEPTIONS
# =============================================================================


class NotificationError(Exception):
    """Базовое исключение для ошибок отправки уведомлений.

    Attributes:
        message: Описание ошибки.
        recipient: Адрес получателя (если известен).
        original_error: Оригинальное исключение.
    """

    def __init__(
        self,
        message: str,
        *,
        recipient: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Создать исключение.

        Args:
            message: Описание ошибки.
            recipient: Адрес получателя.
            original_error: Оригинальное исключение.
        """
        super().__init__(message)
        self.message = message
        self.recipient = recipient
        self.original_error = original_error


class EmailDeliveryError(NotificationError):
    """SMTP-сервер недоступен или отклонил письмо."""


class EmailTemplateNotFoundError(NotificationError):
    """Запрошен неизвестный шаблон письма."""

    def __init__(self, template: str) -> None:
        """Создать исключение.

        Args:
            template: Имя шаблона.
        """
        super().__init__(f"Шаблон письма не найден: {template}")
        self.template = template


# =============================================================================
# IDENTITY BACKEND EXCEPTIONS
# =============================================================================


class IdentityBackendError(Exception):
    """Ошибка при работе с медиасервером (Jellyfin, Emby).

    Attributes:
        message: Человекочитаемое описание ошибки.
        backend: Название бэкенда (jellyfin, emby).
        external_id: ID аккаунта на стороне медиасервера.
        status_code: HTTP-статус ответа (если был ответ).
        original_error: Оригинальное исключение от HTTP-клиента.
    """

    def __init__(
        self,
        message: str,
        *,
        backend: str,
        external_id: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """Создать ошибку бэкенда.

        Args:
            message: Описание ошибки.
            backend: Название бэкенда.
            external_id: ID аккаунта на медиасервере.
            status_code: HTTP-статус ответа.
            original_error: Оригинальное исключение.
        """
        super().__init__(message)
        self.message = message
        self.backend = backend
        self.external_id = external_id
        self.status_code = status_code
        self.original_error = original_error

    @override
    def __str__(self) -> str:
        """Строковое представление ошибки."""
        return f"[{self.backend}] {self.message}"


class IdentityBackendAuthError(IdentityBackendError):
    """Админский ключ медиасервера недействителен (HTTP 401/403)."""


class IdentityAccountNotFoundError(IdentityBackendError):
    """Аккаунт не найден на медиасервере (HTTP 404)."""
