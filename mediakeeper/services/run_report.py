"""Отчёт о запуске проверки истечения.

RunReport накапливает результат по каждому аккаунту, а не только пишет
его в лог. Это позволяет проверять изоляцию ошибок в тестах и выводить
итог запуска одной строкой.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from mediakeeper.utils.timezone import utc_now


class Phase(StrEnum):
    """Фаза запуска, в которой обработан аккаунт."""

    WARN = "warn"
    DISABLE = "disable"


class OutcomeStatus(StrEnum):
    """Результат обработки одного аккаунта."""

    WARNED = "warned"  # Предупреждение отправлено
    NOTIFICATION_SKIPPED = "notification_skipped"  # Уведомления выключены / нет email / нет SMTP
    NOTIFICATION_FAILED = "notification_failed"  # Ошибка отправки письма
    DISABLED = "disabled"  # Отключён (локально и на медиасервере, если нужно)
    DISABLED_EXTERNAL_FAILED = "disabled_external_failed"  # Локально отключён, медиасервер — нет
    PERSIST_FAILED = "persist_failed"  # Не удалось сохранить permissions = 0


# Пропущенные уведомления не считаются ни успехом, ни ошибкой
SUCCESS_STATUSES = frozenset(
    {
        OutcomeStatus.WARNED,
        OutcomeStatus.DISABLED,
        OutcomeStatus.DISABLED_EXTERNAL_FAILED,
    }
)

FAILURE_STATUSES = frozenset(
    {
        OutcomeStatus.NOTIFICATION_FAILED,
        OutcomeStatus.PERSIST_FAILED,
    }
)


@dataclass(frozen=True)
class AccountOutcome:
    """Результат обработки одного аккаунта.

    Attributes:
        user_id: ID аккаунта.
        phase: Фаза (предупреждение или отключение).
        status: Итог обработки.
        backend: Медиасервер, который вызывался (если вызывался).
        error: Текст ошибки (для неуспешных статусов).
        detail: Дополнительная информация (причина пропуска и т.п.).
    """

    user_id: int
    phase: Phase
    status: OutcomeStatus
    backend: str | None = None
    error: str | None = None
    detail: str | None = None

    @property
    def is_failure(self) -> bool:
        """Неуспешный результат."""
        return self.status in FAILURE_STATUSES


@dataclass
class RunReport:
    """Итог одного запуска проверки.

    Attributes:
        outcomes: Результаты по аккаунтам в порядке обработки.
        skipped: Запуск пропущен, так как предыдущий ещё не завершён.
        error: Ошибка, прервавшая запуск целиком (сбой запроса к БД).
        started_at: Время начала (UTC).
        finished_at: Время окончания (UTC), None пока запуск идёт.
    """

    outcomes: list[AccountOutcome] = field(default_factory=list)
    skipped: bool = False
    error: str | None = None
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None

    def add(self, outcome: AccountOutcome) -> None:
        """Добавить результат по аккаунту."""
        self.outcomes.append(outcome)

    def extend(self, outcomes: list[AccountOutcome]) -> None:
        """Добавить несколько результатов."""
        self.outcomes.extend(outcomes)

    def finish(self) -> None:
        """Отметить окончание запуска."""
        self.finished_at = utc_now()

    def _count(self, *statuses: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status in statuses)

    @property
    def warned_count(self) -> int:
        """Сколько предупреждений отправлено."""
        return self._count(OutcomeStatus.WARNED)

    @property
    def disabled_count(self) -> int:
        """Сколько аккаунтов отключено локально."""
        return self._count(OutcomeStatus.DISABLED, OutcomeStatus.DISABLED_EXTERNAL_FAILED)

    @property
    def failed_count(self) -> int:
        """Сколько аккаунтов обработано с ошибкой."""
        return len(self.failed)

    @property
    def succeeded(self) -> list[int]:
        """ID аккаунтов, обработанных успешно."""
        return [o.user_id for o in self.outcomes if o.status in SUCCESS_STATUSES]

    @property
    def failed(self) -> list[tuple[int, str]]:
        """Пары (ID аккаунта, ошибка) для неуспешных результатов."""
        return [(o.user_id, o.error or o.status.value) for o in self.outcomes if o.is_failure]

    @property
    def external_failures(self) -> list[AccountOutcome]:
        """Аккаунты, отключённые локально, но не на медиасервере."""
        return [
            o for o in self.outcomes if o.status == OutcomeStatus.DISABLED_EXTERNAL_FAILED
        ]

    @property
    def is_success(self) -> bool:
        """Запуск прошёл без ошибок (пропуск ошибкой не считается)."""
        return self.error is None and not self.failed

    @property
    def duration_seconds(self) -> float | None:
        """Длительность запуска в секундах."""
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def summary(self) -> str:
        """Краткий итог одной строкой (для логов и CLI)."""
        if self.skipped:
            return "Проверка пропущена: предыдущий запуск ещё не завершён"
        if self.error is not None:
            return f"Проверка прервана: {self.error}"
        return (
            f"Предупреждено: {self.warned_count}, "
            f"отключено: {self.disabled_count}, "
            f"ошибок: {self.failed_count}, "
            f"сбоев медиасервера: {len(self.external_failures)}"
        )

    def as_dict(self) -> dict[str, Any]:
        """Представление для сериализации (JSON, логи)."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "skipped": self.skipped,
            "error": self.error,
            "warned": self.warned_count,
            "disabled": self.disabled_count,
            "succeeded": self.succeeded,
            "failed": [{"user_id": uid, "error": err} for uid, err in self.failed],
            "external_failures": [o.user_id for o in self.external_failures],
        }
