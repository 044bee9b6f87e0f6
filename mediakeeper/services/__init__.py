"""Сервисы приложения.

Этот пакет содержит бизнес-логику проверки истечения доступа.

Сервисы:
- ExpiryClassifier — построение когорт warn/disable.
- ExpiryNotificationService — предупреждения об истечении.
- DeactivationService — отключение просроченных аккаунтов.
- UserExpiryManager — оркестрация одного запуска, RunReport.
"""

from mediakeeper.services.deactivation_service import DeactivationService
from mediakeeper.services.expiry_classifier import (
    AccountSnapshot,
    ExpiryClassifier,
    ExpiryCohorts,
    ExpiryState,
    classify,
)
from mediakeeper.services.expiry_manager import UserExpiryManager
from mediakeeper.services.expiry_notification_service import (
    ExpiryNotificationService,
    days_remaining,
)
from mediakeeper.services.run_report import (
    AccountOutcome,
    OutcomeStatus,
    Phase,
    RunReport,
)

__all__ = [
    "AccountOutcome",
    "AccountSnapshot",
    "DeactivationService",
    "ExpiryClassifier",
    "ExpiryCohorts",
    "ExpiryNotificationService",
    "ExpiryState",
    "OutcomeStatus",
    "Phase",
    "RunReport",
    "UserExpiryManager",
    "classify",
    "days_remaining",
]
