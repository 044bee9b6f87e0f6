"""Сервис отключения просроченных аккаунтов.

Для каждого аккаунта из когорты disable:
1. Если аккаунт пришёл с медиасервера (Jellyfin, Emby) и для этого
   сервера настроен админский ключ — отключаем аккаунт на сервере.
   Ошибка медиасервера логируется, обработка продолжается.
2. Ставим permissions = 0 в локальной БД. expiry_date не меняется.
3. Записываем результат в отчёт.

Локальная БД — источник истины: если медиасервер недоступен, аккаунт
всё равно отключается локально и больше не попадает в когорту.
Если не удалось сохранить permissions = 0, аккаунт останется
в когорте до следующего запуска.
"""

from mediakeeper.config.constants import UserType
from mediakeeper.db.repositories.user_repo import UserRepository
from mediakeeper.providers.identity.base import BaseIdentityBackend
from mediakeeper.services.expiry_classifier import AccountSnapshot
from mediakeeper.services.run_report import AccountOutcome, OutcomeStatus, Phase
from mediakeeper.utils.logging import get_logger

logger = get_logger(__name__)

# Типы аккаунтов, которые живут на медиасервере
EXTERNAL_USER_TYPES = frozenset({UserType.JELLYFIN, UserType.EMBY})


class DeactivationService:
    """Отключение просроченных аккаунтов.

    Аккаунты обрабатываются по одному: ошибка одного не влияет на остальные.
    Повторная обработка уже отключённого аккаунта ничего не меняет.

    Attributes:
        _repo: Репозиторий пользователей.
        _backends: Бэкенды медиасерверов {тип аккаунта: бэкенд}.
    """

    def __init__(
        self,
        repo: UserRepository,
        backends: dict[UserType, BaseIdentityBackend],
    ) -> None:
        """Инициализировать сервис.

        Args:
            repo: Репозиторий пользователей.
            backends: Настроенные бэкенды медиасерверов.
        """
        self._repo = repo
        self._backends = backends

    async def disable_expired(self, accounts: list[AccountSnapshot]) -> list[AccountOutcome]:
        """Отключить все аккаунты когорты.

        Args:
            accounts: Когорта disable.

        Returns:
            Результат по каждому аккаунту.
        """
        outcomes: list[AccountOutcome] = []
        for account in accounts:
            outcomes.append(await self.disable_account(account))
        return outcomes

    async def disable_account(self, account: AccountSnapshot) -> AccountOutcome:
        """Отключить один аккаунт.

        Args:
            account: Аккаунт из когорты disable.

        Returns:
            Результат обработки.
        """
        logger.info(
            "Отключение просроченного аккаунта: user_id=%s, email=%s, истёк %s",
            account.id,
            account.email,
            account.expiry_date,
        )

        backend_name: str | None = None
        external_error: str | None = None

        backend = self._select_backend(account)
        if backend is not None and account.external_account_id:
            backend_name = backend.backend_name
            try:
                await backend.disable_account(account.external_account_id)
            except Exception as e:
                external_error = str(e)
                logger.exception(
                    "Не удалось отключить аккаунт на медиасервере %s: "
                    "user_id=%s, external_id=%s",
                    backend_name,
                    account.id,
                    account.external_account_id,
                )

        try:
            changed = await self._repo.disable(account.id)
        except Exception as e:
            logger.exception("Не удалось сохранить отключение user_id=%s", account.id)
            return AccountOutcome(
                user_id=account.id,
                phase=Phase.DISABLE,
                status=OutcomeStatus.PERSIST_FAILED,
                backend=backend_name,
                error=str(e),
            )

        if not changed:
            logger.info("Аккаунт user_id=%s уже отключён", account.id)

        if external_error is not None:
            logger.warning(
                "Аккаунт user_id=%s отключён локально, но не на медиасервере %s",
                account.id,
                backend_name,
            )
            return AccountOutcome(
                user_id=account.id,
                phase=Phase.DISABLE,
                status=OutcomeStatus.DISABLED_EXTERNAL_FAILED,
                backend=backend_name,
                error=external_error,
            )

        logger.info("Аккаунт user_id=%s отключён", account.id)
        return AccountOutcome(
            user_id=account.id,
            phase=Phase.DISABLE,
            status=OutcomeStatus.DISABLED,
            backend=backend_name,
        )

    def _select_backend(self, account: AccountSnapshot) -> BaseIdentityBackend | None:
        """Выбрать бэкенд медиасервера для аккаунта.

        Returns:
            Бэкенд или None, если аккаунт локальный или ключ не настроен.
        """
        if account.user_type not in EXTERNAL_USER_TYPES:
            return None

        backend = self._backends.get(account.user_type)
        if backend is None:
            logger.warning(
                "Админский ключ для %s не настроен, аккаунт user_id=%s "
                "отключается только локально",
                account.user_type,
                account.id,
            )
            return None

        if not account.external_account_id:
            logger.warning(
                "У аккаунта user_id=%s нет ID на медиасервере %s, "
                "отключается только локально",
                account.id,
                backend.backend_name,
            )
            return None

        return backend
