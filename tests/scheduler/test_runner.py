"""Тесты для scheduler.runner — создания планировщика."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
from apscheduler.triggers.interval import IntervalTrigger

from mediakeeper.config.yaml_config import YamlConfig
from mediakeeper.scheduler.runner import (
    USER_EXPIRY_JOB_ID,
    create_scheduler,
    start_scheduler,
    stop_scheduler,
)
from mediakeeper.scheduler.tasks import process_user_expiry
from mediakeeper.services.expiry_manager import UserExpiryManager


@pytest.fixture
def mock_manager() -> AsyncMock:
    """Мок оркестратора проверки."""
    return AsyncMock(spec=UserExpiryManager)


def _config(**expiry: object) -> YamlConfig:
    return YamlConfig.model_validate({"expiry": expiry})


def test_job_registered_with_interval(mock_manager: AsyncMock) -> None:
    """Тест: задача зарегистрирована с интервалом из конфигурации."""
    scheduler = create_scheduler(_config(check_interval_hours=12), mock_manager)

    job = scheduler.get_job(USER_EXPIRY_JOB_ID)

    assert job is not None
    assert job.func is process_user_expiry
    assert job.kwargs == {"manager": mock_manager}
    assert isinstance(job.trigger, IntervalTrigger)
    assert job.trigger.interval == timedelta(hours=12)
    assert job.max_instances == 1
    assert job.coalesce is True


def test_default_interval_is_daily(mock_manager: AsyncMock) -> None:
    """Тест: по умолчанию проверка раз в сутки."""
    scheduler = create_scheduler(YamlConfig(), mock_manager)

    job = scheduler.get_job(USER_EXPIRY_JOB_ID)

    assert job.trigger.interval == timedelta(hours=24)


def test_no_job_when_disabled(mock_manager: AsyncMock) -> None:
    """Тест: expiry.enabled = false — задача не регистрируется."""
    scheduler = create_scheduler(_config(enabled=False), mock_manager)

    assert scheduler.get_jobs() == []


@pytest.mark.asyncio
async def test_start_and_stop(mock_manager: AsyncMock) -> None:
    """Тест: запуск и остановка планировщика, повторные вызовы безопасны."""
    scheduler = create_scheduler(_config(run_on_startup=False), mock_manager)

    start_scheduler(scheduler)
    start_scheduler(scheduler)
    assert scheduler.running

    stop_scheduler(scheduler)
    stop_scheduler(scheduler)
