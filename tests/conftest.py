"""Shared fixtures for the finance tracker tests."""

from uuid import UUID, uuid4

import pytest

from finance_tracker.config.settings import AppSettings
from finance_tracker.services.storage import InMemoryAuditStorage, InMemoryFinanceStorage


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        default_reminder_days=3,
        max_reasonable_amount=1000000.0,
        future_date_tolerance_days=366,
    )


@pytest.fixture
def storage() -> InMemoryFinanceStorage:
    return InMemoryFinanceStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()
