"""
Shared fixtures for the booking core tests.
"""

from datetime import date
from unittest.mock import Mock

import pytest

from holiday_crm.services import BookingLifecycle, ErrorClassifier, RetryExecutor
from holiday_crm.storage import MockStorage
from holiday_crm.utils.config import reset_config

CONFIG_ENV_VARS = (
    "APP_NAME",
    "APP_VERSION",
    "APP_ENV",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
    "USE_REMOTE_STORAGE",
    "MOCK_STORAGE_PATH",
    "API_TIMEOUT_MS",
    "MAX_RETRIES",
    "RETRY_INITIAL_DELAY_MS",
    "RETRY_BACKOFF_MULTIPLIER",
    "LOG_LEVEL",
    "SENTRY_DSN",
    "DOCUMENTS_BASE_URL",
    "DEFAULT_COMMISSION_RATE",
    "ITEMS_PER_PAGE",
)


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def clean_env(monkeypatch):
    """Remove config variables and restore them (and anything .env adds) afterwards."""
    for name in CONFIG_ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    reset_config()
    yield monkeypatch
    reset_config()


@pytest.fixture
def booking_data():
    """A complete, valid cruise booking request."""
    return {
        "type": "Cruise",
        "item_id": "cruise-001",
        "item_name": "Mediterranean Explorer",
        "agent_id": "agent-001",
        "agent_name": "Priya Sharma",
        "customer_name": "Rahul Mehta",
        "customer_email": "rahul.mehta@example.com",
        "customer_phone": "+91 98765 43210",
        "booking_date": date(2025, 1, 10),
        "travel_date": date(2025, 6, 15),
        "total_amount": 100000,
        "guests": 2,
        "region": "Mumbai",
    }


@pytest.fixture
def zero_jitter():
    rng = Mock()
    rng.random.return_value = 0.0
    return rng


@pytest.fixture
def classifier():
    return ErrorClassifier()


@pytest.fixture
def retry_executor(classifier, zero_jitter):
    return RetryExecutor(
        classifier=classifier,
        sleep=no_sleep,
        rng=zero_jitter,
        attempt_timeout_ms=None,
    )


@pytest.fixture
def storage():
    return MockStorage()


@pytest.fixture
def lifecycle(storage, classifier, retry_executor):
    return BookingLifecycle(storage, classifier=classifier, retry=retry_executor)
