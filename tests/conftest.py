"""Root conftest.py for the Tax Registry test suite.

This file contains project-wide fixtures and pytest configuration.
"""

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from typing import Any

import pytest

from taxregistry.core.config import get_settings
from taxregistry.core.types import Clock

FIXED_NOW = datetime(2025, 6, 15, 12, 0, tzinfo=UTC)

type PayloadFactory = Callable[..., dict[str, Any]]


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests that test individual components in isolation"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that test multiple components"
    )


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Give every test freshly loaded settings."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now: datetime) -> Clock:
    """Clock frozen at mid-June 2025."""
    return lambda: fixed_now


@pytest.fixture
def make_payload() -> PayloadFactory:
    """Build a valid record submission, with overrides.

    Returns:
        PayloadFactory: Callable taking camelCase overrides; a value of None
            removes the key.
    """

    def factory(**overrides: Any) -> dict[str, Any]:  # noqa: ANN401
        payload: dict[str, Any] = {
            "name": "Adaeze Okafor",
            "tin": "12345678-0001",
            "certificateNo": "CERT-001",
            "phoneNo": "08031234567",
            "email": "adaeze.okafor@example.com",
            "amount": 50000,
            "sourceOfIncome": "Textile trading",
            "address": "12 Marina Road, Lagos Island, Lagos",
            "incomeLedger": [
                {"year": 2023, "income": 100000, "taxPaid": 5000},
                {"year": 2024, "income": 120000, "taxPaid": 6000},
            ],
        }
        for key, value in overrides.items():
            if value is None:
                payload.pop(key, None)
            else:
                payload[key] = value
        return payload

    return factory
