"""Fixtures for API unit tests."""

from collections.abc import Callable

import pytest
from pytest_mock import MockerFixture, MockType

from taxregistry.core.config import Settings


@pytest.fixture
def development_settings() -> Settings:
    return Settings(environment="development")


@pytest.fixture
def production_settings() -> Settings:
    return Settings(environment="production")


@pytest.fixture
def make_request(mocker: MockerFixture) -> Callable[[Settings], MockType]:
    """Build a mock request whose app carries the given settings."""

    def factory(settings: Settings) -> MockType:
        request = mocker.Mock()
        request.app.state.settings = settings
        request.url.path = "/records/7"
        request.method = "GET"
        return request

    return factory
