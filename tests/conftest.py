"""Shared fixtures."""

import pytest

from tests.fakes import RecordingSleep


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()
