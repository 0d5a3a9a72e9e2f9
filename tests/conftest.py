"""Shared fixtures."""

from types import SimpleNamespace

import pytest

from tests.factories import (
    FakeUserDirectory,
    NotificationHarness,
    make_directory,
    make_harness,
    make_people,
)


@pytest.fixture
def people() -> SimpleNamespace:
    """An employee with two managers, a nurse, a doctor, RH, an admin and an outsider."""
    return make_people()


@pytest.fixture
def harness() -> NotificationHarness:
    """Notification router wired on an in-memory store and a recording transport."""
    return make_harness()


@pytest.fixture
def directory(people) -> FakeUserDirectory:
    return make_directory(people)
