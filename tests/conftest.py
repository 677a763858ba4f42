"""Pytest configuration and fixtures for rgstry tests."""

import pytest

from rgstry import REGISTRY_STORE, get_default_reflector, set_default_reflector


@pytest.fixture(autouse=True)
def reset_registries():
    """
    Reset the process-wide registry store between tests.

    Also restores the default reflection facility, so tests that remove it
    don't leak into the next one.
    """
    reflector = get_default_reflector()
    yield
    REGISTRY_STORE.clear()
    set_default_reflector(reflector)
