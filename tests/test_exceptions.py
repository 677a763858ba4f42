"""Tests for rgstry.exceptions module."""

import pytest

from rgstry.exceptions import RegistryError, RegistryNotFound


class TestExceptions:
    """Test exception classes."""

    def test_registry_error(self):
        """Test RegistryError exception."""
        with pytest.raises(RegistryError, match="test error"):
            raise RegistryError("test error")

        # Test inheritance
        assert issubclass(RegistryError, Exception)

    def test_registry_not_found(self):
        """Test RegistryNotFound message and attributes."""
        with pytest.raises(RegistryNotFound, match='Registry with ID "missing-id" not found.') as exc_info:
            raise RegistryNotFound("missing-id")

        assert exc_info.value.registry_id == "missing-id"

        # Test inheritance
        assert issubclass(RegistryNotFound, RegistryError)
        assert issubclass(RegistryNotFound, Exception)

    def test_exception_catching(self):
        """Test that RegistryNotFound can be caught as RegistryError."""
        try:
            raise RegistryNotFound("test")
        except RegistryError as e:
            assert "test" in str(e)
