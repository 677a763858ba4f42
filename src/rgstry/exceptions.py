"""Exceptions for rgstry."""


class RegistryError(Exception):
    """Base exception for registry-related errors."""
    pass


class RegistryNotFound(RegistryError):
    """Exception raised when a registry ID has no backing record in the store."""

    def __init__(self, registry_id: str):
        self.registry_id = registry_id
        super().__init__(f'Registry with ID "{registry_id}" not found.')
