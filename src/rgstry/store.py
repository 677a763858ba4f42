"""
Process-wide storage for metadata registries.

Every registry created through :func:`rgstry.core.create` is backed by one
:class:`RegistryRecord` held in a :class:`RegistryStore`. The store is the
only owner of the records; registry objects keep nothing but the registry ID
and re-resolve their record on every call.

Architecture:
- RegistryRecord: class metadata and method metadata mappings for one registry
- RegistryStore: ID -> RegistryRecord table with set/has/get/clear primitives
- REGISTRY_STORE: the default store shared by the whole process

Usage:
    store = RegistryStore()
    store.set("auth", RegistryRecord())

    record = store.get("auth")
    record.class_metadata[AdminController] = [{"role": "admin"}]

    store.get("missing")  # raises RegistryNotFound
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Hashable

from .exceptions import RegistryNotFound

logger = logging.getLogger(__name__)

# Type aliases for clarity
MetadataList = List[Any]
ClassMetadataMap = Dict[type, MetadataList]
MethodMetadataMap = Dict[type, Dict[Hashable, MetadataList]]


@dataclass
class RegistryRecord:
    """
    Storage for a single registry.

    Attributes:
        class_metadata: Class -> metadata list (oldest attachment first)
        method_metadata: Owner class -> method name -> metadata list
        lock: Guards read-modify-write attach sequences on this record
    """
    class_metadata: ClassMetadataMap = field(default_factory=dict)
    method_metadata: MethodMetadataMap = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


class RegistryStore:
    """
    Table of registry records addressable by registry ID.

    The store never creates records on its own: creation is done by the
    registry engine through :meth:`set`. Looking up an unknown ID is a hard
    failure.
    """

    def __init__(self):
        self._records: Dict[str, RegistryRecord] = {}
        self.lock = threading.RLock()

    def get(self, registry_id: str) -> RegistryRecord:
        """
        Return the record for ``registry_id``.

        Raises:
            RegistryNotFound: If no record exists for the ID
        """
        try:
            return self._records[registry_id]
        except KeyError:
            raise RegistryNotFound(registry_id) from None

    def set(self, registry_id: str, record: RegistryRecord) -> None:
        """Store ``record`` under ``registry_id``, replacing any previous record."""
        with self.lock:
            self._records[registry_id] = record
        logger.debug(f"Stored registry record '{registry_id}'")

    def has(self, registry_id: str) -> bool:
        return registry_id in self._records

    def clear(self) -> None:
        """Remove every record. Registries bound to removed IDs fail on next use."""
        with self.lock:
            count = len(self._records)
            self._records.clear()
        logger.debug(f"Cleared {count} registry records")

    def ids(self) -> List[str]:
        return list(self._records)

    def __contains__(self, registry_id: object) -> bool:
        return registry_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(ids={self.ids()!r})"


# Default store shared by every registry created without an explicit store
REGISTRY_STORE = RegistryStore()
