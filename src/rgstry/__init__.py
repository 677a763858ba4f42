"""
rgstry: Type-friendly metadata registries for classes and methods.

This package provides decorator factories that attach arbitrary metadata to
classes and methods at definition time, and lookups that retrieve it later
from the class, the method owner, or an instance.
"""

__version__ = "0.1.0"

from .core import (
    MetadataRegistryConfig,
    MetadataRegistry,
    ReflectMetadataRegistry,
    MethodAnnotation,
    MetadataFactory,
    Rgstry,
    create,
)
from .store import RegistryStore, RegistryRecord, REGISTRY_STORE
from .reflection import (
    PARAM_TYPES_KEY,
    RETURN_TYPE_KEY,
    REFLECTED_KEY,
    TypeDescriptor,
    ReflectedClassMetadata,
    ReflectedMethodMetadata,
    ReflectionFacility,
    SignatureReflector,
    describe_type,
    get_default_reflector,
    set_default_reflector,
    is_reflection_available,
)
from .exceptions import RegistryError, RegistryNotFound

__all__ = [
    # Core
    "MetadataRegistryConfig",
    "MetadataRegistry",
    "ReflectMetadataRegistry",
    "MethodAnnotation",
    "MetadataFactory",
    "Rgstry",
    "create",
    # Store
    "RegistryStore",
    "RegistryRecord",
    "REGISTRY_STORE",
    # Reflection
    "PARAM_TYPES_KEY",
    "RETURN_TYPE_KEY",
    "REFLECTED_KEY",
    "TypeDescriptor",
    "ReflectedClassMetadata",
    "ReflectedMethodMetadata",
    "ReflectionFacility",
    "SignatureReflector",
    "describe_type",
    "get_default_reflector",
    "set_default_reflector",
    "is_reflection_available",
    # Exceptions
    "RegistryError",
    "RegistryNotFound",
]
