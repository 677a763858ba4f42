"""
Metadata registries for classes and methods.

This module turns a :class:`MetadataRegistryConfig` into a registry object: a
set of decorators that attach metadata at class definition time, plus the
read operations that retrieve it later. Every registry is bound to one
registry ID and keeps its data in a :class:`~rgstry.store.RegistryStore`.

Usage:
    auth = create(merge=True, id="auth")

    @auth.class_metadata({"role": "admin"})
    class AdminController:

        @auth.method_metadata({"permission": "write"})
        def update(self, payload: dict) -> bool:
            ...

    auth.get_class_metadata(AdminController)          # [{'role': 'admin'}]
    auth.get_instance_metadata(AdminController())     # same list
    auth.get_method_metadata(AdminController, "update")

Attachment order:
-----------------
Python applies stacked decorators bottom-up, so the decorator nearest to the
``class``/``def`` line attaches first. With ``merge=True``::

    @auth.class_metadata({"role": "admin"})
    @auth.class_metadata({"level": 5})
    class Panel: ...

stores ``[{"level": 5}, {"role": "admin"}]``. Stacked method decorators follow
the same order.

Method decorators:
-----------------
A method decorator returns a :class:`MethodAnnotation`. When the enclosing
class is created, Python calls its ``__set_name__`` hook with the owning
class and attribute name; the annotation puts the original function (or
``staticmethod``/``classmethod``/``property``) back on the class and attaches
its metadata under ``(owner, name)``. Method annotations must therefore be the
outermost decorator of the attribute. Outside a class body, call the
decorator with the owner and name directly::

    auth.method_metadata({"permission": "read"})(AdminController, "list")
"""

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Hashable, List, Optional, Type

from ._ids import generate_registry_id
from .reflection import (
    PARAM_TYPES_KEY,
    REFLECTED_KEY,
    RETURN_TYPE_KEY,
    ReflectedClassMetadata,
    ReflectedMethodMetadata,
    ReflectionFacility,
    TypeDescriptor,
    get_default_reflector,
    is_reflection_available,
)
from .store import REGISTRY_STORE, RegistryRecord, RegistryStore

logger = logging.getLogger(__name__)

# Type aliases for clarity
MethodKey = Hashable
BindCallback = Callable[[type, MethodKey], None]


@dataclass(frozen=True)
class MetadataRegistryConfig:
    """
    Configuration for a metadata registry.

    Attributes:
        merge: If True, each attachment is appended to the existing list.
               If False, each attachment replaces the list with the new value.
        id: Registry identifier. Registries created with the same ID share
            storage. A random ID is generated when omitted.
        use_reflect_metadata: If True and a reflection facility is available,
            return a registry with the reflection-aware decorators.
        reflector: Reflection facility to use. None means the process default
            (see :func:`rgstry.reflection.get_default_reflector`).
        log_attachments: If True, log a debug message for every attachment
    """
    merge: bool = False
    id: Optional[str] = None
    use_reflect_metadata: bool = False
    reflector: Optional[ReflectionFacility] = None
    log_attachments: bool = True


def _owner_of(target: Any) -> type:
    """Classes are method owners themselves; anything else resolves to its type."""
    return target if isinstance(target, type) else type(target)


def _apply_merge_policy(mapping: Dict[Any, List[Any]], key: Any, metadata: Any, merge: bool) -> None:
    existing = mapping.get(key)
    if existing and merge:
        existing.append(metadata)
    else:
        mapping[key] = [metadata]


class MethodAnnotation:
    """
    Placeholder returned by method decorators.

    Holds the decorated attribute until the owning class is created, then
    restores it on the class and reports ``(owner, name)`` to its callback.
    Nested annotations are bound innermost first.
    """

    def __init__(self, func: Any, on_bind: BindCallback):
        if not (callable(func) or hasattr(func, "__get__")):
            raise TypeError(
                f"Method metadata can only decorate functions or descriptors, "
                f"got {type(func).__name__}"
            )
        self.func = func
        self.__wrapped__ = func
        self._on_bind = on_bind

    def __set_name__(self, owner: type, name: str) -> None:
        inner_set_name = None if isinstance(self.func, type) else getattr(self.func, "__set_name__", None)
        if inner_set_name is not None:
            inner_set_name(owner, name)
        if not isinstance(self.func, MethodAnnotation):
            setattr(owner, name, self.func)
        self._on_bind(owner, name)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        # Reached only when another decorator hid __set_name__; no metadata is attached then
        return self.func(*args, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} for {self.func!r}>"


class MetadataRegistry:
    """
    Decorators and lookups bound to one registry ID.

    The registry holds no metadata itself: every call resolves the record for
    :attr:`registry_id` in :attr:`store`, so all registries sharing an ID
    observe the same data.
    """

    def __init__(self, registry_id: str, config: MetadataRegistryConfig, store: RegistryStore):
        self.registry_id = registry_id
        self.config = config
        self.store = store

    def _record(self) -> RegistryRecord:
        return self.store.get(self.registry_id)

    # Decorators

    def class_metadata(self, metadata: Any) -> Callable[[Type], Type]:
        """Class decorator factory attaching ``metadata`` to the decorated class."""
        def decorator(target: Type) -> Type:
            self._attach_class(target, metadata)
            return target
        return decorator

    def method_metadata(self, metadata: Any) -> Callable[..., Any]:
        """
        Method decorator factory attaching ``metadata`` to the decorated method.

        The returned decorator accepts either the function being decorated
        (inside a class body) or an explicit ``(owner, name)`` pair.
        """
        def attach(owner: type, name: MethodKey) -> None:
            self._attach_method(owner, name, metadata)
        return self._method_decorator(attach)

    @staticmethod
    def _method_decorator(attach: BindCallback) -> Callable[..., Any]:
        def decorator(target: Any, property_key: Optional[MethodKey] = None) -> Any:
            if property_key is None:
                return MethodAnnotation(target, attach)
            attach(_owner_of(target), property_key)
            return None
        return decorator

    def _attach_class(self, target: Type, metadata: Any) -> None:
        record = self._record()
        with record.lock:
            _apply_merge_policy(record.class_metadata, target, metadata, self.config.merge)
        if self.config.log_attachments:
            name = getattr(target, "__name__", repr(target))
            logger.debug(f"Attached metadata to {name} in registry '{self.registry_id}'")

    def _attach_method(self, owner: type, name: MethodKey, metadata: Any) -> None:
        record = self._record()
        with record.lock:
            methods = record.method_metadata.setdefault(owner, {})
            _apply_merge_policy(methods, name, metadata, self.config.merge)
        if self.config.log_attachments:
            logger.debug(
                f"Attached metadata to {owner.__name__}.{name} in registry '{self.registry_id}'"
            )

    # Lookups

    def get_class_metadata(self, target: Type) -> List[Any]:
        """Metadata attached to ``target``, oldest first. Empty if none."""
        return self._record().class_metadata.get(target, [])

    def get_instance_metadata(self, instance: Any) -> List[Any]:
        """Metadata attached to the class of ``instance``."""
        return self.get_class_metadata(type(instance))

    def get_method_metadata(self, target: Any, property_key: MethodKey) -> List[Any]:
        """Metadata attached to method ``property_key`` of ``target`` (a class or an instance)."""
        methods = self._record().method_metadata.get(_owner_of(target))
        if not methods:
            return []
        return methods.get(property_key, [])

    def get_all_class_metadata(self) -> Dict[type, List[Any]]:
        """Live mapping of every class to its metadata list."""
        return self._record().class_metadata

    def get_all_method_metadata(self) -> Dict[type, Dict[MethodKey, List[Any]]]:
        """Live mapping of every owner class to its method metadata."""
        return self._record().method_metadata

    def has_class_metadata(self, target: Type) -> bool:
        return bool(self._record().class_metadata.get(target))

    def has_instance_metadata(self, instance: Any) -> bool:
        return self.has_class_metadata(type(instance))

    def has_method_metadata(self, target: Any, property_key: MethodKey) -> bool:
        methods = self._record().method_metadata.get(_owner_of(target))
        return bool(methods and methods.get(property_key))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(registry_id={self.registry_id!r}, merge={self.config.merge})"


def _fields_of(value: Any) -> Dict[str, Any]:
    """Instance attributes of ``value``, read from ``__dict__`` or ``__slots__``."""
    try:
        return dict(vars(value))
    except TypeError:
        pass

    fields = {}
    for cls in type(value).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name in ("__dict__", "__weakref__") or name in fields:
                continue
            if hasattr(value, name):
                fields[name] = getattr(value, name)
    return fields


def _with_reflected(metadata: Any, reflected: Any) -> Any:
    """
    Shallow copy of ``metadata`` carrying ``reflected`` in the side-channel.

    Mappings become a new dict with the ``"__reflected"`` key. Objects with an
    instance ``__dict__`` (frozen dataclasses included) are copied and given a
    ``__reflected`` attribute. Anything else, such as strings, numbers or
    ``__slots__`` objects, is spread into a dict of its fields.
    """
    if metadata is None:
        return {REFLECTED_KEY: reflected}
    if isinstance(metadata, Mapping):
        return {**metadata, REFLECTED_KEY: reflected}

    if hasattr(metadata, "__dict__") and not isinstance(metadata, type):
        try:
            enhanced = copy.copy(metadata)
            if enhanced is not metadata:
                object.__setattr__(enhanced, REFLECTED_KEY, reflected)
                return enhanced
        except (TypeError, AttributeError) as e:
            logger.debug(f"Cannot copy {type(metadata).__name__} metadata, storing its fields: {e}")

    return {**_fields_of(metadata), REFLECTED_KEY: reflected}


def _reflected_of(entry: Any) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(REFLECTED_KEY)
    return getattr(entry, REFLECTED_KEY, None)


class ReflectMetadataRegistry(MetadataRegistry):
    """
    Registry whose reflect decorators also record type information.

    :meth:`reflect_class_metadata` and :meth:`reflect_method_metadata` query
    the reflection facility and store its answer under ``"__reflected"`` on a
    shallow copy of the caller's metadata. The caller's value is never
    mutated.
    """

    def __init__(
        self,
        registry_id: str,
        config: MetadataRegistryConfig,
        store: RegistryStore,
        reflector: ReflectionFacility
    ):
        super().__init__(registry_id, config, store)
        self.reflector = reflector

    def reflect_class_metadata(self, metadata: Any = None) -> Callable[[Type], Type]:
        """Class decorator factory recording constructor parameter types."""
        def decorator(target: Type) -> Type:
            param_types = self.reflector.get_type_info(PARAM_TYPES_KEY, target) or []
            reflected = ReflectedClassMetadata(param_types=list(param_types))
            self._attach_class(target, _with_reflected(metadata, reflected))
            return target
        return decorator

    def reflect_method_metadata(self, metadata: Any = None) -> Callable[..., Any]:
        """Method decorator factory recording parameter and return types."""
        def attach(owner: type, name: MethodKey) -> None:
            param_types = self.reflector.get_type_info(PARAM_TYPES_KEY, owner, name) or []
            return_type = self.reflector.get_type_info(RETURN_TYPE_KEY, owner, name)
            reflected = ReflectedMethodMetadata(param_types=list(param_types), return_type=return_type)
            self._attach_method(owner, name, _with_reflected(metadata, reflected))
        return self._method_decorator(attach)

    def get_class_param_types(self, target: Type) -> List[List[TypeDescriptor]]:
        """Constructor parameter types recorded for each entry on ``target``."""
        return [
            self._param_types(entry) for entry in self.get_class_metadata(target)
        ]

    def get_method_param_types(self, target: Any, property_key: MethodKey) -> List[List[TypeDescriptor]]:
        """Parameter types recorded for each entry on method ``property_key``."""
        return [
            self._param_types(entry) for entry in self.get_method_metadata(target, property_key)
        ]

    def get_method_return_type(self, target: Any, property_key: MethodKey) -> List[Optional[TypeDescriptor]]:
        """Return type recorded for each entry on method ``property_key``."""
        return [
            getattr(_reflected_of(entry), "return_type", None)
            for entry in self.get_method_metadata(target, property_key)
        ]

    @staticmethod
    def _param_types(entry: Any) -> List[TypeDescriptor]:
        reflected = _reflected_of(entry)
        return getattr(reflected, "param_types", None) or []


def create(
    config: Optional[MetadataRegistryConfig] = None,
    *,
    store: Optional[RegistryStore] = None,
    **overrides: Any
) -> MetadataRegistry:
    """
    Create a metadata registry, or bind to an existing one with the same ID.

    Args:
        config: Registry configuration. Defaults to ``MetadataRegistryConfig()``.
        store: Store holding the registry record. Defaults to the
               process-wide :data:`~rgstry.store.REGISTRY_STORE`.
        **overrides: Config fields to set or override, e.g. ``merge=True``

    Returns:
        A :class:`ReflectMetadataRegistry` if reflection was requested and a
        facility is available, otherwise a :class:`MetadataRegistry`

    Example:
        >>> roles = create(id="roles")
        >>> @roles.class_metadata({"role": "admin"})
        ... class AdminController:
        ...     pass
        >>> roles.get_class_metadata(AdminController)
        [{'role': 'admin'}]
    """
    if config is None:
        config = MetadataRegistryConfig(**overrides)
    elif overrides:
        config = replace(config, **overrides)
    if store is None:
        store = REGISTRY_STORE

    with store.lock:
        registry_id = config.id or generate_registry_id(store.has)
        if not store.has(registry_id):
            store.set(registry_id, RegistryRecord())
            logger.debug(f"Created registry '{registry_id}' (merge={config.merge})")

    if not config.use_reflect_metadata:
        return MetadataRegistry(registry_id, config, store)

    reflector = config.reflector if config.reflector is not None else get_default_reflector()
    if not is_reflection_available(reflector):
        logger.warning(
            f"Reflection is not available, but use_reflect_metadata is set for registry "
            f"'{registry_id}'. Install a facility with rgstry.set_default_reflector() or pass "
            f"reflector= in the config. Falling back to the base registry."
        )
        return MetadataRegistry(registry_id, config, store)

    return ReflectMetadataRegistry(registry_id, config, store, reflector)


class MetadataFactory:
    """Factory namespace for metadata registries."""

    create = staticmethod(create)


Rgstry = MetadataFactory
