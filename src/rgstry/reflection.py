"""
Type reflection for registry metadata.

Registries created with ``use_reflect_metadata=True`` ask a reflection
facility for the parameter types of a class constructor, and for the
parameter and return types of a method, and store the answer next to the
caller's metadata.

A reflection facility is any object exposing::

    get_type_info(key, target, property_key=None) -> value or None

queried with :data:`PARAM_TYPES_KEY` or :data:`RETURN_TYPE_KEY`. ``target``
is the class; ``property_key`` is the method name when a method is being
reflected. ``None`` means "no information".

Results are reported as :class:`TypeDescriptor` tokens rather than raw
annotation objects, so stored metadata never depends on how a particular
facility represents types.

The process default facility is a :class:`SignatureReflector`, built on
:func:`inspect.signature`. It can be replaced, or removed entirely with
``set_default_reflector(None)``, in which case reflection-enabled registries
fall back to the base operation set.
"""

import inspect
import logging
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Hashable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)

# Keys understood by reflection facilities
PARAM_TYPES_KEY = "design:paramtypes"
RETURN_TYPE_KEY = "design:returntype"

# Side-channel name stored on reflected metadata entries
REFLECTED_KEY = "__reflected"


@dataclass(frozen=True)
class TypeDescriptor:
    """
    Opaque description of a type: a name plus optional nested descriptors.

    ``list[int]`` is described as ``TypeDescriptor("list", (TypeDescriptor("int"),))``.
    """
    name: str
    args: Tuple["TypeDescriptor", ...] = ()

    def __str__(self) -> str:
        if not self.args:
            return self.name
        return f"{self.name}[{', '.join(str(arg) for arg in self.args)}]"


ANY = TypeDescriptor("Any")
NONE = TypeDescriptor("None")


@dataclass
class ReflectedClassMetadata:
    """Reflection data stored for a class: constructor parameter types."""
    param_types: List[TypeDescriptor] = field(default_factory=list)


@dataclass
class ReflectedMethodMetadata:
    """Reflection data stored for a method: parameter types and return type."""
    param_types: List[TypeDescriptor] = field(default_factory=list)
    return_type: Optional[TypeDescriptor] = None


class ReflectionFacility(Protocol):
    """Capability returning type information for a class or method."""

    def get_type_info(
        self,
        key: str,
        target: Any,
        property_key: Optional[Hashable] = None
    ) -> Any:
        ...


def describe_type(annotation: Any) -> TypeDescriptor:
    """
    Convert an annotation into a :class:`TypeDescriptor`.

    Handles plain classes, ``None``, typing generics (``List[int]``,
    ``dict[str, Any]``, ``Optional[X]``, ``X | Y``), unresolved string
    forward references and unannotated parameters (described as ``Any``).
    """
    if annotation is inspect.Parameter.empty or annotation is typing.Any:
        return ANY
    if annotation is None or annotation is type(None):
        return NONE
    if isinstance(annotation, str):
        return TypeDescriptor(annotation)
    if isinstance(annotation, typing.ForwardRef):
        return TypeDescriptor(annotation.__forward_arg__)
    if annotation is Ellipsis:
        return TypeDescriptor("...")
    if isinstance(annotation, (list, tuple)):
        # Callable[[int, str], R] carries its parameter list as a plain list
        return TypeDescriptor("params", tuple(describe_type(arg) for arg in annotation))

    origin = typing.get_origin(annotation)
    if origin is not None:
        args = tuple(describe_type(arg) for arg in typing.get_args(annotation))
        return TypeDescriptor(_origin_name(origin), args)

    return TypeDescriptor(_type_name(annotation))


def _origin_name(origin: Any) -> str:
    if origin is typing.Union or origin is getattr(types, "UnionType", None):
        return "Union"
    return _type_name(origin)


def _type_name(obj: Any) -> str:
    name = getattr(obj, "__name__", None) or getattr(obj, "_name", None)
    if isinstance(name, str):
        return name
    return repr(obj)


class SignatureReflector:
    """
    Reflection facility backed by :func:`inspect.signature`.

    String annotations (``from __future__ import annotations``) are evaluated
    when possible. If evaluation fails, for example because an annotation
    names the class that is still being defined, the raw strings are
    reported instead.
    """

    def get_type_info(
        self,
        key: str,
        target: Any,
        property_key: Optional[Hashable] = None
    ) -> Any:
        if key == PARAM_TYPES_KEY:
            return self.get_param_types(target, property_key)
        if key == RETURN_TYPE_KEY:
            return self.get_return_type(target, property_key)
        return None

    def get_param_types(
        self,
        target: Any,
        property_key: Optional[Hashable] = None
    ) -> Optional[List[TypeDescriptor]]:
        """Parameter types of ``target``'s constructor, or of method ``property_key``."""
        resolved = self._resolve(target, property_key)
        if resolved is None:
            return None
        func, skip_first = resolved

        signature = self._signature(func)
        if signature is None:
            return None

        params = list(signature.parameters.values())
        if skip_first and params and params[0].kind in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            params = params[1:]

        return [
            describe_type(param.annotation)
            for param in params
            if param.kind not in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
        ]

    def get_return_type(
        self,
        target: Any,
        property_key: Optional[Hashable] = None
    ) -> Optional[TypeDescriptor]:
        """Return type of method ``property_key`` on ``target``; classes have none."""
        if property_key is None:
            return None
        resolved = self._resolve(target, property_key)
        if resolved is None:
            return None

        signature = self._signature(resolved[0])
        if signature is None or signature.return_annotation is inspect.Signature.empty:
            return None
        return describe_type(signature.return_annotation)

    @staticmethod
    def _resolve(target: Any, property_key: Optional[Hashable]):
        """
        Find the callable to inspect.

        Returns:
            ``(callable, skip_first)`` where ``skip_first`` says whether the
            first parameter is the implicit ``self``/``cls``, or None if
            nothing callable was found.
        """
        if property_key is None:
            # inspect.signature(cls) already drops ``self`` from __init__
            return (target, False) if isinstance(target, type) else None

        if not isinstance(property_key, str):
            return None
        owner = target if isinstance(target, type) else type(target)
        attr = inspect.getattr_static(owner, property_key, None)

        if isinstance(attr, staticmethod):
            return attr.__func__, False
        if isinstance(attr, classmethod):
            return attr.__func__, True
        if isinstance(attr, property):
            return (attr.fget, True) if attr.fget is not None else None
        if callable(attr):
            return attr, True
        return None

    @staticmethod
    def _signature(func: Any) -> Optional[inspect.Signature]:
        try:
            return inspect.signature(func, eval_str=True)
        except (NameError, AttributeError, SyntaxError, TypeError) as e:
            logger.debug(f"Could not evaluate annotations of {func!r}: {e}")
        except ValueError as e:
            logger.debug(f"No signature available for {func!r}: {e}")
            return None

        try:
            return inspect.signature(func)
        except (TypeError, ValueError) as e:
            logger.debug(f"No signature available for {func!r}: {e}")
            return None


def is_reflection_available(reflector: Any) -> bool:
    """Return True if ``reflector`` provides a callable ``get_type_info``."""
    return callable(getattr(reflector, "get_type_info", None))


_default_reflector: Optional[ReflectionFacility] = SignatureReflector()


def get_default_reflector() -> Optional[ReflectionFacility]:
    """Return the process default reflection facility (None if removed)."""
    return _default_reflector


def set_default_reflector(reflector: Optional[ReflectionFacility]) -> Optional[ReflectionFacility]:
    """
    Install ``reflector`` as the process default facility.

    Passing None removes the default, making reflection unavailable for
    registries that do not inject their own facility.

    Returns:
        The previously installed facility
    """
    global _default_reflector
    previous = _default_reflector
    _default_reflector = reflector
    return previous
