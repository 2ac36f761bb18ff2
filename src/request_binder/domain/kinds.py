"""Leaf kinds and fixed-width type aliases.

Purpose
-------
Describe every destination slot as a small tagged variant so coercion and
hydration can dispatch on a closed set of shapes instead of re-inspecting
annotations on every request.

Contents
--------
* Width markers :class:`IntWidth` / :class:`FloatWidth` and the public
  ``Annotated`` aliases (:data:`Int8` … :data:`Float64`).
* Kind variants: :class:`BoolKind`, :class:`IntKind`, :class:`UintKind`,
  :class:`FloatKind`, :class:`StrKind`, :class:`PointerKind`,
  :class:`ListKind`, :class:`RecordKind`, :class:`HookKind`,
  :class:`OpaqueKind`.
* :func:`resolve_kind` – annotation → kind.
* :func:`zero_value` / :func:`new_record` – zero-value allocation.
"""

from __future__ import annotations

import dataclasses
import types
from dataclasses import dataclass
from typing import Annotated, Any, Union, get_args, get_origin


@dataclass(frozen=True, slots=True)
class IntWidth:
    """``Annotated`` marker fixing the bit width and signedness of an ``int`` slot."""

    bits: int
    signed: bool = True


@dataclass(frozen=True, slots=True)
class FloatWidth:
    """``Annotated`` marker fixing the bit width of a ``float`` slot."""

    bits: int


#: Width used for plain ``int`` annotations (a 64-bit platform integer).
PLATFORM_BITS = 64

Int8 = Annotated[int, IntWidth(8)]
Int16 = Annotated[int, IntWidth(16)]
Int32 = Annotated[int, IntWidth(32)]
Int64 = Annotated[int, IntWidth(64)]
UInt = Annotated[int, IntWidth(PLATFORM_BITS, signed=False)]
UInt8 = Annotated[int, IntWidth(8, signed=False)]
UInt16 = Annotated[int, IntWidth(16, signed=False)]
UInt32 = Annotated[int, IntWidth(32, signed=False)]
UInt64 = Annotated[int, IntWidth(64, signed=False)]
Float32 = Annotated[float, FloatWidth(32)]
Float64 = Annotated[float, FloatWidth(64)]


class Kind:
    """Base class of all slot kinds."""

    __slots__ = ()

    @property
    def name(self) -> str:
        raise NotImplementedError


@dataclass(frozen=True, slots=True)
class BoolKind(Kind):
    @property
    def name(self) -> str:
        return "bool"


@dataclass(frozen=True, slots=True)
class IntKind(Kind):
    bits: int = PLATFORM_BITS

    @property
    def name(self) -> str:
        return f"int{self.bits}"

    @property
    def bounds(self) -> tuple[int, int]:
        return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1


@dataclass(frozen=True, slots=True)
class UintKind(Kind):
    bits: int = PLATFORM_BITS

    @property
    def name(self) -> str:
        return f"uint{self.bits}"

    @property
    def bounds(self) -> tuple[int, int]:
        return 0, (1 << self.bits) - 1


@dataclass(frozen=True, slots=True)
class FloatKind(Kind):
    bits: int = 64

    @property
    def name(self) -> str:
        return f"float{self.bits}"


@dataclass(frozen=True, slots=True)
class StrKind(Kind):
    @property
    def name(self) -> str:
        return "string"


@dataclass(frozen=True, slots=True)
class PointerKind(Kind):
    """``Optional[T]``: ``None`` until a value is bound."""

    inner: Kind

    @property
    def name(self) -> str:
        return f"Optional[{self.inner.name}]"


@dataclass(frozen=True, slots=True)
class ListKind(Kind):
    element: Kind

    @property
    def name(self) -> str:
        return f"list[{self.element.name}]"


@dataclass(frozen=True, slots=True)
class RecordKind(Kind):
    """A nested dataclass that is flattened rather than coerced."""

    cls: type

    @property
    def name(self) -> str:
        return self.cls.__name__


@dataclass(frozen=True, slots=True)
class HookKind(Kind):
    """A class that parses itself through ``unmarshal_param`` / ``unmarshal_text``."""

    cls: type

    @property
    def name(self) -> str:
        return self.cls.__name__


@dataclass(frozen=True, slots=True)
class OpaqueKind(Kind):
    """Anything else: accepted verbatim by body hydration, rejected by coercion."""

    annotation: Any

    @property
    def name(self) -> str:
        return getattr(self.annotation, "__name__", repr(self.annotation))


def has_hooks(cls: Any) -> bool:
    """Return ``True`` when *cls* implements one of the unmarshal hooks."""

    return isinstance(cls, type) and (
        callable(getattr(cls, "unmarshal_param", None)) or callable(getattr(cls, "unmarshal_text", None))
    )


def resolve_kind(annotation: Any) -> Kind:
    """Translate a resolved type annotation into a :class:`Kind`.

    Examples
    --------
    >>> resolve_kind(int)
    IntKind(bits=64)
    >>> resolve_kind(UInt8)
    UintKind(bits=8)
    >>> resolve_kind(list[Float32])
    ListKind(element=FloatKind(bits=32))
    >>> resolve_kind(int | None)
    PointerKind(inner=IntKind(bits=64))
    """

    origin = get_origin(annotation)
    if origin is Annotated:
        base, *extras = get_args(annotation)
        for extra in extras:
            if isinstance(extra, IntWidth) and base is int:
                return IntKind(extra.bits) if extra.signed else UintKind(extra.bits)
            if isinstance(extra, FloatWidth) and base is float:
                return FloatKind(extra.bits)
        return resolve_kind(base)

    if origin is Union or origin is types.UnionType:
        members = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(members) == 1 and len(members) != len(get_args(annotation)):
            inner = resolve_kind(members[0])
            if isinstance(inner, PointerKind):
                return inner
            return PointerKind(inner)
        return OpaqueKind(annotation)

    if origin is list:
        args = get_args(annotation)
        return ListKind(resolve_kind(args[0]) if args else OpaqueKind(Any))

    if annotation is bool:
        return BoolKind()
    if annotation is int:
        return IntKind()
    if annotation is float:
        return FloatKind()
    if annotation is str:
        return StrKind()
    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return RecordKind(annotation)
    if has_hooks(annotation):
        return HookKind(annotation)
    return OpaqueKind(annotation)


def zero_value(kind: Kind) -> Any:
    """Return the zero value a freshly allocated slot of *kind* holds."""

    if isinstance(kind, BoolKind):
        return False
    if isinstance(kind, (IntKind, UintKind)):
        return 0
    if isinstance(kind, FloatKind):
        return 0.0
    if isinstance(kind, StrKind):
        return ""
    if isinstance(kind, ListKind):
        return []
    if isinstance(kind, RecordKind):
        return new_record(kind.cls)
    if isinstance(kind, HookKind):
        return kind.cls()
    return None


def new_record(cls: type) -> Any:
    """Allocate a zero-valued instance of dataclass *cls*.

    Fields with defaults keep them; required fields receive the zero value of
    their kind so dataclasses without defaults can still be allocated.
    """

    from .schema import describe

    kwargs = {}
    for spec in describe(cls).fields:
        if spec.init and not spec.has_default:
            kwargs[spec.name] = zero_value(spec.kind)
    return cls(**kwargs)
