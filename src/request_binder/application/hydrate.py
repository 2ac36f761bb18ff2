"""Hydration of decoded structured payloads into the body slot.

Purpose
-------
Assign the generic value produced by a body decoder (``dict``/``list``/scalar)
onto the annotated body type: records are filled in place, lists replaced,
scalars type-checked.

Contents
--------
* :func:`hydrate` – kind + decoded value (+ current value) → new value.
* :func:`body_slots` – decoded-key → slot lookup with embedded promotion.

Strict decoders (JSON, YAML) must deliver correctly typed leaves. Lenient
decoders (XML) deliver strings, which go through
:func:`request_binder.application.coerce.convert`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..domain.errors import DecodeError
from ..domain.kinds import (
    BoolKind,
    FloatKind,
    HookKind,
    IntKind,
    Kind,
    ListKind,
    OpaqueKind,
    PointerKind,
    RecordKind,
    StrKind,
    UintKind,
    new_record,
)
from ..domain.schema import describe
from .coerce import convert, to_float32
from .flatten import Slot


def hydrate(kind: Kind, data: Any, current: Any, *, tag: str, strict: bool, path: str = "body") -> Any:
    """Return the value a *kind* slot holds after receiving decoded *data*.

    Examples
    --------
    >>> hydrate(ListKind(IntKind()), [1, 2], None, tag="json", strict=True)
    [1, 2]
    >>> hydrate(IntKind(), "7", 0, tag="xml", strict=False)
    7
    """

    if data is None:
        return None if isinstance(kind, PointerKind) else current
    if isinstance(kind, PointerKind):
        return hydrate(kind.inner, data, current, tag=tag, strict=strict, path=path)
    if isinstance(kind, OpaqueKind):
        return data
    if isinstance(kind, RecordKind):
        if isinstance(data, str) and not strict:
            # character data of an element without children; attributes are not decoded
            data = {}
        if not isinstance(data, Mapping):
            raise _mismatch(data, kind, path)
        instance = current if isinstance(current, kind.cls) else new_record(kind.cls)
        _fill(instance, data, tag=tag, strict=strict, path=path)
        return instance
    if isinstance(kind, ListKind):
        if isinstance(data, list):
            items = data
        elif not strict:
            items = [data]
        else:
            raise _mismatch(data, kind, path)
        return [
            hydrate(kind.element, item, None, tag=tag, strict=strict, path=f"{path}[{index}]")
            for index, item in enumerate(items)
        ]
    if isinstance(kind, HookKind):
        return _hydrate_hook(kind, data, current, path)
    if isinstance(data, str) and not strict:
        return convert(kind, data, current, location="body", param=path)
    return _scalar(kind, data, path)


def body_slots(instance: Any, *, tag: str) -> dict[str, Slot]:
    """Return decoded-key → :class:`Slot` for *instance*, promoting embedded records."""

    slots: dict[str, Slot] = {}
    for spec in describe(type(instance)).fields:
        kind = spec.kind
        target = kind.inner if isinstance(kind, PointerKind) else kind
        if spec.embedded and isinstance(target, RecordKind):
            child = getattr(instance, spec.name)
            if child is None:
                if not spec.settable:
                    continue
                child = new_record(target.cls)
                setattr(instance, spec.name, child)
            slots.update(body_slots(child, tag=tag))
            continue
        key = spec.key_for(tag)
        if key is None or not spec.settable:
            continue
        slots[key] = Slot(instance, spec.name, kind, spec.settable)
    return slots


def _fill(instance: Any, data: Mapping[str, Any], *, tag: str, strict: bool, path: str) -> None:
    slots = body_slots(instance, tag=tag)
    folded = {key.casefold(): slot for key, slot in reversed(list(slots.items()))}
    for key, value in data.items():
        slot = slots.get(key) or folded.get(str(key).casefold())
        if slot is None:
            continue
        slot.set(hydrate(slot.kind, value, slot.get(), tag=tag, strict=strict, path=f"{path}.{key}"))


def _hydrate_hook(kind: HookKind, data: Any, current: Any, path: str) -> Any:
    if not isinstance(data, str):
        raise _mismatch(data, kind, path)
    target = current if isinstance(current, kind.cls) else kind.cls()
    if callable(getattr(target, "unmarshal_text", None)):
        target.unmarshal_text(data.encode("utf-8"))
    else:
        target.unmarshal_param(data)
    return target


def _scalar(kind: Kind, data: Any, path: str) -> Any:
    if isinstance(kind, BoolKind) and isinstance(data, bool):
        return data
    if isinstance(kind, StrKind) and isinstance(data, str):
        return data
    if isinstance(kind, (IntKind, UintKind)) and isinstance(data, int) and not isinstance(data, bool):
        low, high = kind.bounds
        if not low <= data <= high:
            raise DecodeError(f"value {data} overflows `{path}` of type {kind.name}", param=path)
        return data
    if isinstance(kind, FloatKind) and isinstance(data, (int, float)) and not isinstance(data, bool):
        number = float(data)
        if kind.bits == 32:
            try:
                number = to_float32(number)
            except OverflowError:
                raise DecodeError(f"value {data} overflows `{path}` of type {kind.name}", param=path) from None
        return number
    raise _mismatch(data, kind, path)


def _mismatch(data: Any, kind: Kind, path: str) -> DecodeError:
    return DecodeError(f"cannot unmarshal {type(data).__name__} into `{path}` of type {kind.name}", param=path)
