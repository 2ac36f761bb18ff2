"""Type coercion from single strings into typed slot values.

Purpose
-------
Convert one raw string (a path segment, a query value, a header) into the
value a slot of a given :class:`~request_binder.domain.kinds.Kind` holds.

Contents
--------
* :func:`convert` – kind + string (+ current value) → new value.
* :func:`parse_bool` / :func:`parse_int` / :func:`parse_uint` /
  :func:`parse_float` – strict parsers with width checks.

Rules
-----
* Unmarshal hooks win over every built-in conversion.
* ``Optional`` slots are allocated on demand, then coerced into.
* Empty strings read as ``"0"``, ``"0.0"`` or ``"false"`` for numbers and
  booleans.
"""

from __future__ import annotations

import math
import re
import struct
from typing import Any

from ..domain.errors import CoercionError
from ..domain.kinds import (
    BoolKind,
    FloatKind,
    HookKind,
    IntKind,
    Kind,
    PointerKind,
    StrKind,
    UintKind,
    zero_value,
)

_SIGNED = re.compile(r"[+-]?[0-9]+")
_UNSIGNED = re.compile(r"[0-9]+")
_SPECIAL_FLOATS = {"inf", "+inf", "-inf", "infinity", "+infinity", "-infinity", "nan", "+nan", "-nan"}
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})

INVALID = "invalid syntax"
OUT_OF_RANGE = "value out of range"
UNKNOWN = "unknown type"


def convert(kind: Kind, raw: str, current: Any = None, *, location: str = "", param: str = "") -> Any:
    """Return the value of a *kind* slot parsed from *raw*.

    *current* is the slot's present value; hooks mutate it in place when it is
    already an instance of the hook class.

    Examples
    --------
    >>> convert(IntKind(8), "127")
    127
    >>> convert(BoolKind(), "")
    False
    >>> convert(PointerKind(StrKind()), "x")
    'x'
    """

    hooked, value = _unmarshal(kind, raw, current)
    if hooked:
        return value

    if isinstance(kind, PointerKind):
        if current is None:
            current = zero_value(kind.inner)
        return convert(kind.inner, raw, current, location=location, param=param)
    if isinstance(kind, BoolKind):
        return parse_bool(raw, location=location, param=param)
    if isinstance(kind, IntKind):
        return parse_int(raw, kind.bits, location=location, param=param)
    if isinstance(kind, UintKind):
        return parse_uint(raw, kind.bits, location=location, param=param)
    if isinstance(kind, FloatKind):
        return parse_float(raw, kind.bits, location=location, param=param)
    if isinstance(kind, StrKind):
        return raw
    raise CoercionError(raw, kind.name, UNKNOWN, location=location, param=param)


def _unmarshal(kind: Kind, raw: str, current: Any) -> tuple[bool, Any]:
    """Invoke a user hook when the slot (or its pointee) provides one."""

    if isinstance(kind, PointerKind):
        kind = kind.inner
    if not isinstance(kind, HookKind):
        return False, None
    target = current if isinstance(current, kind.cls) else kind.cls()
    if callable(getattr(target, "unmarshal_param", None)):
        target.unmarshal_param(raw)
    else:
        target.unmarshal_text(raw.encode("utf-8"))
    return True, target


def parse_bool(raw: str, *, location: str = "", param: str = "") -> bool:
    value = raw or "false"
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise CoercionError(raw, "bool", INVALID, location=location, param=param)


def parse_int(raw: str, bits: int, *, location: str = "", param: str = "") -> int:
    value = raw or "0"
    if not _SIGNED.fullmatch(value):
        raise CoercionError(raw, f"int{bits}", INVALID, location=location, param=param)
    number = int(value)
    low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    if not low <= number <= high:
        raise CoercionError(raw, f"int{bits}", OUT_OF_RANGE, location=location, param=param)
    return number


def parse_uint(raw: str, bits: int, *, location: str = "", param: str = "") -> int:
    value = raw or "0"
    if not _UNSIGNED.fullmatch(value):
        raise CoercionError(raw, f"uint{bits}", INVALID, location=location, param=param)
    number = int(value)
    if number > (1 << bits) - 1:
        raise CoercionError(raw, f"uint{bits}", OUT_OF_RANGE, location=location, param=param)
    return number


def parse_float(raw: str, bits: int, *, location: str = "", param: str = "") -> float:
    value = raw or "0.0"
    target = f"float{bits}"
    if not value.isascii() or value != value.strip() or "_" in value:
        raise CoercionError(raw, target, INVALID, location=location, param=param)
    try:
        number = float(value)
    except ValueError:
        number = _parse_hex_float(value, raw, target, location, param)
    if math.isinf(number) and value.lower() not in _SPECIAL_FLOATS:
        raise CoercionError(raw, target, OUT_OF_RANGE, location=location, param=param)
    if bits == 32:
        try:
            number = to_float32(number)
        except OverflowError:
            raise CoercionError(raw, target, OUT_OF_RANGE, location=location, param=param) from None
    return number


def to_float32(number: float) -> float:
    """Round *number* to single precision; raises ``OverflowError`` when it does not fit."""

    return struct.unpack("f", struct.pack("f", number))[0]


def _parse_hex_float(value: str, raw: str, target: str, location: str, param: str) -> float:
    lowered = value.lower()
    if "0x" not in lowered or "p" not in lowered:
        raise CoercionError(raw, target, INVALID, location=location, param=param)
    try:
        return float.fromhex(value)
    except OverflowError:
        raise CoercionError(raw, target, OUT_OF_RANGE, location=location, param=param) from None
    except ValueError:
        raise CoercionError(raw, target, INVALID, location=location, param=param) from None
