"""Tag-driven record validator backed by pydantic.

Purpose
-------
Implement :class:`request_binder.application.ports.Validator` over the
``validate`` metadata written by :func:`request_binder.domain.schema.param`
(``param(validate="required,min=3")``).

Key behaviours
--------------
* Rules: ``required``, ``omitempty``, ``len``, ``min``, ``max``, ``eq``,
  ``ne``, ``gt``, ``gte``, ``lt``, ``lte`` and ``oneof``.
* Each rule becomes a cached :class:`pydantic.TypeAdapter` over an
  ``Annotated`` type: bounds map onto ``Field(ge=..., le=...)`` for numbers
  and ``Field(min_length=..., max_length=...)`` for strings, bytes and
  collections; the remaining rules are ``AfterValidator`` functions.
* Rules run in declaration order and the first failure per field is
  reported, carrying pydantic's error message as ``detail``.
* Nested dataclasses (including ``Optional`` ones and list items) are walked,
  so constraints inside sections are honoured.
* Every violation is collected before a single
  :class:`~request_binder.domain.errors.ValidationError` is raised.
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache, partial
from typing import Annotated, Any

from pydantic import AfterValidator, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ...domain.errors import FieldViolation, ValidationError
from ...domain.schema import VALIDATE_TAG, describe
from ...observability import log_error

_FLAG_RULES = frozenset({"required", "omitempty"})
_BOUND_RULES = frozenset({"len", "min", "max", "gt", "gte", "lt", "lte"})
_RULES = _FLAG_RULES | _BOUND_RULES | {"eq", "ne", "oneof"}

_SHAPES: dict[str, Any] = {"any": Any, "flag": bool, "number": float, "text": str, "bytes": bytes, "collection": list}

_NUMBER_BOUNDS = {
    "len": ("ge", "le"),
    "eq": ("ge", "le"),
    "min": ("ge",),
    "gte": ("ge",),
    "max": ("le",),
    "lte": ("le",),
    "gt": ("gt",),
    "lt": ("lt",),
}


@dataclass(frozen=True, slots=True)
class Rule:
    name: str
    param: str = ""


@lru_cache(maxsize=256)
def parse_rules(text: str) -> tuple[Rule, ...]:
    """Parse a ``validate`` string; unknown rule names are a programming error.

    Examples
    --------
    >>> parse_rules("required,min=3")
    (Rule(name='required', param=''), Rule(name='min', param='3'))
    """

    rules = []
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        name, _, value = chunk.partition("=")
        if name not in _RULES:
            raise RuntimeError(f"undefined validation rule {name!r}")
        if name in _BOUND_RULES and not _is_number(value):
            raise RuntimeError(f"validation rule {name!r} needs a numeric parameter, got {value!r}")
        if name == "oneof" and not value.split():
            raise RuntimeError("validation rule 'oneof' needs at least one option")
        rules.append(Rule(name, value))
    return tuple(rules)


class TagValidator:
    """Validate dataclass records from their field metadata.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from request_binder.domain.schema import param
    >>> @dataclass
    ... class Header:
    ...     name: str = param(validate="required", default="")
    >>> TagValidator().validate(Header(name="Ada"))
    >>> TagValidator().validate(Header())
    Traceback (most recent call last):
    ...
    request_binder.domain.errors.ValidationError: Key: 'Header.name' Error:Field validation for 'name' failed on the 'required' tag
    """

    def __init__(self, *, tag: str = VALIDATE_TAG) -> None:
        self._tag = tag

    def validate(self, target: object) -> None:
        violations: list[FieldViolation] = []
        self._walk(target, type(target).__name__, violations)
        if violations:
            log_error("validation_failed", section="", param=None, violations=[str(item) for item in violations])
            raise ValidationError(violations)

    def _walk(self, instance: Any, namespace: str, violations: list[FieldViolation]) -> None:
        for spec in describe(type(instance)).fields:
            value = getattr(instance, spec.name)
            field_namespace = f"{namespace}.{spec.name}"
            rules = spec.metadata.get(self._tag)
            if rules:
                violation = _check(parse_rules(rules), value, field_namespace, spec.name)
                if violation is not None:
                    violations.append(violation)
                    continue
            self._dive(value, field_namespace, violations)

    def _dive(self, value: Any, namespace: str, violations: list[FieldViolation]) -> None:
        if _is_record(value):
            self._walk(value, namespace, violations)
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if _is_record(item):
                    self._walk(item, f"{namespace}[{index}]", violations)


def _check(rules: tuple[Rule, ...], value: Any, namespace: str, field: str) -> FieldViolation | None:
    """Return the first violated rule of *rules* for *value*, if any."""

    for rule in rules:
        if rule.name == "omitempty":
            if is_zero(value):
                return None
            continue
        detail = _failure(rule, value)
        if detail is not None:
            return FieldViolation(namespace, field, rule.name, rule.param, value, detail)
    return None


def _failure(rule: Rule, value: Any) -> str | None:
    """Return pydantic's message when *value* breaks *rule*, else ``None``."""

    if rule.name == "ne":
        if _failure(Rule("eq", rule.param), value) is None:
            return f"Value must not equal {rule.param}"
        return None
    if rule.name == "required":
        shape, subject = "any", value
    elif value is None:
        return "Value is missing"
    elif rule.name == "oneof":
        shape, subject = "text", str(value)
    else:
        shape, subject = _shape(rule, value)
    try:
        _adapter(rule, shape).validate_python(subject, strict=True)
    except PydanticValidationError as exc:
        return exc.errors()[0]["msg"]
    return None


def _shape(rule: Rule, value: Any) -> tuple[str, Any]:
    if isinstance(value, bool):
        if rule.name != "eq":
            raise RuntimeError(f"validation rule {rule.name!r} cannot compare bool values")
        return "flag", value
    if isinstance(value, (int, float)):
        return "number", float(value)
    if isinstance(value, str):
        return "text", value
    if isinstance(value, (bytes, bytearray)):
        return "bytes", bytes(value)
    if isinstance(value, (list, tuple, set, frozenset, Mapping)):
        return "collection", list(value)
    raise RuntimeError(f"cannot compare value of type {type(value).__name__}")


@lru_cache(maxsize=512)
def _adapter(rule: Rule, shape: str) -> TypeAdapter:
    return TypeAdapter(Annotated[(_SHAPES[shape], *_metadata(rule, shape))])


def _metadata(rule: Rule, shape: str) -> tuple[Any, ...]:
    if rule.name == "required":
        return (AfterValidator(_required),)
    if rule.name == "oneof":
        return (AfterValidator(partial(_one_of, tuple(rule.param.split()))),)
    if rule.name == "eq" and shape == "text":
        return (AfterValidator(partial(_equal_text, rule.param)),)
    if rule.name == "eq" and shape == "flag":
        return (AfterValidator(partial(_equal_flag, rule.param.lower() == "true")),)
    bound = _number(rule)
    if shape == "number":
        return (Field(**{key: bound for key in _NUMBER_BOUNDS[rule.name]}),)
    return _length_bounds(rule.name, bound)


def _length_bounds(name: str, bound: float) -> tuple[Any, ...]:
    lower: int | None = None
    upper: int | None = None
    if name in ("len", "eq", "min", "gte"):
        lower = math.ceil(bound)
    if name in ("len", "eq", "max", "lte"):
        upper = math.floor(bound)
    if name == "gt":
        lower = math.floor(bound) + 1
    if name == "lt":
        upper = math.ceil(bound) - 1
    if upper is not None and upper < 0:
        return (AfterValidator(partial(_unreachable_length, bound)),)
    limits: dict[str, int] = {}
    if lower is not None and lower > 0:
        limits["min_length"] = lower
    if upper is not None:
        limits["max_length"] = upper
    return (Field(**limits),)


def _required(value: Any) -> Any:
    if is_zero(value):
        raise ValueError("value is required")
    return value


def _one_of(options: tuple[str, ...], value: str) -> str:
    if value not in options:
        raise ValueError(f"value must be one of {' '.join(options)}")
    return value


def _equal_text(expected: str, value: str) -> str:
    if value != expected:
        raise ValueError(f"value must equal {expected!r}")
    return value


def _equal_flag(expected: bool, value: bool) -> bool:
    if value is not expected:
        raise ValueError(f"value must be {str(expected).lower()}")
    return value


def _unreachable_length(bound: float, value: Any) -> Any:
    raise ValueError(f"no length satisfies bound {bound}")


def is_zero(value: Any) -> bool:
    """Return ``True`` for ``None``, ``False``, ``0``, ``""`` and empty containers."""

    if value is None:
        return True
    if _is_record(value):
        return False
    if isinstance(value, (bool, int, float, str, bytes, list, tuple, dict, set)):
        return not value
    return False


def _is_record(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _number(rule: Rule) -> float:
    if not _is_number(rule.param):
        raise RuntimeError(f"validation rule {rule.name!r} needs a numeric parameter, got {rule.param!r}")
    return float(rule.param)


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True
