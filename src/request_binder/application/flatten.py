"""Schema flattener: section value → identifier → slot mapping.

Purpose
-------
Collapse a section dataclass, its embedded sub-records, and its nested record
groupings into one flat lookup table the path/query/header/form binders match
external keys against.

Contents
--------
* :class:`Slot` – an addressable attribute of a concrete object.
* :func:`flatten` – the recursive walk.

Rules
-----
* Fields are visited in declaration order; on identifier collisions the
  later slot wins (embedding order decides).
* ``Optional`` records that are ``None`` are allocated before descent.
* An embedded field that is not a record is an
  :class:`~request_binder.domain.errors.InvalidAnonymousField`.
* A leaf whose identifier is ``"-"`` is left out entirely.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..domain.errors import InvalidAnonymousField, NotSettable
from ..domain.kinds import Kind, PointerKind, RecordKind, new_record
from ..domain.schema import describe


@dataclass(frozen=True, slots=True)
class Slot:
    """One settable location: attribute ``name`` on ``owner``."""

    owner: Any
    name: str
    kind: Kind
    settable: bool

    def get(self) -> Any:
        return getattr(self.owner, self.name)

    def set(self, value: Any) -> None:
        setattr(self.owner, self.name, value)


def flatten(section: Any, *, location: str) -> dict[str, Slot]:
    """Return the identifier → :class:`Slot` mapping of dataclass instance *section*.

    Examples
    --------
    >>> from dataclasses import dataclass
    >>> from request_binder.domain.schema import embedded, param
    >>> @dataclass
    ... class Paging:
    ...     page: int = param("p", default=0)
    >>> @dataclass
    ... class Query:
    ...     paging: Paging = embedded(default_factory=Paging)
    ...     term: str = ""
    ...     secret: str = param("-", default="")
    >>> sorted(flatten(Query(), location="query"))
    ['p', 'term']
    """

    slots: dict[str, Slot] = {}
    for spec in describe(type(section)).fields:
        kind = spec.kind
        target = kind.inner if isinstance(kind, PointerKind) else kind

        if spec.embedded and not isinstance(target, RecordKind):
            raise InvalidAnonymousField(location, spec.name)

        if isinstance(target, RecordKind):
            child = getattr(section, spec.name)
            if child is None:
                if not spec.settable:
                    raise NotSettable(location, spec.name)
                child = new_record(target.cls)
                setattr(section, spec.name, child)
            slots.update(flatten(child, location=location))
            continue

        if spec.skipped:
            continue

        slots[spec.identifier] = Slot(section, spec.name, kind, spec.settable)  # type: ignore[index]
    return slots
