"""Record schema introspection and field declaration helpers.

Purpose
-------
Turn a dataclass type into an immutable, cached description of its fields so
the flattener, the body hydrator, and the validator never re-inspect
annotations per request.

Contents
--------
* :data:`BINDER_TAG`, :data:`SKIP`, :data:`EMBEDDED`, :data:`VALIDATE_TAG` –
  metadata keys understood by the binder.
* :class:`Section` – closed enum of the recognised top-level sections.
* :func:`param` / :func:`embedded` – ``dataclasses.field`` wrappers that write
  the metadata.
* :class:`FieldSpec` / :class:`RecordSchema` / :func:`describe` – the cached
  per-type description.
"""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import MISSING, dataclass
from functools import lru_cache
from typing import Any, Mapping, get_type_hints

from .kinds import Kind, resolve_kind

BINDER_TAG = "binder"
"""Metadata key holding the external identifier of a slot."""

SKIP = "-"
"""Identifier value that excludes a field from binding entirely."""

EMBEDDED = "embedded"
"""Metadata key marking an anonymously embedded sub-record."""

VALIDATE_TAG = "validate"
"""Metadata key holding the validation rules of a field."""

JSON_TAG = "json"
XML_TAG = "xml"

SENT_FIELDS = "body_sent_fields"
"""Reserved top-level attribute receiving the body presence table."""


class Section(str, enum.Enum):
    """Recognised top-level sections of a bind target, by attribute name."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    FORM = "form"
    BODY = "body"


def param(
    name: str | None = None,
    *,
    default: Any = MISSING,
    default_factory: Any = MISSING,
    validate: str | None = None,
    json: str | None = None,
    xml: str | None = None,
) -> Any:
    """Declare a dataclass field with binder metadata.

    Parameters
    ----------
    name:
        External identifier; ``"-"`` hides the field from every source.
    validate:
        Comma separated validation rules (``"required,min=3"``).
    json / xml:
        Key names used when hydrating decoded bodies.

    Examples
    --------
    >>> from dataclasses import dataclass, fields
    >>> @dataclass
    ... class Query:
    ...     page: int = param("p", default=1)
    >>> fields(Query)[0].metadata["binder"]
    'p'
    """

    metadata: dict[str, Any] = {}
    if name is not None:
        metadata[BINDER_TAG] = name
    if validate is not None:
        metadata[VALIDATE_TAG] = validate
    if json is not None:
        metadata[JSON_TAG] = json
    if xml is not None:
        metadata[XML_TAG] = xml
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata)


def embedded(*, default: Any = MISSING, default_factory: Any = MISSING) -> Any:
    """Declare an anonymously embedded sub-record whose fields are promoted."""

    return dataclasses.field(default=default, default_factory=default_factory, metadata={EMBEDDED: True})


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Static description of one dataclass field."""

    name: str
    kind: Kind
    identifier: str | None
    embedded: bool
    settable: bool
    init: bool
    has_default: bool
    metadata: Mapping[str, Any]

    @property
    def skipped(self) -> bool:
        return self.identifier is None

    def key_for(self, tag: str) -> str | None:
        """Return the decoded-body key name for *tag* (``json``/``xml``)."""

        value = self.metadata.get(tag)
        if value == SKIP:
            return None
        return value or self.name


@dataclass(frozen=True, slots=True)
class RecordSchema:
    cls: type
    frozen: bool
    fields: tuple[FieldSpec, ...]

    def field(self, name: str) -> FieldSpec | None:
        for spec in self.fields:
            if spec.name == name:
                return spec
        return None


@lru_cache(maxsize=None)
def describe(cls: type) -> RecordSchema:
    """Return the cached :class:`RecordSchema` of dataclass *cls*."""

    hints = get_type_hints(cls, include_extras=True)
    frozen = bool(cls.__dataclass_params__.frozen)  # type: ignore[attr-defined]
    specs = []
    for item in dataclasses.fields(cls):
        specs.append(
            FieldSpec(
                name=item.name,
                kind=resolve_kind(hints.get(item.name, Any)),
                identifier=_identifier(item),
                embedded=bool(item.metadata.get(EMBEDDED, False)),
                settable=not frozen and not item.name.startswith("_"),
                init=item.init,
                has_default=item.default is not MISSING or item.default_factory is not MISSING,
                metadata=item.metadata,
            )
        )
    return RecordSchema(cls=cls, frozen=frozen, fields=tuple(specs))


def _identifier(item: dataclasses.Field) -> str | None:
    tag = item.metadata.get(BINDER_TAG, "")
    if tag == SKIP:
        return None
    return tag or item.name
