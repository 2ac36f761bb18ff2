"""Source binders: one per recognised section.

Purpose
-------
Move values from one request data source into one section of the bind
target. Path, query, header, and form binders match keys against the
flattened section; the body binder delegates to a structured decoder and then
records which keys the payload carried.

Contents
--------
* :func:`bind_path` / :func:`bind_query` / :func:`bind_header` /
  :func:`bind_form` / :func:`bind_body` – the five binders.
* :func:`merge_values` – multi-valued merge shared by query and form.
* :func:`select_decoder` – content-type → decoder lookup.

System Role
-----------
Called by :class:`request_binder.core.Binder` through its dispatch table; every
failure is raised as a :class:`~request_binder.domain.errors.BindingError`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Sequence

from ..domain.errors import InvalidTypeAtLocation, MissingParam, NotSettable, UnsupportedMethod
from ..domain.kinds import ListKind, OpaqueKind, PointerKind
from ..domain.presence import PresenceTable
from ..domain.schema import SENT_FIELDS, FieldSpec, describe
from ..observability import log_debug, make_event
from .coerce import convert
from .flatten import Slot, flatten
from .hydrate import hydrate
from .ports import BodyDecoder, RequestContext

QUERY_METHODS = frozenset({"GET", "DELETE", "HEAD"})
FORM_MEDIA_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def bind_path(request: RequestContext, section: Any, *, location: str = "path") -> None:
    """Bind every routed path parameter; each one must have a settable slot."""

    slots = flatten(section, location=location)
    for name, value in zip(request.param_names(), request.param_values()):
        slot = slots.get(name)
        if slot is None:
            raise MissingParam(location, name)
        if not slot.settable:
            raise NotSettable(location, name)
        _assign(slot, value, location, name)


def bind_query(request: RequestContext, section: Any, *, location: str = "query") -> None:
    """Bind query parameters; unknown keys are ignored."""

    method = request.method.upper()
    if method not in QUERY_METHODS:
        raise UnsupportedMethod(location, method)
    merge_values(flatten(section, location=location), request.query_params(), location=location)


def bind_header(request: RequestContext, section: Any, *, location: str = "header") -> None:
    """Bind headers by identifier; empty header values count as absent."""

    for identifier, slot in flatten(section, location=location).items():
        value = request.header(identifier)
        if value == "":
            log_debug("header_skipped", **make_event(location, identifier))
            continue
        if not slot.settable:
            raise NotSettable(location, slot.name)
        _assign(slot, value, location, identifier)


def bind_form(request: RequestContext, section: Any, *, location: str = "form") -> None:
    """Bind url-encoded or multipart form fields; other payloads are a no-op."""

    if not _has_payload(request, location):
        return
    if not request.content_type.startswith(FORM_MEDIA_TYPES):
        log_debug("form_skipped", **make_event(location, None, {"content_type": request.content_type}))
        return
    merge_values(flatten(section, location=location), request.form_params(), location=location)


def bind_body(
    request: RequestContext,
    record: Any,
    spec: FieldSpec,
    decoders: Sequence[BodyDecoder],
    *,
    location: str = "body",
) -> None:
    """Decode the payload into the body slot and fill the sent-fields table.

    Unsupported content types leave the body untouched.
    """

    if not _has_payload(request, location):
        return
    decoder = select_decoder(decoders, request.content_type)
    if decoder is None:
        log_debug("body_skipped", **make_event(location, None, {"content_type": request.content_type}))
        return

    data = decoder.decode(request.body())
    current = getattr(record, spec.name)
    setattr(record, spec.name, hydrate(spec.kind, data, current, tag=decoder.tag, strict=decoder.strict))

    if isinstance(data, Mapping):
        _bind_sent_fields(record, data)


def merge_values(slots: Mapping[str, Slot], params: Mapping[str, Sequence[str]], *, location: str) -> None:
    """Coerce multi-valued *params* into *slots*.

    List slots receive one entry per value in input order; scalar slots take
    the first value only.
    """

    for name, values in params.items():
        slot = slots.get(name)
        if slot is None:
            log_debug("param_ignored", **make_event(location, name))
            continue
        if not slot.settable:
            raise NotSettable(location, name)
        if isinstance(slot.kind, ListKind):
            element = slot.kind.element
            slot.set([convert(element, value, None, location=location, param=name) for value in values])
        elif values:
            _assign(slot, values[0], location, name)


def select_decoder(decoders: Sequence[BodyDecoder], content_type: str) -> BodyDecoder | None:
    for decoder in decoders:
        if content_type.startswith(decoder.media_types):
            return decoder
    return None


def _has_payload(request: RequestContext, location: str) -> bool:
    method = request.method.upper()
    if method == "GET":
        raise UnsupportedMethod(location, method)
    return request.content_length != 0


def _assign(slot: Slot, raw: str, location: str, param: str) -> None:
    slot.set(convert(slot.kind, raw, slot.get(), location=location, param=param))


def _bind_sent_fields(record: Any, data: Mapping[str, Any]) -> None:
    spec = describe(type(record)).field(SENT_FIELDS)
    if spec is None:
        return
    kind = spec.kind.inner if isinstance(spec.kind, PointerKind) else spec.kind
    if not (isinstance(kind, OpaqueKind) and kind.annotation is PresenceTable):
        raise InvalidTypeAtLocation(SENT_FIELDS, PresenceTable.__name__)
    if not spec.settable:
        raise NotSettable(type(record).__name__, SENT_FIELDS)
    setattr(record, SENT_FIELDS, PresenceTable.from_payload(data))
