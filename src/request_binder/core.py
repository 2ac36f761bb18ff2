"""Composition root for ``request_binder``.

Purpose
-------
Provide the single entry point that walks the sections of a bind target,
dispatches each one to its source binder, and runs validation over the
result. The module wires the default adapters (body decoders, tag validator,
fallback binder) and converts every internal failure into the HTTP-level
classification callers expect.

Contents
--------
* :class:`BindState` – lifecycle of one :meth:`Binder.bind` call.
* :class:`Binder` – the orchestrator; configured by constructor injection.
* :data:`_SOURCE_BINDERS` – section → source binder dispatch table.

System Role
-----------
This module connects the application layer (``sources``) with the adapters
while emitting structured observability signals. It is the canonical place to
change which sections exist or how failures are classified.
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any, Callable, Sequence

from .adapters.decoders.structured import DEFAULT_DECODERS
from .adapters.fallback.default import DefaultBinder
from .adapters.validators.tags import TagValidator
from .application.ports import BodyDecoder, FallbackBinder, RequestContext, Validator
from .application.sources import bind_body, bind_form, bind_header, bind_path, bind_query
from .domain.errors import (
    BadRequestError,
    BindingError,
    HTTPError,
    InternalServerError,
    InvalidType,
    InvalidTypeAtLocation,
    bad_request,
)
from .domain.kinds import PointerKind, RecordKind, new_record
from .domain.schema import FieldSpec, Section, describe
from .observability import TRACE_ID, bind_trace_id, log_debug, log_error, log_info, make_event

_SOURCE_BINDERS: dict[Section, Callable[..., None]] = {
    Section.PATH: bind_path,
    Section.QUERY: bind_query,
    Section.HEADER: bind_header,
    Section.FORM: bind_form,
}

_SECTION_NAMES = {section.value: section for section in Section}

# Values that can never be populated in place.
_IMMUTABLE = (str, bytes, int, float, complex, bool, tuple, frozenset, type(None))

_DEFAULT_VALIDATOR: Any = object()

REQUEST_ID_HEADER = "X-Request-Id"


class BindState(str, enum.Enum):
    """Progress of a single :meth:`Binder.bind` call, logged at each step."""

    UNVALIDATED_INPUT = "unvalidated_input"
    STRUCTURE_CHECKED = "structure_checked"
    SECTIONS_BOUND = "sections_bound"
    VALIDATED = "validated"
    DONE = "done"
    FAILED = "failed"


class Binder:
    """Bind request data into section-structured dataclass records.

    Why
    ----
    Handlers want one call that fills path, query, header, form and body data
    into a typed record and rejects malformed input with a single, actionable
    bad-request error.

    What
    ----
    Iterates the recognised sections of the target in declaration order,
    allocating absent ``Optional`` sections, and hands each one to its source
    binder. After all sections are bound the record is validated. Any
    :class:`~request_binder.domain.errors.BindingError` (or ``ValueError``
    raised by an unmarshal hook) is re-raised as
    :class:`~request_binder.domain.errors.BadRequestError` with the original
    error kept as ``internal`` and ``__cause__``.

    Parameters
    ----------
    validator:
        Object implementing ``validate(target)``; defaults to
        :class:`TagValidator`. ``None`` disables validation.
    default_binder:
        Fallback used when the target has no sections or a section has the
        wrong shape and ``fallback_to_default`` is enabled.
    fallback_to_default:
        Enable delegation to ``default_binder``.
    decoders:
        Body decoders tried in order by content-type prefix.
    trace_header:
        Header whose value becomes the trace identifier of every log entry
        emitted during the call; ``None`` leaves the trace context alone.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> from request_binder.adapters.request.default import Request
    >>> from request_binder.domain.schema import param
    >>> @dataclass
    ... class Path:
    ...     user_id: int = param("id", default=0)
    >>> @dataclass
    ... class Query:
    ...     tags: list[str] = field(default_factory=list)
    >>> @dataclass
    ... class GetUser:
    ...     path: Path = field(default_factory=Path)
    ...     query: Query = field(default_factory=Query)
    >>> target = GetUser()
    >>> Binder().bind(target, Request("GET", url="/u?tags=a&tags=b", path_params={"id": "7"}))
    >>> target.path.user_id, target.query.tags
    (7, ['a', 'b'])
    """

    def __init__(
        self,
        *,
        validator: Validator | None = _DEFAULT_VALIDATOR,
        default_binder: FallbackBinder | None = None,
        fallback_to_default: bool = False,
        decoders: Sequence[BodyDecoder] = DEFAULT_DECODERS,
        trace_header: str | None = REQUEST_ID_HEADER,
    ) -> None:
        self._validator = TagValidator() if validator is _DEFAULT_VALIDATOR else validator
        self._decoders = tuple(decoders)
        self._default_binder = default_binder if default_binder is not None else DefaultBinder(decoders=self._decoders)
        self._fallback_to_default = fallback_to_default
        self._trace_header = trace_header

    @property
    def fallback_to_default(self) -> bool:
        return self._fallback_to_default

    @fallback_to_default.setter
    def fallback_to_default(self, enabled: bool) -> None:
        self._fallback_to_default = bool(enabled)

    def bind(self, target: object, request: RequestContext) -> None:
        """Populate *target* from *request* and validate it.

        Raises
        ------
        BadRequestError
            For every classified binding or validation failure.
        InternalServerError
            When the request body cannot be read.
        """

        previous_trace = TRACE_ID.get()
        request_id = request.header(self._trace_header) if self._trace_header else ""
        if request_id:
            bind_trace_id(request_id)
        try:
            self._classified(target, request)
        finally:
            bind_trace_id(previous_trace)

    def _classified(self, target: object, request: RequestContext) -> None:
        state = BindState.UNVALIDATED_INPUT
        try:
            self._bind(target, request)
        except HTTPError:
            raise
        except (BindingError, ValueError) as exc:
            state = BindState.FAILED
            log_error("bind_failed", state=state.value, target=type(target).__name__, error=str(exc))
            raise bad_request(exc) from exc
        except OSError as exc:
            state = BindState.FAILED
            log_error("bind_failed", state=state.value, target=type(target).__name__, error=str(exc))
            raise InternalServerError(str(exc), internal=exc) from exc

    def _bind(self, target: object, request: RequestContext) -> None:
        self._transition(BindState.UNVALIDATED_INPUT, target)
        if not _is_reference(target):
            raise InvalidType()
        if not _is_record(target):
            if self._fallback_to_default:
                return self._fallback(target, request, reason="not_a_record")
            raise InvalidType()
        schema = describe(type(target))
        if schema.frozen:
            raise InvalidType()
        self._transition(BindState.STRUCTURE_CHECKED, target)

        found = False
        for spec in schema.fields:
            section = _SECTION_NAMES.get(spec.name)
            if section is None:
                continue
            if section is not Section.BODY and not _is_section_kind(spec):
                if self._fallback_to_default:
                    return self._fallback(target, request, reason=f"invalid_{spec.name}_section")
                raise InvalidTypeAtLocation(spec.name)
            found = True
            self._bind_section(target, spec, section, request)
        self._transition(BindState.SECTIONS_BOUND, target)

        if not found and self._fallback_to_default:
            return self._fallback(target, request, reason="no_sections")

        if self._validator is not None:
            self._validator.validate(target)
            self._transition(BindState.VALIDATED, target)
        self._transition(BindState.DONE, target)
        return None

    def _bind_section(self, target: Any, spec: FieldSpec, section: Section, request: RequestContext) -> None:
        if section is Section.BODY:
            bind_body(request, target, spec, self._decoders, location=spec.name)
        else:
            value = getattr(target, spec.name)
            if value is None:
                kind = spec.kind.inner if isinstance(spec.kind, PointerKind) else spec.kind
                value = new_record(kind.cls)
                setattr(target, spec.name, value)
            _SOURCE_BINDERS[section](request, value, location=spec.name)
        log_debug("section_bound", **make_event(spec.name, None))

    def _fallback(self, target: object, request: RequestContext, *, reason: str) -> None:
        log_info("fallback_binder", **make_event("", None, {"target": type(target).__name__, "reason": reason}))
        self._default_binder.bind(target, request)

    @staticmethod
    def _transition(state: BindState, target: object) -> None:
        log_debug("bind_state", state=state.value, target=type(target).__name__)


def _is_reference(target: object) -> bool:
    return not isinstance(target, type) and not isinstance(target, _IMMUTABLE)


def _is_record(target: object) -> bool:
    return dataclasses.is_dataclass(target) and not isinstance(target, type)


def _is_section_kind(spec: FieldSpec) -> bool:
    kind = spec.kind.inner if isinstance(spec.kind, PointerKind) else spec.kind
    return isinstance(kind, RecordKind)


__all__ = [
    "BadRequestError",
    "BindState",
    "Binder",
    "InternalServerError",
    "REQUEST_ID_HEADER",
]
