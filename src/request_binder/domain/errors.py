"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the source binders, the adapters,
and the composition root. The hierarchy lives in the domain layer so outer
layers may depend on it without creating cycles.

Contents
--------
* :class:`BinderError` – umbrella base class for all library failures.
* :class:`BindingError` – classified, located failure raised while binding a
  section (``InvalidType`` … ``ValidationError``).
* :class:`HTTPError` – the externally visible classification carrying a status
  code and the original internal error.
* :class:`BadRequestError` / :class:`InternalServerError` – the two concrete
  classifications produced by :meth:`request_binder.core.Binder.bind`.

System Role
-----------
Binders raise :class:`BindingError` subclasses. The composition root wraps them
into :class:`BadRequestError` so callers only need to catch one exception and
may still inspect :attr:`HTTPError.internal` for the precise cause.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


class BinderError(Exception):
    """Base type for all exceptions emitted by ``request_binder``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class BindingError(BinderError):
    """Classified failure scoped to a section (``location``) and parameter.

    Why
    ----
    Every internal failure must name the offending section and, where it
    applies, the identifier so the resulting bad request is actionable.

    Attributes
    ----------
    location:
        Section name (``"path"``, ``"query"`` ...) or an empty string when the
        failure concerns the whole record.
    param:
        Identifier, parameter, or attribute name involved in the failure.
    """

    def __init__(self, message: str, *, location: str = "", param: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.param = param


class InvalidType(BindingError):
    """Raised when the bind target is not a mutable dataclass instance."""

    def __init__(self) -> None:
        super().__init__("binding element must be a mutable dataclass instance")


class InvalidTypeAtLocation(BindingError):
    """Raised when a recognised section (or the sent-fields slot) has the wrong shape."""

    def __init__(self, location: str, expected: str = "dataclass") -> None:
        super().__init__(f"binding element at `{location}` must be a {expected}", location=location)
        self.expected = expected


class InvalidAnonymousField(BindingError):
    """Raised when an embedded field does not resolve to a dataclass."""

    def __init__(self, location: str, param: str = "") -> None:
        super().__init__(
            f"binding element at `{location}` cannot have embedded fields that aren't dataclasses",
            location=location,
            param=param,
        )


class MissingParam(BindingError):
    """Raised when a path parameter has no destination slot."""

    def __init__(self, location: str, param: str) -> None:
        super().__init__(f"missing param `{param}` at `{location}`", location=location, param=param)


class NotSettable(BindingError):
    """Raised when a matched slot cannot be written."""

    def __init__(self, location: str, param: str) -> None:
        super().__init__(f"param `{param}` at `{location}` is not settable", location=location, param=param)


class UnsupportedMethod(BindingError):
    """Raised when a section binder is invoked for an incompatible request method."""

    def __init__(self, location: str, method: str) -> None:
        super().__init__(f"unsupported http method `{method}` at `{location}`", location=location)
        self.method = method


class CoercionError(BindingError):
    """Raised when a string cannot be converted into the slot's declared kind.

    Attributes
    ----------
    value:
        The raw string that failed to parse.
    target:
        Human readable name of the destination kind (``"int8"``, ``"bool"`` ...).
    reason:
        ``"invalid syntax"``, ``"value out of range"`` or ``"unknown type"``.
    """

    def __init__(self, value: str, target: str, reason: str, *, location: str = "", param: str = "") -> None:
        if reason == "unknown type":
            message = "unknown type"
        else:
            message = f"parsing {value!r} as {target}: {reason}"
        if param:
            message = f"{message} (param `{param}` at `{location}`)"
        super().__init__(message, location=location, param=param)
        self.value = value
        self.target = target
        self.reason = reason


class DecodeError(BindingError):
    """Raised when a structured payload cannot be decoded or hydrated into the body."""

    def __init__(self, message: str, *, location: str = "body", param: str = "") -> None:
        super().__init__(message, location=location, param=param)


@dataclass(frozen=True, slots=True)
class FieldViolation:
    """One failed constraint reported by a validator; ``detail`` holds the validator's own message."""

    namespace: str
    field: str
    tag: str
    param: str
    value: Any
    detail: str = ""

    def __str__(self) -> str:
        return f"Key: '{self.namespace}' Error:Field validation for '{self.field}' failed on the '{self.tag}' tag"


class ValidationError(BindingError):
    """Raised when the fully bound record fails one or more declared constraints."""

    def __init__(self, violations: Sequence[FieldViolation]) -> None:
        self.violations = tuple(violations)
        super().__init__("\n".join(str(item) for item in self.violations) or "validation failed")


class HTTPError(BinderError):
    """Externally visible classification carrying a status code and the internal cause.

    Why
    ----
    Web frameworks translate exceptions into responses by status code; the
    original failure is kept on :attr:`internal` (and as ``__cause__``) for
    logging and debugging.
    """

    status_code: int = 500

    def __init__(self, message: str, *, internal: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.internal = internal

    def __str__(self) -> str:
        return f"code={self.status_code}, message={self.message}"


class BadRequestError(HTTPError):
    """The single classification used for every binding failure."""

    status_code = 400


class InternalServerError(HTTPError):
    """Raised when the request context itself fails (e.g. the body cannot be read)."""

    status_code = 500


def bad_request(exc: BaseException) -> BadRequestError:
    """Wrap *exc* into a :class:`BadRequestError` keeping it as the internal cause.

    Examples
    --------
    >>> err = bad_request(MissingParam("path", "id"))
    >>> err.status_code, err.message
    (400, 'missing param `id` at `path`')
    """

    message = exc.message if isinstance(exc, BindingError) else str(exc)
    return BadRequestError(message, internal=exc)
