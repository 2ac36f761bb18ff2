"""Application-layer ports describing collaborator responsibilities.

Purpose
-------
Define the structural contracts the binding engine consumes so the
composition root can orchestrate behaviour without depending on a web
framework, a payload decoder, or a validation library.

Contents
--------
* :class:`RequestContext` – the request data supplied by the transport layer.
* :class:`BodyDecoder` – turns raw body bytes into a generic value.
* :class:`Validator` – runs constraints over a fully bound record.
* :class:`FallbackBinder` – the framework's default binding behaviour.

System Role
-----------
Adapters implement one protocol each; :class:`request_binder.core.Binder`
receives them through its constructor.
"""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence, runtime_checkable


@runtime_checkable
class RequestContext(Protocol):
    """Read-only view of one HTTP request.

    Why
    ----
    The engine must not know which framework routed the request; it only needs
    the five data sources plus the method and payload metadata.
    """

    @property
    def method(self) -> str:
        """Upper-case request method."""

    @property
    def content_type(self) -> str:
        """Declared ``Content-Type`` (empty string when absent)."""

    @property
    def content_length(self) -> int:
        """Declared payload length; ``-1`` when unknown."""

    def param_names(self) -> Sequence[str]:
        """Path parameter names in route order."""

    def param_values(self) -> Sequence[str]:
        """Path parameter values aligned with :meth:`param_names`."""

    def query_params(self) -> Mapping[str, Sequence[str]]:
        """Multi-valued query parameters in first-seen order."""

    def header(self, name: str) -> str:
        """First value of header *name* (case-insensitive) or ``""``."""

    def form_params(self) -> Mapping[str, Sequence[str]]:
        """Multi-valued form fields of the payload."""

    def body(self) -> bytes:
        """Raw payload bytes."""


@runtime_checkable
class BodyDecoder(Protocol):
    """Decode a structured payload for the content types it owns.

    ``strict`` tells the hydrator whether leaves are already typed (JSON, YAML)
    or arrive as strings that still need coercion (XML).
    """

    media_types: tuple[str, ...]
    tag: str
    strict: bool

    def decode(self, payload: bytes) -> object:
        """Return the generic value encoded in *payload* or raise ``DecodeError``."""


@runtime_checkable
class Validator(Protocol):
    """Check declared constraints on a populated record."""

    def validate(self, target: object) -> None:
        """Raise :class:`request_binder.domain.errors.ValidationError` on violations."""


@runtime_checkable
class FallbackBinder(Protocol):
    """Framework default binding used when the sectioned layout does not apply."""

    def bind(self, target: object, request: RequestContext) -> None:
        """Populate *target* from *request* or raise a ``BindingError``."""
