"""Public package surface for ``request_binder``.

Declare a dataclass whose ``path``, ``query``, ``header``, ``form`` and
``body`` attributes describe where each value of an HTTP request belongs, then
let :class:`Binder` fill it. Everything needed to declare records, build a
request context, and catch binding failures is re-exported here so consumers
never import from the layered subpackages.
"""

from __future__ import annotations

from .adapters.decoders.structured import (
    DEFAULT_DECODERS,
    BaseBodyDecoder,
    JSONBodyDecoder,
    XMLBodyDecoder,
    YAMLBodyDecoder,
)
from .adapters.fallback.default import DefaultBinder
from .adapters.request.default import Request
from .adapters.validators.tags import TagValidator
from .core import Binder, BindState
from .domain.errors import (
    BadRequestError,
    BinderError,
    BindingError,
    CoercionError,
    DecodeError,
    FieldViolation,
    HTTPError,
    InternalServerError,
    InvalidAnonymousField,
    InvalidType,
    InvalidTypeAtLocation,
    MissingParam,
    NotSettable,
    UnsupportedMethod,
    ValidationError,
)
from .domain.kinds import Float32, Float64, Int8, Int16, Int32, Int64, UInt, UInt8, UInt16, UInt32, UInt64
from .domain.presence import PresenceTable
from .domain.schema import Section, embedded, param
from .observability import bind_trace_id, get_logger

__all__ = [
    "BadRequestError",
    "BaseBodyDecoder",
    "BindState",
    "Binder",
    "BinderError",
    "BindingError",
    "CoercionError",
    "DEFAULT_DECODERS",
    "DecodeError",
    "DefaultBinder",
    "FieldViolation",
    "Float32",
    "Float64",
    "HTTPError",
    "Int16",
    "Int32",
    "Int64",
    "Int8",
    "InternalServerError",
    "InvalidAnonymousField",
    "InvalidType",
    "InvalidTypeAtLocation",
    "JSONBodyDecoder",
    "MissingParam",
    "NotSettable",
    "PresenceTable",
    "Request",
    "Section",
    "TagValidator",
    "UInt",
    "UInt16",
    "UInt32",
    "UInt64",
    "UInt8",
    "UnsupportedMethod",
    "ValidationError",
    "XMLBodyDecoder",
    "YAMLBodyDecoder",
    "bind_trace_id",
    "embedded",
    "get_logger",
    "param",
]
