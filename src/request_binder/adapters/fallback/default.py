"""Default (section-less) binder adapter.

Purpose
-------
Implement :class:`request_binder.application.ports.FallbackBinder` with the
behaviour web frameworks ship as their own default: path params, then query
params (``GET``/``DELETE``/``HEAD`` only), then the body, bound straight into
the target without ``path``/``query``/... sections.

Key behaviours
--------------
* Dataclass targets are flattened once; unknown path or query keys are
  ignored rather than rejected.
* Mapping targets receive decoded body keys via ``update``; list targets
  receive decoded arrays via ``extend``.
* Empty payloads and unsupported content types leave the body untouched.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, MutableMapping, MutableSequence
from typing import Any, Sequence

from ...application.coerce import convert
from ...application.flatten import flatten
from ...application.hydrate import hydrate
from ...application.ports import BodyDecoder, RequestContext
from ...application.sources import FORM_MEDIA_TYPES, QUERY_METHODS, merge_values, select_decoder
from ...domain.errors import DecodeError
from ...domain.kinds import RecordKind
from ...observability import log_debug, make_event
from ..decoders.structured import DEFAULT_DECODERS


class DefaultBinder:
    """Bind request data directly onto a target object."""

    def __init__(self, *, decoders: Sequence[BodyDecoder] = DEFAULT_DECODERS) -> None:
        self._decoders = tuple(decoders)

    def bind(self, target: object, request: RequestContext) -> None:
        """Populate *target* from *request*.

        Examples
        --------
        >>> from request_binder.adapters.request.default import Request
        >>> payload = {}
        >>> DefaultBinder().bind(payload, Request("POST", body='{"a": 1}', content_type="application/json"))
        >>> payload
        {'a': 1}
        """

        log_debug("default_binder_invoked", **make_event("", None, {"target": type(target).__name__}))
        slots = flatten(target, location="record") if _is_record(target) else {}
        if slots:
            for name, value in zip(request.param_names(), request.param_values()):
                slot = slots.get(name)
                if slot is not None and slot.settable:
                    slot.set(convert(slot.kind, value, slot.get(), location="path", param=name))
            if request.method.upper() in QUERY_METHODS:
                merge_values(slots, request.query_params(), location="query")
        self._bind_body(target, request, slots)

    def _bind_body(self, target: Any, request: RequestContext, slots: Mapping[str, Any]) -> None:
        if request.content_length == 0:
            return
        content_type = request.content_type
        if content_type.startswith(FORM_MEDIA_TYPES):
            if slots:
                merge_values(slots, request.form_params(), location="form")
            elif isinstance(target, MutableMapping):
                target.update(request.form_params())
            return
        decoder = select_decoder(self._decoders, content_type)
        if decoder is None:
            return
        data = decoder.decode(request.body())
        if _is_record(target):
            hydrate(RecordKind(type(target)), data, target, tag=decoder.tag, strict=decoder.strict)
        elif isinstance(target, MutableMapping) and isinstance(data, Mapping):
            target.update(data)
        elif isinstance(target, MutableSequence) and isinstance(data, list):
            target.extend(data)
        else:
            raise DecodeError(f"cannot unmarshal {type(data).__name__} into {type(target).__name__}")


def _is_record(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)
