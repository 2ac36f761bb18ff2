"""Structured body decoders.

Purpose
-------
Convert raw request payloads into generic Python values that the body
hydrator understands. Decoders are small wrappers around ``json``,
``xml.etree.ElementTree`` and ``yaml.safe_load`` so error handling and
observability live in one place.

Contents
--------
* :class:`BaseBodyDecoder` – shared text decoding and error helpers.
* :class:`JSONBodyDecoder` – ``application/json``.
* :class:`XMLBodyDecoder` – ``application/xml`` and ``text/xml``.
* :class:`YAMLBodyDecoder` – ``application/yaml`` and friends (PyYAML).
* :data:`DEFAULT_DECODERS` – the tuple :class:`request_binder.core.Binder`
  uses unless told otherwise.

System Role
-----------
Selected by content-type prefix in
:func:`request_binder.application.sources.bind_body`.
"""

from __future__ import annotations

import json
import xml.etree.ElementTree as ElementTree
from typing import Any, ClassVar

import yaml

from ...domain.errors import DecodeError
from ...observability import log_debug, log_error


class BaseBodyDecoder:
    """Common utilities shared by the structured body decoders."""

    media_types: ClassVar[tuple[str, ...]] = ()
    tag: ClassVar[str] = "json"
    strict: ClassVar[bool] = True
    format: ClassVar[str] = ""

    def _text(self, payload: bytes) -> str:
        """Decode *payload* as UTF-8, raising :class:`DecodeError` otherwise.

        Examples
        --------
        >>> JSONBodyDecoder()._text(b'{"a": 1}')
        '{"a": 1}'
        """

        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise self._invalid(exc) from exc

    def _invalid(self, exc: Exception) -> DecodeError:
        log_error("body_invalid", section="body", param=None, format=self.format, error=str(exc))
        return DecodeError(f"invalid {self.format} body: {exc}")

    def _loaded(self, data: Any, payload: bytes) -> Any:
        log_debug("body_decoded", section="body", param=None, format=self.format, size=len(payload))
        return data


class JSONBodyDecoder(BaseBodyDecoder):
    """Decode JSON payloads.

    Examples
    --------
    >>> JSONBodyDecoder().decode(b'{"enabled": true}')
    {'enabled': True}
    """

    media_types = ("application/json",)
    tag = "json"
    strict = True
    format = "json"

    def decode(self, payload: bytes) -> Any:
        try:
            data = json.loads(self._text(payload))
        except json.JSONDecodeError as exc:
            raise self._invalid(exc) from exc
        return self._loaded(data, payload)


class XMLBodyDecoder(BaseBodyDecoder):
    """Decode XML payloads into nested dictionaries of strings.

    The root element stands for the body itself; child elements become keys,
    repeated children become lists, and leaf text is kept as a string so the
    hydrator can coerce it.

    Examples
    --------
    >>> XMLBodyDecoder().decode(b"<user><name>Ada</name><tag>a</tag><tag>b</tag></user>")
    {'name': 'Ada', 'tag': ['a', 'b']}
    """

    media_types = ("application/xml", "text/xml")
    tag = "xml"
    strict = False
    format = "xml"

    def decode(self, payload: bytes) -> Any:
        try:
            root = ElementTree.fromstring(payload)
        except ElementTree.ParseError as exc:
            raise self._invalid(exc) from exc
        return self._loaded(_element_value(root), payload)


class YAMLBodyDecoder(BaseBodyDecoder):
    """Decode YAML payloads with ``yaml.safe_load``.

    Examples
    --------
    >>> YAMLBodyDecoder().decode(b"name: Ada\\nage: 36\\n")
    {'name': 'Ada', 'age': 36}
    """

    media_types = ("application/yaml", "application/x-yaml", "text/yaml")
    tag = "json"
    strict = True
    format = "yaml"

    def decode(self, payload: bytes) -> Any:
        try:
            data = yaml.safe_load(self._text(payload))
        except yaml.YAMLError as exc:
            raise self._invalid(exc) from exc
        return self._loaded(data, payload)


def _element_value(element: ElementTree.Element) -> Any:
    children = list(element)
    if not children:
        return element.text or ""
    value: dict[str, Any] = {}
    for child in children:
        item = _element_value(child)
        if child.tag not in value:
            value[child.tag] = item
            continue
        existing = value[child.tag]
        if isinstance(existing, list):
            existing.append(item)
        else:
            value[child.tag] = [existing, item]
    return value


DEFAULT_DECODERS: tuple[BaseBodyDecoder, ...] = (JSONBodyDecoder(), XMLBodyDecoder(), YAMLBodyDecoder())
