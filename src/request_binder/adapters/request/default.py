"""In-memory request context adapter.

Purpose
-------
Implement :class:`request_binder.application.ports.RequestContext` over plain
Python values so the binder can be driven by any web framework (or by tests
and the CLI) without a live transport.

Key behaviours
--------------
* Query parameters are parsed from the URL, keeping blank values and the
  order in which keys first appear.
* Headers are case-insensitive and multi-valued; :meth:`Request.header`
  returns the first value.
* ``content_type`` defaults to the ``Content-Type`` header and
  ``content_length`` to the body size.
* Form fields come from an explicit mapping, or are parsed from url-encoded
  and ``multipart/form-data`` bodies (file parts are skipped).
"""

from __future__ import annotations

from email.parser import BytesParser
from email.policy import HTTP
from typing import Iterable, Mapping, Sequence, Union
from urllib.parse import parse_qs, urlsplit

from ...observability import log_debug

PathParams = Union[Mapping[str, str], Sequence[tuple[str, str]]]
HeaderValues = Mapping[str, Union[str, Sequence[str]]]


class Request:
    """Request context built from raw values.

    Examples
    --------
    >>> request = Request("GET", url="/users?page=2&tag=a&tag=b", headers={"X-Trace": "t1"})
    >>> request.query_params()["tag"], request.header("x-trace")
    (['a', 'b'], 't1')
    """

    def __init__(
        self,
        method: str = "GET",
        *,
        url: str = "/",
        path_params: PathParams = (),
        headers: HeaderValues | None = None,
        body: bytes | str = b"",
        content_type: str | None = None,
        content_length: int | None = None,
        form: Mapping[str, Sequence[str]] | None = None,
    ) -> None:
        self._method = method.upper()
        self._url = url
        pairs = list(path_params.items()) if isinstance(path_params, Mapping) else list(path_params)
        self._param_names = [name for name, _ in pairs]
        self._param_values = [value for _, value in pairs]
        self._headers = _normalise_headers(headers or {})
        self._body = body.encode("utf-8") if isinstance(body, str) else bytes(body)
        self._content_type = content_type if content_type is not None else self.header("Content-Type")
        self._content_length = content_length if content_length is not None else len(self._body)
        self._form = {key: list(values) for key, values in form.items()} if form is not None else None

    @property
    def method(self) -> str:
        return self._method

    @property
    def url(self) -> str:
        return self._url

    @property
    def content_type(self) -> str:
        return self._content_type

    @property
    def content_length(self) -> int:
        return self._content_length

    def param_names(self) -> list[str]:
        return list(self._param_names)

    def param_values(self) -> list[str]:
        return list(self._param_values)

    def query_params(self) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self._url).query, keep_blank_values=True)

    def header(self, name: str) -> str:
        values = self._headers.get(name.lower())
        return values[0] if values else ""

    def headers(self, name: str) -> list[str]:
        """Return every value sent for header *name*."""

        return list(self._headers.get(name.lower(), []))

    def form_params(self) -> dict[str, list[str]]:
        if self._form is not None:
            return {key: list(values) for key, values in self._form.items()}
        if self._content_type.startswith("application/x-www-form-urlencoded"):
            return parse_qs(self._body.decode("utf-8"), keep_blank_values=True)
        if self._content_type.startswith("multipart/form-data"):
            return parse_multipart(self._body, self._content_type)
        return {}

    def body(self) -> bytes:
        return self._body

    def __repr__(self) -> str:
        return f"Request(method={self._method!r}, url={self._url!r})"


def parse_multipart(payload: bytes, content_type: str) -> dict[str, list[str]]:
    """Extract the non-file fields of a ``multipart/form-data`` payload.

    Examples
    --------
    >>> body = (
    ...     b"--xx\\r\\nContent-Disposition: form-data; name=\\"name\\"\\r\\n\\r\\nAda\\r\\n"
    ...     b"--xx--\\r\\n"
    ... )
    >>> parse_multipart(body, "multipart/form-data; boundary=xx")
    {'name': ['Ada']}
    """

    head = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n".encode("utf-8")
    message = BytesParser(policy=HTTP).parsebytes(head + payload)
    fields: dict[str, list[str]] = {}
    if not message.is_multipart():
        log_debug("multipart_unparsed", section="form", param=None, content_type=content_type)
        return fields
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not name or part.get_filename():
            continue
        content = part.get_payload(decode=True) or b""
        charset = part.get_content_charset() or "utf-8"
        fields.setdefault(str(name), []).append(content.decode(charset))
    return fields


def _normalise_headers(headers: HeaderValues) -> dict[str, list[str]]:
    normalised: dict[str, list[str]] = {}
    for name, value in headers.items():
        values: Iterable[str] = [value] if isinstance(value, str) else value
        normalised.setdefault(name.lower(), []).extend(values)
    return normalised
