"""Source binders exercised one section at a time."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pytest

from request_binder.adapters.decoders.structured import DEFAULT_DECODERS, JSONBodyDecoder, XMLBodyDecoder
from request_binder.adapters.request.default import Request
from request_binder.application.sources import (
    bind_body,
    bind_form,
    bind_header,
    bind_path,
    bind_query,
    merge_values,
    select_decoder,
)
from request_binder.application.flatten import flatten
from request_binder.domain.errors import (
    CoercionError,
    DecodeError,
    InvalidTypeAtLocation,
    MissingParam,
    NotSettable,
    UnsupportedMethod,
)
from request_binder.domain.kinds import Int8
from request_binder.domain.presence import PresenceTable
from request_binder.domain.schema import describe, param


@dataclass
class PathSection:
    user_id: int = param("id", default=0)
    _tenant: str = param("tenant", default="")


@dataclass
class QuerySection:
    page: Int8 = 0
    tags: list[str] = field(default_factory=list)
    exact: Optional[bool] = None


@dataclass
class HeaderSection:
    request_id: str = param("X-Request-Id", default="")
    retries: int = param("X-Retries", default=3)
    _token: str = param("Authorization", default="")


@dataclass
class FormSection:
    name: str = ""
    tags: list[str] = field(default_factory=list)


@dataclass
class Payload:
    name: str = ""
    size: int = 0


@dataclass
class WithBody:
    body: Payload = field(default_factory=Payload)
    body_sent_fields: Optional[PresenceTable] = None


@dataclass
class WithPointerBody:
    body: Optional[Payload] = None
    body_sent_fields: PresenceTable = field(default_factory=PresenceTable)


@dataclass
class WithListBody:
    body: list[int] = field(default_factory=list)
    body_sent_fields: Optional[PresenceTable] = None


@dataclass
class WithBadSentFields:
    body: Payload = field(default_factory=Payload)
    body_sent_fields: dict = field(default_factory=dict)


def _json(method: str, payload: str) -> Request:
    return Request(method, body=payload, content_type="application/json")


def test_bind_path_sets_matching_slots() -> None:
    section = PathSection()
    bind_path(Request(path_params={"id": "42"}), section)

    assert section.user_id == 42


def test_bind_path_requires_a_slot_for_every_param() -> None:
    with pytest.raises(MissingParam) as info:
        bind_path(Request(path_params=[("id", "1"), ("slug", "x")]), PathSection())
    assert (info.value.location, info.value.param) == ("path", "slug")


def test_bind_path_rejects_unexported_slot() -> None:
    with pytest.raises(NotSettable):
        bind_path(Request(path_params={"tenant": "acme"}), PathSection())


def test_bind_path_reports_coercion_errors() -> None:
    with pytest.raises(CoercionError) as info:
        bind_path(Request(path_params={"id": "abc"}), PathSection())
    assert (info.value.location, info.value.param) == ("path", "id")


@pytest.mark.parametrize("method", ["GET", "DELETE", "HEAD"])
def test_bind_query_allowed_methods(method: str) -> None:
    section = QuerySection()
    bind_query(Request(method, url="/?page=3&tags=a&tags=b&exact=t&unknown=1"), section)

    assert (section.page, section.tags, section.exact) == (3, ["a", "b"], True)


@pytest.mark.parametrize("method", ["POST", "PUT", "PATCH"])
def test_bind_query_rejects_other_methods(method: str) -> None:
    with pytest.raises(UnsupportedMethod) as info:
        bind_query(Request(method, url="/?page=1"), QuerySection())
    assert info.value.method == method
    assert info.value.location == "query"


def test_bind_query_width_overflow() -> None:
    with pytest.raises(CoercionError) as info:
        bind_query(Request(url="/?page=200"), QuerySection())
    assert info.value.target == "int8"


def test_bind_header_matches_case_insensitively() -> None:
    section = HeaderSection()
    bind_header(Request(headers={"x-request-id": "abc", "X-RETRIES": "5"}), section)

    assert (section.request_id, section.retries) == ("abc", 5)


def test_bind_header_skips_empty_values() -> None:
    section = HeaderSection()
    bind_header(Request(headers={"X-Retries": ""}), section)

    assert section.retries == 3


def test_bind_header_rejects_unexported_slot_when_header_present() -> None:
    bind_header(Request(), HeaderSection())
    with pytest.raises(NotSettable) as info:
        bind_header(Request(headers={"Authorization": "Bearer x"}), HeaderSection())
    assert info.value.param == "_token"


def test_bind_form_urlencoded() -> None:
    section = FormSection()
    request = Request("POST", body="name=Ada&tags=x&tags=y", content_type="application/x-www-form-urlencoded")
    bind_form(request, section)

    assert (section.name, section.tags) == ("Ada", ["x", "y"])


def test_bind_form_ignores_query_string() -> None:
    section = FormSection()
    request = Request(
        "POST", url="/?name=query", body="tags=x", content_type="application/x-www-form-urlencoded"
    )
    bind_form(request, section)

    assert (section.name, section.tags) == ("", ["x"])


def test_bind_form_rejects_get() -> None:
    with pytest.raises(UnsupportedMethod) as info:
        bind_form(Request("GET", body="name=x", content_type="application/x-www-form-urlencoded"), FormSection())
    assert info.value.location == "form"


def test_bind_form_skips_other_content_types_and_empty_bodies() -> None:
    section = FormSection()
    bind_form(_json("POST", '{"name": "x"}'), section)
    bind_form(Request("POST", content_type="application/x-www-form-urlencoded"), section)

    assert section == FormSection()


def test_bind_body_fills_record_and_sent_fields() -> None:
    record = WithBody()
    spec = describe(WithBody).field("body")
    assert spec is not None
    bind_body(_json("PATCH", '{"name": "Ada"}'), record, spec, DEFAULT_DECODERS)

    assert record.body == Payload(name="Ada", size=0)
    assert record.body_sent_fields is not None
    assert record.body_sent_fields.exists("name")
    assert not record.body_sent_fields.exists("size")


def test_bind_body_allocates_pointer_record() -> None:
    record = WithPointerBody()
    spec = describe(WithPointerBody).field("body")
    assert spec is not None
    bind_body(_json("POST", '{"size": 2}'), record, spec, DEFAULT_DECODERS)

    assert record.body == Payload(size=2)
    assert record.body_sent_fields.exists("size")


def test_bind_body_list_leaves_sent_fields_untouched() -> None:
    record = WithListBody()
    spec = describe(WithListBody).field("body")
    assert spec is not None
    bind_body(_json("PUT", "[1, 2]"), record, spec, DEFAULT_DECODERS)

    assert record.body == [1, 2]
    assert record.body_sent_fields is None


def test_bind_body_rejects_wrong_sent_fields_type() -> None:
    spec = describe(WithBadSentFields).field("body")
    assert spec is not None
    with pytest.raises(InvalidTypeAtLocation) as info:
        bind_body(_json("POST", "{}"), WithBadSentFields(), spec, DEFAULT_DECODERS)
    assert info.value.location == "body_sent_fields"


def test_bind_body_rejects_get_and_ignores_empty_or_unknown_payloads() -> None:
    spec = describe(WithBody).field("body")
    assert spec is not None
    with pytest.raises(UnsupportedMethod):
        bind_body(_json("GET", "{}"), WithBody(), spec, DEFAULT_DECODERS)

    record = WithBody()
    bind_body(Request("POST", content_type="application/json"), record, spec, DEFAULT_DECODERS)
    bind_body(Request("POST", body="x", content_type="text/plain"), record, spec, DEFAULT_DECODERS)
    assert record == WithBody()


def test_bind_body_surfaces_decoder_errors() -> None:
    spec = describe(WithBody).field("body")
    assert spec is not None
    with pytest.raises(DecodeError, match="invalid json body"):
        bind_body(_json("POST", "{"), WithBody(), spec, DEFAULT_DECODERS)


def test_merge_values_takes_first_value_for_scalars() -> None:
    section = QuerySection()
    merge_values(flatten(section, location="query"), {"page": ["1", "2"], "tags": []}, location="query")

    assert (section.page, section.tags) == (1, [])


def test_select_decoder_matches_by_prefix() -> None:
    assert isinstance(select_decoder(DEFAULT_DECODERS, "application/json; charset=utf-8"), JSONBodyDecoder)
    assert isinstance(select_decoder(DEFAULT_DECODERS, "text/xml"), XMLBodyDecoder)
    assert select_decoder(DEFAULT_DECODERS, "text/plain") is None
