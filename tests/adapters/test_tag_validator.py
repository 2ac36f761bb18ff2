from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pytest

from request_binder.adapters.validators.tags import Rule, TagValidator, is_zero, parse_rules
from request_binder.domain.errors import ValidationError
from request_binder.domain.schema import param


@dataclass
class Item:
    sku: str = param(default="", validate="required")
    quantity: int = param(default=1, validate="gte=1,lte=10")


@dataclass
class Header:
    name: str = param("X-Name", default="", validate="required,min=3,max=8")
    mode: str = param(default="fast", validate="oneof=fast slow")
    note: str = param(default="", validate="omitempty,len=4")


@dataclass
class Body:
    items: list[Item] = field(default_factory=list)
    parent: Optional[Item] = None
    ratio: float = param(default=0.5, validate="gt=0,lt=1")
    flag: bool = param(default=True, validate="eq=true")
    code: str = param(default="ok", validate="ne=bad")


@dataclass
class Order:
    header: Header = field(default_factory=lambda: Header(name="Ada"))
    body: Body = field(default_factory=Body)


def test_parse_rules() -> None:
    assert parse_rules("required, min=3") == (Rule("required"), Rule("min", "3"))
    assert parse_rules("") == ()


def test_unknown_rule_is_a_programming_error() -> None:
    with pytest.raises(RuntimeError, match="undefined validation rule 'bogus'"):
        parse_rules("required,bogus")


def test_numeric_rule_needs_numeric_parameter() -> None:
    with pytest.raises(RuntimeError, match="needs a numeric parameter"):
        parse_rules("min=abc")


def test_valid_record_passes() -> None:
    TagValidator().validate(Order())


def test_violations_are_collected_with_namespaces() -> None:
    order = Order(
        header=Header(name="Al", mode="medium", note="abc"),
        body=Body(items=[Item(sku="a"), Item(sku="", quantity=11)], ratio=1.0, flag=False, code="bad"),
    )

    with pytest.raises(ValidationError) as info:
        TagValidator().validate(order)

    found = [(violation.namespace, violation.tag) for violation in info.value.violations]
    assert found == [
        ("Order.header.name", "min"),
        ("Order.header.mode", "oneof"),
        ("Order.header.note", "len"),
        ("Order.body.items[1].sku", "required"),
        ("Order.body.items[1].quantity", "lte"),
        ("Order.body.ratio", "lt"),
        ("Order.body.flag", "eq"),
        ("Order.body.code", "ne"),
    ]
    assert info.value.violations[0].param == "3"
    assert info.value.violations[0].value == "Al"


def test_optional_records_are_walked_when_present() -> None:
    TagValidator().validate(Body(parent=None))
    with pytest.raises(ValidationError) as info:
        TagValidator().validate(Body(parent=Item(sku="")))
    assert info.value.violations[0].namespace == "Body.parent.sku"


def test_required_fails_on_zero_values() -> None:
    with pytest.raises(ValidationError) as info:
        TagValidator().validate(Header())
    assert str(info.value) == "Key: 'Header.name' Error:Field validation for 'name' failed on the 'required' tag"


def test_omitempty_skips_remaining_rules() -> None:
    TagValidator().validate(Header(name="Ada", note=""))


def test_custom_metadata_key() -> None:
    @dataclass
    class Custom:
        value: str = field(default="", metadata={"check": "required"})

    TagValidator().validate(Custom())
    with pytest.raises(ValidationError):
        TagValidator(tag="check").validate(Custom())


@pytest.mark.parametrize("value", [None, False, 0, 0.0, "", [], {}, b""])
def test_is_zero(value: object) -> None:
    assert is_zero(value)


@pytest.mark.parametrize("value", [True, 1, "x", [0], Item()])
def test_is_not_zero(value: object) -> None:
    assert not is_zero(value)


@dataclass
class Bounds:
    tags: list[str] = param(default_factory=list, validate="min=1,max=2")
    code: bytes = param(default=b"ab", validate="len=2")
    score: int = param(default=5, validate="eq=5")
    labels: dict = param(default_factory=lambda: {"a": 1}, validate="gt=0,lt=2")


def test_length_bounds_apply_to_collections_and_bytes() -> None:
    TagValidator().validate(Bounds(tags=["x"]))
    with pytest.raises(ValidationError) as info:
        TagValidator().validate(Bounds(tags=["x", "y", "z"], code=b"abc", score=4, labels={}))

    found = [(violation.field, violation.tag) for violation in info.value.violations]
    assert found == [("tags", "max"), ("code", "len"), ("score", "eq"), ("labels", "gt")]


def test_violations_carry_pydantic_messages() -> None:
    with pytest.raises(ValidationError) as info:
        TagValidator().validate(Header(name="Al"))

    detail = info.value.violations[0].detail
    assert "at least 3" in detail


def test_numeric_bounds_compare_by_value() -> None:
    TagValidator().validate(Item(sku="a", quantity=10))
    with pytest.raises(ValidationError) as info:
        TagValidator().validate(Item(sku="a", quantity=0))
    assert info.value.violations[0].tag == "gte"
    assert "greater than or equal to" in info.value.violations[0].detail


def test_oneof_needs_options() -> None:
    with pytest.raises(RuntimeError, match="at least one option"):
        parse_rules("oneof=")


def test_uncomparable_values_are_a_programming_error() -> None:
    @dataclass
    class Odd:
        parent: Item = param(default_factory=Item, validate="min=1")

    with pytest.raises(RuntimeError, match="cannot compare value of type Item"):
        TagValidator().validate(Odd())
