from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from request_binder.domain.presence import PresenceTable

KEYS = st.text(alphabet="abcxyz", min_size=1, max_size=4)
PAYLOADS = st.recursive(
    st.dictionaries(KEYS, st.one_of(st.none(), st.integers(), st.text(max_size=3)), max_size=3),
    lambda children: st.dictionaries(KEYS, children, max_size=3),
    max_leaves=10,
)


def _paths(payload: dict, prefix: str = "") -> list[str]:
    paths = []
    for key, value in payload.items():
        dotted = f"{prefix}{key}"
        paths.append(dotted)
        if isinstance(value, dict):
            paths.extend(_paths(value, dotted + "."))
    return paths


def test_nested_keys_are_reachable() -> None:
    table = PresenceTable.from_payload({"user": {"name": "Ada", "address": {"city": None}}, "active": False})

    assert table.exists("user")
    assert table.exists("user.name")
    assert table.exists("user.address.city")
    assert table.exists("active")
    assert not table.exists("user.age")
    assert not table.exists("user.name.first")
    assert not table.exists("missing")


def test_null_and_zero_values_still_count_as_sent() -> None:
    table = PresenceTable.from_payload({"count": 0, "name": "", "note": None})

    assert all(table.exists(key) for key in ("count", "name", "note"))


def test_arrays_are_terminal() -> None:
    table = PresenceTable.from_payload({"items": [{"id": 1}]})

    assert table.exists("items")
    assert not table.exists("items.id")
    assert table["items"] == PresenceTable()


def test_empty_segments_are_looked_up_as_empty_keys() -> None:
    table = PresenceTable.from_payload({"a": {"b": 1}, "c": {"": 2}})

    assert not table.exists("a.")
    assert not table.exists(".a")
    assert table.exists("c.")


def test_empty_table_contains_nothing() -> None:
    assert not PresenceTable().exists("anything")


@given(PAYLOADS)
def test_every_sent_path_exists(payload: dict) -> None:
    table = PresenceTable.from_payload(payload)

    for path in _paths(payload):
        assert table.exists(path)
        assert not table.exists(path + ".zz_not_sent")
