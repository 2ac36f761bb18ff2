"""Presence table recording which keys a structured payload actually carried.

Purpose
-------
Answer "was ``a.b.c`` sent?" independently of the destination record: a body
field holding its zero value is indistinguishable from an omitted one, which
matters for partial updates (``PATCH``).

Contents
--------
* :class:`PresenceTable` – recursive ``dict`` of key → sub-table with
  :meth:`PresenceTable.exists` and :meth:`PresenceTable.from_payload`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class PresenceTable(dict[str, "PresenceTable"]):
    """Recursive mapping of payload keys; leaves are empty tables.

    Examples
    --------
    >>> table = PresenceTable.from_payload({"user": {"name": "Ada"}, "tags": [1, 2]})
    >>> table.exists("user.name"), table.exists("user.age"), table.exists("tags")
    (True, False, True)
    """

    def exists(self, key: str) -> bool:
        """Return ``True`` when every segment of dotted *key* was present.

        Empty segments are looked up as the key ``""``, so ``"a."`` only
        exists when ``a`` carried an empty-named member.
        """

        table = self
        for segment in key.split("."):
            if segment not in table:
                return False
            table = table[segment]
        return True

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> PresenceTable:
        """Build the table from a decoded object graph.

        Only mappings are descended into; every other value (scalars, arrays,
        ``null``) is a terminal key.
        """

        table = cls()
        for key, value in payload.items():
            if isinstance(value, Mapping):
                table[str(key)] = cls.from_payload(value)
            else:
                table[str(key)] = cls()
        return table
