"""Payload trees: bound-field discovery and lookup by record format."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Callable, Dict, FrozenSet, Iterable, Iterator, List, Optional, Set, Union

from .errors import DuplicateRecordFormatError, InvalidModelError, MissingPayloadError

JsonScalar = Union[None, bool, int, float, str]
JsonValue = Union[JsonScalar, List["JsonValue"], Dict[str, "JsonValue"]]

FIELD_NAME_KEY = "fieldName"


def walk_json(value: JsonValue, visit: Callable[[Optional[str], JsonValue], None], key: Optional[str] = None) -> None:
    """Call ``visit(key, node)`` for every node of a JSON tree, depth first."""
    visit(key, value)
    if isinstance(value, dict):
        for k, v in value.items():
            walk_json(v, visit, k)
    elif isinstance(value, list):
        for item in value:
            walk_json(item, visit, None)


def bound_fields(payload: JsonValue) -> FrozenSet[str]:
    """Collect the upper-cased ``fieldName`` references anywhere in a payload."""
    found: Set[str] = set()

    def _visit(key: Optional[str], node: JsonValue) -> None:
        if key == FIELD_NAME_KEY and isinstance(node, str) and node.strip():
            found.add(node.strip().upper())

    walk_json(payload, _visit)
    return frozenset(found)


def record_format_name(payload: JsonValue) -> str:
    """Return the upper-cased record format a payload belongs to."""
    screen = payload.get("screen") if isinstance(payload, dict) else None
    name = screen.get("record format name") if isinstance(screen, dict) else None
    if not isinstance(name, str) or not name.strip():
        raise InvalidModelError('payload has no "screen"."record format name"')
    return name.strip().upper()


class PayloadSet(Mapping):
    """Payloads keyed by upper-cased record-format name; names must be unique."""

    def __init__(self, payloads: Iterable[JsonValue]) -> None:
        self._by_name: Dict[str, JsonValue] = {}
        for payload in payloads:
            name = record_format_name(payload)
            if name in self._by_name:
                raise DuplicateRecordFormatError(
                    f"record format {name} has more than one payload", subject=name
                )
            self._by_name[name] = payload

    def __getitem__(self, name: str) -> JsonValue:
        return self._by_name[name.upper()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._by_name)

    def __len__(self) -> int:
        return len(self._by_name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._by_name

    def require(self, name: str) -> JsonValue:
        """Fetch the payload for a record format or fail with its name."""
        if name not in self:
            raise MissingPayloadError(f"no payload for record format {name}", subject=name)
        return self[name]
