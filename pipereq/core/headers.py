"""Ordered, case-insensitive header multi-map."""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Tuple, Union

HeaderInput = Union["Headers", Mapping[str, Any], Iterable[Tuple[str, Any]], None]


class Headers:
    """Immutable list of ``(name, value)`` pairs with case-insensitive lookup.

    Names keep the casing they were given. Values may be any object until the
    ``encode_headers`` step turns them into wire strings. Every mutator returns
    a new instance.
    """

    __slots__ = ("_items",)

    def __init__(self, items: HeaderInput = None) -> None:
        if items is None:
            pairs: tuple[tuple[str, Any], ...] = ()
        elif isinstance(items, Headers):
            pairs = items._items
        elif isinstance(items, Mapping):
            pairs = tuple((str(k), v) for k, v in items.items())
        else:
            pairs = tuple((str(k), v) for k, v in items)
        self._items = pairs

    def get(self, name: str, default: Any = None) -> Any:
        key = name.lower()
        for item_name, value in self._items:
            if item_name.lower() == key:
                return value
        return default

    def get_all(self, name: str) -> list[Any]:
        key = name.lower()
        return [value for item_name, value in self._items if item_name.lower() == key]

    def set(self, name: str, value: Any) -> "Headers":
        """Replace every value of ``name`` with a single one, keeping its first position."""
        key = name.lower()
        result: list[tuple[str, Any]] = []
        placed = False
        for item_name, item_value in self._items:
            if item_name.lower() == key:
                if not placed:
                    result.append((name, value))
                    placed = True
                continue
            result.append((item_name, item_value))
        if not placed:
            result.append((name, value))
        return Headers(result)

    def setdefault(self, name: str, value: Any) -> "Headers":
        if name in self:
            return self
        return self.add(name, value)

    def add(self, name: str, value: Any) -> "Headers":
        return Headers(self._items + ((name, value),))

    def remove(self, name: str) -> "Headers":
        key = name.lower()
        return Headers([(n, v) for n, v in self._items if n.lower() != key])

    def update(self, other: HeaderInput) -> "Headers":
        result = self
        for name, value in Headers(other).items():
            result = result.set(name, value)
        return result

    def items(self) -> list[tuple[str, Any]]:
        return list(self._items)

    def keys(self) -> list[str]:
        return [name for name, _ in self._items]

    def as_dict(self) -> dict[str, str]:
        """Flatten to a plain dict, joining repeated names with ``", "``."""
        merged: dict[str, str] = {}
        lookup: dict[str, str] = {}
        for name, value in self._items:
            key = name.lower()
            if key in lookup:
                merged[lookup[key]] = f"{merged[lookup[key]]}, {value}"
            else:
                lookup[key] = name
                merged[name] = str(value)
        return merged

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        key = name.lower()
        return any(item_name.lower() == key for item_name, _ in self._items)

    def __getitem__(self, name: str) -> Any:
        marker = object()
        value = self.get(name, marker)
        if value is marker:
            raise KeyError(name)
        return value

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._normalized() == other._normalized()
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({list(self._items)!r})"

    def _normalized(self) -> tuple[tuple[str, Any], ...]:
        return tuple((name.lower(), value) for name, value in self._items)


__all__ = ["Headers", "HeaderInput"]
