"""
gridlint/core/vectors.py

Spatial vectors and the vector-keyed ordered dictionary used as the uniform
container for per-cell data.

A Vector is used both as a cell position and as a relative offset:
  - position: zero-based (x=column, y=row, z=sheet ordinal, 0 = current sheet)
  - offset:   signed difference between a referenced cell and the formula cell

Dictionary keys are the canonical string form of a Vector ("x,y,z").
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar

from gridlint.core.errors import AbsentKeyError

V = TypeVar("V")


@dataclass(frozen=True, order=True)
class Vector:
    x: int
    y: int
    z: int = 0

    def as_key(self) -> str:
        return f"{self.x},{self.y},{self.z}"

    @staticmethod
    def from_key(key: str) -> "Vector":
        parts = str(key).split(",")
        if len(parts) != 3:
            raise ValueError(f"Not a vector key: {key!r}")
        x, y, z = (int(p) for p in parts)
        return Vector(x, y, z)

    def __add__(self, other: "Vector") -> "Vector":
        return Vector(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: "Vector") -> "Vector":
        return Vector(self.x - other.x, self.y - other.y, self.z - other.z)

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"


class Dictionary(Generic[V]):
    """
    Insertion-ordered mapping keyed by Vector keys.

    Lookups of a missing key raise AbsentKeyError instead of defaulting;
    callers filter to the keys they know are present.
    """

    def __init__(self, items: Optional[Dict[str, V]] = None) -> None:
        self._d: Dict[str, V] = dict(items or {})

    @staticmethod
    def _key(k) -> str:
        return k.as_key() if isinstance(k, Vector) else str(k)

    def get(self, key) -> V:
        k = self._key(key)
        try:
            return self._d[k]
        except KeyError:
            raise AbsentKeyError(k) from None

    def put(self, key, value: V) -> None:
        self._d[self._key(key)] = value

    def contains(self, key) -> bool:
        return self._key(key) in self._d

    def keys(self) -> List[str]:
        return list(self._d.keys())

    def values(self) -> List[V]:
        return list(self._d.values())

    def items(self) -> List[Tuple[str, V]]:
        return list(self._d.items())

    def vectors(self) -> List[Vector]:
        return [Vector.from_key(k) for k in self._d]

    def key_filter(self, pred: Callable[[str], bool]) -> "Dictionary[V]":
        return Dictionary({k: v for k, v in self._d.items() if pred(k)})

    def merge(self, other: "Dictionary[V]") -> "Dictionary[V]":
        """New dictionary with both sides' entries; `other` wins on collisions."""
        out = dict(self._d)
        out.update(other._d)
        return Dictionary(out)

    def size(self) -> int:
        return len(self._d)

    def __len__(self) -> int:
        return len(self._d)

    def __contains__(self, key) -> bool:
        return self.contains(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self._d)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dictionary):
            return NotImplemented
        return list(self._d.items()) == list(other._d.items())

    def __repr__(self) -> str:
        return f"Dictionary({self._d!r})"
