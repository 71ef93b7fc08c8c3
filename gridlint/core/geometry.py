"""
gridlint/core/geometry.py

Address / Range / Rectangle model.

  - Address:   sheet name + 1-based row/column, as shown by the spreadsheet
  - Range:     two Addresses on one sheet (host-facing, A1 / R1C1 text)
  - Rectangle: two zero-based Vectors (engine-facing, no sheet, no text)

Address.vector() and Range.rectangle() translate between the two frames.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from openpyxl.utils.cell import column_index_from_string, get_column_letter

from gridlint.core.errors import AnalysisNotRunnableError, InvalidRectangleError
from gridlint.core.vectors import Vector

_SHEET_PREFIX = r"(?:'(?P<qs>(?:[^']|'')+)'|(?P<us>[^'!]+))!"
_A1_CELL = r"\$?(?P<col>[A-Za-z]{1,3})\$?(?P<row>\d{1,7})"
_R1C1_CELL = r"[Rr](?P<row>\d{1,7})[Cc](?P<col>\d{1,5})"

_RE_A1 = re.compile(rf"^(?:{_SHEET_PREFIX})?{_A1_CELL}$")
_RE_R1C1 = re.compile(rf"^(?:{_SHEET_PREFIX})?{_R1C1_CELL}$")
_RE_PLAIN_SHEET = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")


def _sheet_prefix(sheet: str) -> str:
    if not sheet:
        return ""
    if _RE_PLAIN_SHEET.match(sheet):
        return f"{sheet}!"
    return "'" + sheet.replace("'", "''") + "'!"


def _split_sheet(text: str) -> Tuple[Optional[str], str]:
    s = str(text or "").strip()
    if "!" not in s:
        return None, s
    sheet, _sep, rest = s.rpartition("!")
    if sheet.startswith("'") and sheet.endswith("'"):
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, rest


@dataclass(frozen=True)
class Address:
    sheet: str
    row: int
    column: int

    def __post_init__(self) -> None:
        if self.row < 1 or self.column < 1:
            raise ValueError(f"Address row/column are 1-based: row={self.row} column={self.column}")

    def vector(self) -> Vector:
        return Vector(self.column - 1, self.row - 1, 0)

    @staticmethod
    def from_vector(sheet: str, v: Vector) -> "Address":
        return Address(sheet, v.y + 1, v.x + 1)

    def to_a1(self) -> str:
        return f"{get_column_letter(self.column)}{self.row}"

    def to_a1_ref(self) -> str:
        return _sheet_prefix(self.sheet) + self.to_a1()

    def to_r1c1_ref(self) -> str:
        return f"{_sheet_prefix(self.sheet)}R{self.row}C{self.column}"

    @staticmethod
    def parse(text: str, default_sheet: str = "") -> "Address":
        """Parse "A1", "$B$3", "Sheet1!C4", "'My Sheet'!R4C3" style text."""
        s = str(text or "").strip()
        m = _RE_R1C1.match(s)
        if m:
            sheet = m.group("qs") or m.group("us")
            if m.group("qs"):
                sheet = sheet.replace("''", "'")
            return Address(sheet if sheet is not None else default_sheet, int(m.group("row")), int(m.group("col")))
        m = _RE_A1.match(s)
        if m:
            sheet = m.group("qs") or m.group("us")
            if m.group("qs"):
                sheet = sheet.replace("''", "'")
            return Address(
                sheet if sheet is not None else default_sheet,
                int(m.group("row")),
                column_index_from_string(m.group("col").upper()),
            )
        raise ValueError(f"Not a cell address: {text!r}")

    def __str__(self) -> str:
        return self.to_a1_ref()


@dataclass(frozen=True)
class Rectangle:
    upper_left: Vector
    bottom_right: Vector

    def __post_init__(self) -> None:
        ul, br = self.upper_left, self.bottom_right
        if ul.x > br.x or ul.y > br.y:
            raise InvalidRectangleError(f"upper-left {ul} is not above/left of bottom-right {br}")

    @staticmethod
    def single(v: Vector) -> "Rectangle":
        return Rectangle(v, v)

    @property
    def width(self) -> int:
        return self.bottom_right.x - self.upper_left.x + 1

    @property
    def height(self) -> int:
        return self.bottom_right.y - self.upper_left.y + 1

    def size(self) -> int:
        return self.width * self.height

    def contains(self, v: Vector) -> bool:
        ul, br = self.upper_left, self.bottom_right
        return ul.x <= v.x <= br.x and ul.y <= v.y <= br.y

    def contains_rect(self, other: "Rectangle") -> bool:
        return self.contains(other.upper_left) and self.contains(other.bottom_right)

    def cells(self) -> List[Vector]:
        """Every cell, row-major."""
        ul, br = self.upper_left, self.bottom_right
        return [Vector(x, y, ul.z) for y in range(ul.y, br.y + 1) for x in range(ul.x, br.x + 1)]

    def _overlap_span(self, other: "Rectangle") -> Tuple[int, int]:
        w = min(self.bottom_right.x, other.bottom_right.x) - max(self.upper_left.x, other.upper_left.x) + 1
        h = min(self.bottom_right.y, other.bottom_right.y) - max(self.upper_left.y, other.upper_left.y) + 1
        return w, h

    def overlaps(self, other: "Rectangle") -> bool:
        w, h = self._overlap_span(other)
        return w > 0 and h > 0

    def intersection_size(self, other: "Rectangle") -> int:
        w, h = self._overlap_span(other)
        return w * h if w > 0 and h > 0 else 0

    def is_adjacent(self, other: "Rectangle") -> bool:
        """Disjoint and touching along an edge segment of positive length (corners don't count)."""
        w, h = self._overlap_span(other)
        return (w > 0 and h == 0) or (h > 0 and w == 0)

    def union(self, other: "Rectangle") -> "Rectangle":
        """Bounding rectangle of both."""
        return Rectangle(
            Vector(min(self.upper_left.x, other.upper_left.x), min(self.upper_left.y, other.upper_left.y), self.upper_left.z),
            Vector(max(self.bottom_right.x, other.bottom_right.x), max(self.bottom_right.y, other.bottom_right.y), self.upper_left.z),
        )

    def union_is_rectangle(self, other: "Rectangle") -> bool:
        return self.union(other).size() == self.size() + other.size() - self.intersection_size(other)

    def is_mergeable_with(self, other: "Rectangle") -> bool:
        # fingerprint equality is the caller's concern
        return (self.overlaps(other) or self.is_adjacent(other)) and self.union_is_rectangle(other)

    def to_a1(self) -> str:
        ul = Address.from_vector("", self.upper_left).to_a1()
        br = Address.from_vector("", self.bottom_right).to_a1()
        return ul if ul == br else f"{ul}:{br}"

    def __str__(self) -> str:
        return f"{self.upper_left}:{self.bottom_right}"


@dataclass(frozen=True)
class Range:
    upper_left: Address
    bottom_right: Address

    def __post_init__(self) -> None:
        if self.upper_left.sheet != self.bottom_right.sheet:
            raise AnalysisNotRunnableError(
                f"Range corners on different sheets: {self.upper_left.sheet!r} / {self.bottom_right.sheet!r}"
            )
        if self.upper_left.row > self.bottom_right.row or self.upper_left.column > self.bottom_right.column:
            raise AnalysisNotRunnableError(f"Empty range: {self.upper_left} .. {self.bottom_right}")

    @staticmethod
    def from_bounds(sheet: str, top: int, left: int, bottom: int, right: int) -> "Range":
        return Range(Address(sheet, top, left), Address(sheet, bottom, right))

    @staticmethod
    def from_rectangle(sheet: str, rect: Rectangle) -> "Range":
        return Range(Address.from_vector(sheet, rect.upper_left), Address.from_vector(sheet, rect.bottom_right))

    @staticmethod
    def parse(text: str, default_sheet: str = "") -> "Range":
        """Parse "A1:C5", "Sheet1!A1:C5", "R1C1:R5C3" or a single cell."""
        sheet, rest = _split_sheet(text)
        if not rest:
            raise AnalysisNotRunnableError(f"Empty range text: {text!r}")
        sheet = sheet if sheet is not None else default_sheet
        start, _sep, end = rest.partition(":")
        a = Address.parse(start, default_sheet=sheet)
        b = Address.parse(end or start, default_sheet=sheet)
        return Range.from_bounds(
            sheet,
            min(a.row, b.row),
            min(a.column, b.column),
            max(a.row, b.row),
            max(a.column, b.column),
        )

    @property
    def sheet(self) -> str:
        return self.upper_left.sheet

    @property
    def top(self) -> int:
        return self.upper_left.row

    @property
    def left(self) -> int:
        return self.upper_left.column

    @property
    def bottom(self) -> int:
        return self.bottom_right.row

    @property
    def right(self) -> int:
        return self.bottom_right.column

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def cell_count(self) -> int:
        return self.width * self.height

    def contains(self, addr: Address) -> bool:
        return (
            addr.sheet == self.sheet
            and self.top <= addr.row <= self.bottom
            and self.left <= addr.column <= self.right
        )

    def rectangle(self) -> Rectangle:
        return Rectangle(self.upper_left.vector(), self.bottom_right.vector())

    def cells(self) -> List[Vector]:
        """Vectors of every cell in the range, row-major."""
        return self.rectangle().cells()

    def expand(self) -> "Range":
        """One more cell on every side; never past row/column 1."""
        return Range.from_bounds(
            self.sheet,
            max(1, self.top - 1),
            max(1, self.left - 1),
            self.bottom + 1,
            self.right + 1,
        )

    def to_a1(self) -> str:
        return f"{self.upper_left.to_a1()}:{self.bottom_right.to_a1()}"

    def to_a1_ref(self) -> str:
        return _sheet_prefix(self.sheet) + self.to_a1()

    def to_r1c1_ref(self) -> str:
        return f"{_sheet_prefix(self.sheet)}R{self.top}C{self.left}:R{self.bottom}C{self.right}"

    def __str__(self) -> str:
        return self.to_a1_ref()
