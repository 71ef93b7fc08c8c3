"""Tests for Address, Rectangle and Range."""

import pytest

from gridlint.core.errors import AnalysisNotRunnableError, InvalidRectangleError
from gridlint.core.geometry import Address, Range, Rectangle
from gridlint.core.vectors import Vector


def rect(x0, y0, x1, y1) -> Rectangle:
    return Rectangle(Vector(x0, y0), Vector(x1, y1))


class TestAddress:
    def test_parse_a1_with_sheet_and_dollars(self) -> None:
        a = Address.parse("Sheet1!$C$5")
        assert a == Address("Sheet1", 5, 3)
        assert a.to_a1_ref() == "Sheet1!C5"

    def test_parse_quoted_sheet_r1c1(self) -> None:
        a = Address.parse("'My Sheet'!R4C3")
        assert a == Address("My Sheet", 4, 3)
        assert a.to_a1_ref() == "'My Sheet'!C4"
        assert a.to_r1c1_ref() == "'My Sheet'!R4C3"

    def test_default_sheet_applies_without_prefix(self) -> None:
        assert Address.parse("AA10", default_sheet="Data") == Address("Data", 10, 27)

    def test_vector_is_zero_based(self) -> None:
        a = Address("S", 1, 1)
        assert a.vector() == Vector(0, 0, 0)
        assert Address.from_vector("S", Vector(2, 4)) == Address("S", 5, 3)

    def test_rejects_non_addresses(self) -> None:
        with pytest.raises(ValueError):
            Address.parse("SUM")
        with pytest.raises(ValueError):
            Address("S", 0, 1)


class TestRectangle:
    def test_inverted_corners_raise(self) -> None:
        with pytest.raises(InvalidRectangleError):
            rect(2, 0, 1, 0)

    def test_size_and_cells_row_major(self) -> None:
        r = rect(0, 0, 1, 1)
        assert r.size() == 4
        assert r.cells() == [Vector(0, 0), Vector(1, 0), Vector(0, 1), Vector(1, 1)]

    def test_adjacency_needs_a_shared_edge(self) -> None:
        assert rect(0, 0, 0, 2).is_adjacent(rect(1, 1, 1, 1))
        # corner contact only
        assert not rect(0, 0, 0, 0).is_adjacent(rect(1, 1, 1, 1))
        # overlapping is not adjacent
        assert not rect(0, 0, 1, 1).is_adjacent(rect(1, 1, 2, 2))
        assert rect(0, 0, 1, 1).overlaps(rect(1, 1, 2, 2))

    def test_union_is_rectangle(self) -> None:
        assert rect(0, 0, 0, 1).union_is_rectangle(rect(0, 2, 0, 3))
        assert rect(0, 0, 0, 1).is_mergeable_with(rect(0, 2, 0, 3))
        # an L shape
        assert not rect(0, 0, 1, 0).union_is_rectangle(rect(0, 1, 0, 1))
        assert not rect(0, 0, 0, 0).is_mergeable_with(rect(2, 0, 2, 0))

    def test_contains_rect(self) -> None:
        assert rect(0, 0, 3, 3).contains_rect(rect(1, 1, 2, 2))
        assert not rect(1, 1, 2, 2).contains_rect(rect(0, 0, 3, 3))

    def test_to_a1(self) -> None:
        assert rect(1, 1, 3, 1).to_a1() == "B2:D2"
        assert Rectangle.single(Vector(2, 2)).to_a1() == "C3"


class TestRange:
    def test_parse_and_dimensions(self) -> None:
        r = Range.parse("Sheet1!A1:C5")
        assert (r.sheet, r.width, r.height, r.cell_count()) == ("Sheet1", 3, 5, 15)
        assert len(r.cells()) == 15
        assert r.to_r1c1_ref() == "Sheet1!R1C1:R5C3"

    def test_corners_are_normalized(self) -> None:
        assert Range.parse("C5:A1", default_sheet="S").to_a1() == "A1:C5"

    def test_expand_grows_one_cell_and_clamps(self) -> None:
        assert Range.parse("B2:C3", default_sheet="S").expand().to_a1() == "A1:D4"
        assert Range.parse("A1:A1", default_sheet="S").expand().to_a1() == "A1:B2"

    def test_contains_checks_sheet(self) -> None:
        r = Range.from_bounds("S", 1, 1, 3, 3)
        assert r.contains(Address("S", 2, 2))
        assert not r.contains(Address("T", 2, 2))
        assert not r.contains(Address("S", 4, 1))

    def test_rectangle_round_trip(self) -> None:
        r = Range.from_bounds("S", 2, 2, 4, 4)
        assert r.rectangle() == rect(1, 1, 3, 3)
        assert Range.from_rectangle("S", r.rectangle()) == r

    def test_invalid_ranges_are_not_runnable(self) -> None:
        with pytest.raises(AnalysisNotRunnableError):
            Range(Address("S", 1, 1), Address("T", 2, 2))
        with pytest.raises(AnalysisNotRunnableError):
            Range(Address("S", 3, 1), Address("S", 2, 2))
