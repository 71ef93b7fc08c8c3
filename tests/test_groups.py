"""Tests for rectangle decomposition and incremental merging."""

from typing import Dict

from gridlint.core.fingerprints import fingerprints
from gridlint.core.geometry import Rectangle
from gridlint.core.groups import identify_groups, merge_rectangle_dictionaries, merge_rectangles
from gridlint.core.references import relative_formula_refs
from gridlint.core.vectors import Dictionary, Vector


def rect(x0, y0, x1, y1) -> Rectangle:
    return Rectangle(Vector(x0, y0), Vector(x1, y1))


def _fps(rows) -> Dictionary[str]:
    """Fingerprint grid from strings; "." is an empty cell."""
    d: Dictionary[str] = Dictionary()
    for y, row in enumerate(rows):
        for x, ch in enumerate(row):
            if ch != ".":
                d.put(Vector(x, y), ch)
    return d


def _assert_sound_and_maximal(fps: Dictionary[str], groups: Dict) -> None:
    covered = set()
    for fp, rects in groups.items():
        for r in rects:
            assert all(fps.contains(c) and fps.get(c) == fp for c in r.cells())
            covered.update(r.cells())
            ul, br = r.upper_left, r.bottom_right
            grown = [
                Rectangle(Vector(ul.x, ul.y - 1), br),
                Rectangle(ul, Vector(br.x, br.y + 1)),
                Rectangle(Vector(ul.x - 1, ul.y), br),
                Rectangle(ul, Vector(br.x + 1, br.y)),
            ]
            for g in grown:
                assert not all(fps.contains(c) and fps.get(c) == fp for c in g.cells())
    assert covered == set(fps.vectors())


class TestIdentifyGroups:
    def test_uniform_block_is_one_rectangle(self) -> None:
        groups = identify_groups(_fps(["aaa", "aaa"]))
        assert groups == {"a": [rect(0, 0, 2, 1)]}

    def test_interior_outlier(self) -> None:
        fps = _fps(["aaa", "aba", "aaa"])
        groups = identify_groups(fps)
        assert groups["b"] == [rect(1, 1, 1, 1)]
        assert len(groups["a"]) >= 2
        _assert_sound_and_maximal(fps, groups)

    def test_rows_are_grown_first(self) -> None:
        groups = identify_groups(_fps(["aa", "a."]))
        assert groups["a"] == [rect(0, 0, 1, 0), rect(0, 0, 0, 1)]

    def test_irregular_shapes_are_sound(self) -> None:
        fps = _fps(["aab.c", "abbbc", ".abcc", "aaacc"])
        _assert_sound_and_maximal(fps, identify_groups(fps))

    def test_from_formulas(self, outlier_formulas) -> None:
        groups = identify_groups(fingerprints(relative_formula_refs(outlier_formulas)))
        sizes = sorted(sum(r.size() for r in rects) for rects in groups.values())
        assert sizes[0] == 1
        assert len(groups) == 2


class TestMerging:
    def test_dictionaries_concatenate_old_first(self) -> None:
        old = {"a": [rect(0, 0, 0, 0)], "b": [rect(1, 0, 1, 0)]}
        new = {"a": [rect(0, 1, 0, 1)], "c": [rect(2, 0, 2, 0)]}
        merged = merge_rectangle_dictionaries(new, old)
        assert merged == {
            "a": [rect(0, 0, 0, 0), rect(0, 1, 0, 1)],
            "b": [rect(1, 0, 1, 0)],
            "c": [rect(2, 0, 2, 0)],
        }
        assert old["a"] == [rect(0, 0, 0, 0)]

    def test_adjacent_and_duplicate_rectangles_coalesce(self) -> None:
        groups = {"a": [rect(0, 0, 0, 1), rect(0, 2, 0, 3), rect(0, 0, 0, 1), rect(0, 1, 0, 1)]}
        assert merge_rectangles(groups) == {"a": [rect(0, 0, 0, 3)]}

    def test_l_shapes_stay_apart(self) -> None:
        groups = {"a": [rect(0, 0, 1, 0), rect(0, 1, 0, 1)]}
        assert merge_rectangles(groups) == groups

    def test_idempotent(self) -> None:
        fps = _fps(["aab.c", "abbbc", ".abcc", "aaacc"])
        first = identify_groups(fps)
        again = identify_groups(_fps(["aab.c", "abbbc"]))
        once = merge_rectangles(merge_rectangle_dictionaries(again, first))
        assert merge_rectangles(once) == once

    def test_fingerprints_never_mix(self) -> None:
        groups = {"a": [rect(0, 0, 0, 0)], "b": [rect(0, 1, 0, 1)]}
        assert merge_rectangles(groups) == groups
