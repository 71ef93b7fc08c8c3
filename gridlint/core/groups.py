"""
gridlint/core/groups.py

Group same-fingerprint cells into maximal rectangles, and fold rectangle
groups found in successive analysis stages into one picture.

Public API:
  - identify_groups(fps) -> dict fingerprint -> list[Rectangle]
  - merge_rectangle_dictionaries(new, old) -> dict (pure union, lists concatenated)
  - merge_rectangles(groups) -> dict (coalesced to a fixed point, idempotent)

Cover policy: seeds are taken in row-major order and grown right, down,
left, then up. Growing along the row first makes the output reproducible
when several minimal covers exist.
"""

from __future__ import annotations

from typing import Dict, List, Set

from gridlint.core.geometry import Rectangle
from gridlint.core.vectors import Dictionary, Vector

Groups = Dict[str, List[Rectangle]]


def _column_in(cells: Set[Vector], x: int, y0: int, y1: int, z: int) -> bool:
    return all(Vector(x, y, z) in cells for y in range(y0, y1 + 1))


def _row_in(cells: Set[Vector], y: int, x0: int, x1: int, z: int) -> bool:
    return all(Vector(x, y, z) in cells for x in range(x0, x1 + 1))


def _grow(seed: Vector, cells: Set[Vector]) -> Rectangle:
    z = seed.z
    x0 = x1 = seed.x
    y0 = y1 = seed.y
    while _column_in(cells, x1 + 1, y0, y1, z):
        x1 += 1
    while _row_in(cells, y1 + 1, x0, x1, z):
        y1 += 1
    while _column_in(cells, x0 - 1, y0, y1, z):
        x0 -= 1
    while _row_in(cells, y0 - 1, x0, x1, z):
        y0 -= 1
    return Rectangle(Vector(x0, y0, z), Vector(x1, y1, z))


def _cover(cells: Set[Vector]) -> List[Rectangle]:
    covered: Set[Vector] = set()
    out: List[Rectangle] = []
    for seed in sorted(cells, key=lambda v: (v.z, v.y, v.x)):
        if seed in covered:
            continue
        rect = _grow(seed, cells)
        covered.update(rect.cells())
        out.append(rect)
    return out


def identify_groups(fps: Dictionary[str]) -> Groups:
    """
    Cover each fingerprint's cells with maximal rectangles.

    Every rectangle contains only cells of its own fingerprint; a cell with
    no same-fingerprint neighbor becomes a 1x1 rectangle.
    """
    by_fp: Dict[str, Set[Vector]] = {}
    for key, fp in fps.items():
        by_fp.setdefault(fp, set()).add(Vector.from_key(key))
    return {fp: _cover(cells) for fp, cells in by_fp.items()}


def merge_rectangle_dictionaries(new: Groups, old: Groups) -> Groups:
    out: Groups = {fp: list(rects) for fp, rects in old.items()}
    for fp, rects in new.items():
        out.setdefault(fp, []).extend(rects)
    return out


def _prune(rects: List[Rectangle]) -> List[Rectangle]:
    """Drop duplicates and rectangles contained in another one; keeps first-seen order."""
    out: List[Rectangle] = []
    for i, r in enumerate(rects):
        if r in out:
            continue
        if any(j != i and o != r and o.contains_rect(r) for j, o in enumerate(rects)):
            continue
        out.append(r)
    return out


def _coalesce(rects: List[Rectangle]) -> List[Rectangle]:
    rects = _prune(rects)
    changed = True
    while changed:
        changed = False
        for i in range(len(rects)):
            for j in range(i + 1, len(rects)):
                if rects[i].is_mergeable_with(rects[j]):
                    rects[i] = rects[i].union(rects[j])
                    del rects[j]
                    rects = _prune(rects)
                    changed = True
                    break
            if changed:
                break
    return rects


def merge_rectangles(groups: Groups) -> Groups:
    return {fp: _coalesce(list(rects)) for fp, rects in groups.items()}
