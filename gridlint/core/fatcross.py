"""
gridlint/core/fatcross.py

The fat cross around a target cell: four bands reaching from the target to
each edge of the bounding range.

  up    = rows top..target.row,       full width
  left  = columns left..target.column, full height
  down  = rows target.row..bottom,    full width
  right = columns target.column..right, full height

Every arm contains the target. On an edge the matching arm is a single
row/column; together the arms cover the whole bounding range.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from gridlint.core.errors import AnalysisNotRunnableError
from gridlint.core.geometry import Address, Range

ARM_NAMES = ("up", "left", "down", "right")


@dataclass(frozen=True)
class FatCross:
    up: Range
    left: Range
    down: Range
    right: Range

    def arms(self) -> List[Range]:
        """Arms in analysis order."""
        return [self.up, self.left, self.down, self.right]


def find_fat_cross(bounds: Optional[Range], target: Address) -> FatCross:
    if bounds is None:
        raise AnalysisNotRunnableError("No bounding range (sheet has no used cells)")
    if target.sheet != bounds.sheet:
        raise AnalysisNotRunnableError(f"Target {target} is not on sheet {bounds.sheet!r}")
    if not bounds.contains(target):
        raise AnalysisNotRunnableError(f"Target {target} is outside {bounds}")

    sheet = bounds.sheet
    return FatCross(
        up=Range.from_bounds(sheet, bounds.top, bounds.left, target.row, bounds.right),
        left=Range.from_bounds(sheet, bounds.top, bounds.left, bounds.bottom, target.column),
        down=Range.from_bounds(sheet, target.row, bounds.left, bounds.bottom, bounds.right),
        right=Range.from_bounds(sheet, bounds.top, target.column, bounds.bottom, bounds.right),
    )
