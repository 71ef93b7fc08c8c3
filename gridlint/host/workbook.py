"""
gridlint/host/workbook.py

openpyxl-backed host: supplies formula text and style hashes per cell,
and paints ranges for debugging and structure views.

All engine-facing keys are zero-based Vector keys; all ranges are 1-based
Range objects.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import List, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.styles import PatternFill

from gridlint.core.config import hex_color
from gridlint.core.errors import AnalysisNotRunnableError
from gridlint.core.geometry import Range
from gridlint.core.vectors import Dictionary, Vector
from gridlint.detectors.incremental import OldColor


def _formula_text(cell) -> Optional[str]:
    """
    Formula text as the engine wants it (leading "=" removed), or None.

    Only formula cells count; text that merely looks like "-A1" is data.
    """
    if cell.data_type != "f":
        return None
    # ArrayFormula carries its text separately; DataTableFormula has none
    text = getattr(cell.value, "text", cell.value)
    if not isinstance(text, str) or not text:
        return None
    return text[1:] if text[0] == "=" else text


def _argb(color: str) -> str:
    return "FF" + hex_color(color)[1:]


def _style_hash(cell) -> str:
    parts = [
        repr(cell.font),
        repr(cell.fill),
        repr(cell.border),
        repr(cell.alignment),
        repr(cell.protection),
        str(cell.number_format),
        str(cell.data_type),
    ]
    return hashlib.md5("|".join(parts).encode("utf-8")).hexdigest()


class WorkbookHost:
    def __init__(self, path: Optional[str] = None, workbook: Optional[Workbook] = None) -> None:
        if workbook is None:
            if path is None:
                raise TypeError("WorkbookHost: need a path or a workbook")
            p = Path(path)
            if not p.exists():
                raise FileNotFoundError(f"Workbook not found: {path}")
            workbook = load_workbook(filename=str(p), data_only=False, keep_vba=p.suffix.lower() == ".xlsm")
        self.wb = workbook

    @property
    def sheet_names(self) -> List[str]:
        return [ws.title for ws in self.wb.worksheets]

    def worksheet(self, sheet: str):
        if sheet not in self.wb.sheetnames:
            raise AnalysisNotRunnableError(f"No sheet named {sheet!r}")
        return self.wb[sheet]

    def used_range(self, sheet: str) -> Optional[Range]:
        """Bounding range of populated cells; None for an empty sheet."""
        ws = self.worksheet(sheet)
        cells = [c for row in ws.iter_rows() for c in row if c.value is not None]
        if not cells:
            return None
        return Range.from_bounds(
            sheet,
            min(c.row for c in cells),
            min(c.column for c in cells),
            max(c.row for c in cells),
            max(c.column for c in cells),
        )

    def _cells(self, rng: Range):
        ws = self.worksheet(rng.sheet)
        for row in ws.iter_rows(min_row=rng.top, max_row=rng.bottom, min_col=rng.left, max_col=rng.right):
            for cell in row:
                yield cell

    def formulas_from_range(self, rng: Range) -> Dictionary[str]:
        d: Dictionary[str] = Dictionary()
        for cell in self._cells(rng):
            text = _formula_text(cell)
            if text is not None:
                d.put(Vector(cell.column - 1, cell.row - 1, 0), text)
        return d

    def data_from_range(self, rng: Range) -> Dictionary[object]:
        """Non-empty cells that are not formulas."""
        d: Dictionary[object] = Dictionary()
        for cell in self._cells(rng):
            if cell.value is not None and cell.data_type != "f":
                d.put(Vector(cell.column - 1, cell.row - 1, 0), cell.value)
        return d

    def formatting_from_range(self, rng: Range) -> Dictionary[str]:
        d: Dictionary[str] = Dictionary()
        for cell in self._cells(rng):
            d.put(Vector(cell.column - 1, cell.row - 1, 0), _style_hash(cell))
        return d

    def color_range(self, rng: Range, color: str) -> OldColor:
        """
        Paint every cell of rng; returns the range's previous fill color
        (read from its upper-left cell). "#FFFFFF" clears the fill.
        """
        color = hex_color(color)
        ws = self.worksheet(rng.sheet)
        first = ws.cell(row=rng.top, column=rng.left)
        old: Optional[str] = None
        if first.fill is not None and first.fill.fill_type == "solid":
            rgb = first.fill.fgColor.rgb
            if first.fill.fgColor.type == "rgb" and isinstance(rgb, str):
                old = "#" + rgb[-6:].upper()

        if old is not None and old == color:
            return OldColor(old, rng)

        if color == "#FFFFFF":
            fill = PatternFill(fill_type=None)
        else:
            fill = PatternFill(fill_type="solid", start_color=_argb(color), end_color=_argb(color))
        for cell in self._cells(rng):
            cell.fill = fill
        return OldColor(old, rng)

    def restore_colors(self, old_colors: List[OldColor]) -> None:
        # last painted first, so overlapping arms unwind to the earlier fill
        for oc in reversed(old_colors):
            self.color_range(oc.range, oc.color or "#FFFFFF")

    def save(self, path: str) -> None:
        self.wb.save(path)
