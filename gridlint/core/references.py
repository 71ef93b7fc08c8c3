"""
gridlint/core/references.py

Deterministic formula tokenization and relative reference extraction.

Design goal:
- Extract referenced addresses from formulas without evaluating them.
- Keep the order in which references occur in the formula text, so the
  relative vectors (and the fingerprints built from them) are reproducible.

Tokens are RefToken objects with:
  - raw: str               (e.g., "A1", "A1:B5", "A:A", "1:1", "Table1[Col]")
  - sheet: Optional[str]   (sheet name if explicitly referenced, else None)
  - kind: str              ("cell" | "range" | "whole_row" | "whole_column" |
                            "symbolic" | "external" | "sheet_span")
  - symbolic: bool         (True for structured, external-workbook and 3-D refs;
                            these carry no geometry)
  - start: int             (offset of the token in the formula text)
"""

from __future__ import annotations

import logging
import re
import zlib
from dataclasses import dataclass
from typing import List, Optional, Sequence

from openpyxl.utils.cell import column_index_from_string

from gridlint.core.vectors import Dictionary, Vector

logger = logging.getLogger(__name__)

# Ranges bigger than this are skipped rather than expanded.
MAX_RANGE_CELLS = 250_000

_SHEET_PREFIX = r"(?:'(?P<qs>(?:[^']|'')+)'|(?P<us>[A-Za-z_][A-Za-z0-9_.]*))!"
_CELL = r"\$?[A-Za-z]{1,3}\$?\d{1,7}"
_RANGE = rf"{_CELL}:{_CELL}"
_WHOLE_COL = r"\$?[A-Za-z]{1,3}:\$?[A-Za-z]{1,3}"
_WHOLE_ROW = r"\$?\d{1,7}:\$?\d{1,7}"

# One pass, left to right: optional sheet prefix, then the longest address form.
# The guards keep function names (LOG10(), ATAN2()) and identifiers (Q1_total) out.
_RE_REFERENCE = re.compile(
    rf"(?<![A-Za-z0-9_.$:])(?:{_SHEET_PREFIX})?"
    rf"(?P<addr>{_RANGE}|{_WHOLE_COL}|{_WHOLE_ROW}|{_CELL})"
    rf"(?![A-Za-z0-9_(:])"
)
# Refs into another workbook ([Book2]Sheet1!A1) or across a span of sheets
# (Sheet1:Sheet3!A1) have no place on this sheet's grid.
_EXTERNAL_PREFIX = r"(?:'[^']*\[[^\]]+\][^']*'|\[[^\]]+\][A-Za-z0-9_.]*)!"
_SHEET_SPAN_PREFIX = r"(?:'[^'!:]+:[^'!]+'|[A-Za-z_][A-Za-z0-9_.]*:[A-Za-z_][A-Za-z0-9_.]*)!"
_RE_FOREIGN = re.compile(
    rf"(?<![A-Za-z0-9_.$:!])(?:(?P<ext>{_EXTERNAL_PREFIX})|{_SHEET_SPAN_PREFIX})"
    rf"(?:{_RANGE}|{_WHOLE_COL}|{_WHOLE_ROW}|{_CELL})"
    rf"(?![A-Za-z0-9_(:])"
)
_RE_CELL_PARTS = re.compile(r"^\$?(?P<col>[A-Za-z]{1,3})\$?(?P<row>\d{1,7})$")

# Structured refs:
#   Table1[Col]
_RE_STRUCTURED = re.compile(r"\b(?P<name>[A-Za-z_][A-Za-z0-9_]*\[[^\]]*\])")
_RE_FUNCTION = re.compile(r"(?<![A-Za-z0-9_.])(?P<name>[A-Za-z_][A-Za-z0-9_.]*)\s*\(")


@dataclass(frozen=True)
class RefToken:
    raw: str
    sheet: Optional[str]
    kind: str
    symbolic: bool = False
    start: int = 0


def _strip_quoted_segments(s: str) -> str:
    """Replace characters inside double-quotes with spaces to preserve indices."""
    if '"' not in s:
        return s
    out = list(s)
    in_q = False
    for i, ch in enumerate(out):
        if ch == '"':
            in_q = not in_q
            continue
        if in_q:
            out[i] = " "
    return "".join(out)


def _blank(s: str, start: int, end: int) -> str:
    return s[:start] + " " * (end - start) + s[end:]


def _kind_from_addr(addr: str) -> str:
    if re.fullmatch(_CELL, addr):
        return "cell"
    if re.fullmatch(_RANGE, addr):
        return "range"
    if re.fullmatch(_WHOLE_COL, addr):
        return "whole_column"
    if re.fullmatch(_WHOLE_ROW, addr):
        return "whole_row"
    return "symbolic"


def extract_reference_tokens(formula: str) -> List[RefToken]:
    """
    Extract reference tokens from a formula string, in occurrence order.
    Text inside string literals is ignored.
    """
    if not formula:
        return []

    f = formula[1:] if formula.startswith("=") else formula
    s = _strip_quoted_segments(f)

    tokens: List[RefToken] = []

    # 1) External and 3-D refs, then structured refs like Table1[Col]; each is
    #    blanked before the next pass so its pieces aren't read as local cells
    for m in _RE_FOREIGN.finditer(s):
        kind = "external" if m.group("ext") else "sheet_span"
        tokens.append(RefToken(raw=m.group(0), sheet=None, kind=kind, symbolic=True, start=m.start()))
        s = _blank(s, m.start(), m.end())
    for m in _RE_STRUCTURED.finditer(s):
        tokens.append(RefToken(raw=m.group("name"), sheet=None, kind="symbolic", symbolic=True, start=m.start()))
        s = _blank(s, m.start(), m.end())

    # 2) Addresses, optionally sheet-qualified
    for m in _RE_REFERENCE.finditer(s):
        sheet = m.group("qs") or m.group("us")
        if m.group("qs"):
            sheet = sheet.replace("''", "'")
        addr = m.group("addr")
        tokens.append(RefToken(raw=addr, sheet=sheet, kind=_kind_from_addr(addr), start=m.start()))

    tokens.sort(key=lambda t: t.start)
    return tokens


def function_names(formula: str) -> List[str]:
    """Upper-cased function names in order of first use."""
    if not formula:
        return []
    s = _strip_quoted_segments(formula)
    out: List[str] = []
    for m in _RE_FUNCTION.finditer(s):
        name = m.group("name").upper()
        if name not in out:
            out.append(name)
    return out


def sheet_ordinal(sheet: Optional[str], sheet_names: Sequence[str] = (), current_sheet: Optional[str] = None) -> int:
    """
    z coordinate for a reference's sheet: 0 for the formula's own sheet,
    1 + workbook position for known sheets, a stable CRC-derived value otherwise.
    """
    if sheet is None or (current_sheet is not None and sheet == current_sheet):
        return 0
    for i, name in enumerate(sheet_names):
        if name == sheet:
            return i + 1
    return 1_000_000 + zlib.crc32(sheet.encode("utf-8")) % 1_000_000


def _cell_vector(text: str) -> Vector:
    m = _RE_CELL_PARTS.match(text)
    if not m:
        raise ValueError(f"Not a cell reference: {text!r}")
    row = int(m.group("row"))
    if row < 1:
        raise ValueError(f"Row 0 in reference {text!r}")
    return Vector(column_index_from_string(m.group("col").upper()) - 1, row - 1, 0)


def _column_index(text: str) -> int:
    return column_index_from_string(text.lstrip("$").upper()) - 1


def _row_index(text: str) -> int:
    row = int(text.lstrip("$"))
    if row < 1:
        raise ValueError(f"Row 0 in reference {text!r}")
    return row - 1


def _too_big(count: int, raw: str) -> bool:
    if count > MAX_RANGE_CELLS:
        logger.debug("skipping %r: %d cells (limit %d)", raw, count, MAX_RANGE_CELLS)
        return True
    return False


def reference_cells(token: RefToken, origin: Vector, z: int = 0) -> List[Vector]:
    """
    Absolute cell vectors for one token.

    Ranges are listed from their end corner back to their start corner
    (bottom row first, right column first). Whole columns/rows are anchored
    on the origin's row/column. Ranges over MAX_RANGE_CELLS give [].
    """
    if token.symbolic:
        return []
    raw = token.raw
    if token.kind == "cell":
        v = _cell_vector(raw)
        return [Vector(v.x, v.y, z)]
    if token.kind == "range":
        a_txt, b_txt = raw.split(":", 1)
        a, b = _cell_vector(a_txt), _cell_vector(b_txt)
        x0, x1 = sorted((a.x, b.x))
        y0, y1 = sorted((a.y, b.y))
        if _too_big((x1 - x0 + 1) * (y1 - y0 + 1), raw):
            return []
        return [Vector(x, y, z) for y in range(y1, y0 - 1, -1) for x in range(x1, x0 - 1, -1)]
    if token.kind == "whole_column":
        a_txt, b_txt = raw.split(":", 1)
        x0, x1 = sorted((_column_index(a_txt), _column_index(b_txt)))
        if _too_big(x1 - x0 + 1, raw):
            return []
        return [Vector(x, origin.y, z) for x in range(x1, x0 - 1, -1)]
    if token.kind == "whole_row":
        a_txt, b_txt = raw.split(":", 1)
        y0, y1 = sorted((_row_index(a_txt), _row_index(b_txt)))
        if _too_big(y1 - y0 + 1, raw):
            return []
        return [Vector(origin.x, y, z) for y in range(y1, y0 - 1, -1)]
    raise ValueError(f"Unknown reference kind {token.kind!r} for {raw!r}")


def formula_relative_refs(
    formula: str,
    origin: Vector,
    sheet_names: Sequence[str] = (),
    current_sheet: Optional[str] = None,
) -> List[Vector]:
    """Relative offsets (reference - origin) for every referenced cell of one formula."""
    out: List[Vector] = []
    for token in extract_reference_tokens(formula):
        z = sheet_ordinal(token.sheet, sheet_names, current_sheet)
        for cell in reference_cells(token, origin, z):
            out.append(cell - origin)
    return out


def relative_formula_refs(
    formulas: Dictionary[str],
    sheet_names: Sequence[str] = (),
    current_sheet: Optional[str] = None,
) -> Dictionary[List[Vector]]:
    """
    Map every formula address to its ordered list of relative reference vectors.

    Formulas without references keep an empty list; formulas whose
    references can't be parsed are treated the same way.
    """
    out: Dictionary[List[Vector]] = Dictionary()
    for key, formula in formulas.items():
        origin = Vector.from_key(key)
        try:
            refs = formula_relative_refs(formula, origin, sheet_names, current_sheet)
        except ValueError as e:
            logger.debug("unparseable references at %s (%r): %s", key, formula, e)
            refs = []
        out.put(key, refs)
    return out
