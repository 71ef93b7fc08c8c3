"""
gridlint/detectors/structure.py

Structure view of a sheet, as a list of painted rectangles:

  - formula blocks: one pastel color per reference pattern (fingerprint)
  - data cells some formula on the sheet reads: gray
  - data cells nothing reads: yellow

Nothing here touches a workbook; the CLI paints the result onto a copy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

from gridlint.core.fingerprints import fingerprints
from gridlint.core.geometry import Rectangle
from gridlint.core.groups import identify_groups
from gridlint.core.references import relative_formula_refs
from gridlint.core.vectors import Dictionary, Vector

PASTELS = [
    "#ABDEE6",
    "#CBAACB",
    "#FFCCB6",
    "#F3B0C3",
    "#C6DBDA",
    "#FED7C3",
    "#F6EAC2",
    "#ECD5E3",
    "#97C1A9",
    "#B8E0D2",
    "#D6EADF",
    "#FFDBCC",
]
REFERENCED_DATA_COLOR = "#D3D3D3"
UNREFERENCED_DATA_COLOR = "#EED202"

FORMULA = "formula"
REFERENCED_DATA = "referenced_data"
UNREFERENCED_DATA = "unreferenced_data"


@dataclass(frozen=True)
class Paint:
    rect: Rectangle
    color: str
    kind: str
    fingerprint: str = ""

    def to_dict(self) -> dict:
        return {"range": self.rect.to_a1(), "color": self.color, "kind": self.kind, "fingerprint": self.fingerprint}


def referenced_cells(refs: Dictionary[List[Vector]]) -> Set[Vector]:
    """Absolute same-sheet cells read by any formula (origin + offset, z == 0)."""
    out: Set[Vector] = set()
    for key, offsets in refs.items():
        origin = Vector.from_key(key)
        for off in offsets:
            if off.z == 0:
                out.add(origin + off)
    return out


def reveal_structure(
    formulas: Dictionary[str],
    data: Dictionary[object],
    sheet_names: Sequence[str] = (),
    current_sheet: Optional[str] = None,
) -> List[Paint]:
    refs = relative_formula_refs(formulas, sheet_names, current_sheet)
    paints: List[Paint] = []

    groups = identify_groups(fingerprints(refs))
    # colors follow the first cell of each group, row-major, so reruns match
    order = sorted(groups.items(), key=lambda kv: min((r.upper_left.y, r.upper_left.x) for r in kv[1]))
    for i, (fp, rects) in enumerate(order):
        color = PASTELS[i % len(PASTELS)]
        paints.extend(Paint(r, color, FORMULA, fp) for r in rects)

    used = referenced_cells(refs)
    labels: Dictionary[str] = Dictionary()
    for key, _value in data.items():
        labels.put(key, REFERENCED_DATA if Vector.from_key(key) in used else UNREFERENCED_DATA)
    colors = {REFERENCED_DATA: REFERENCED_DATA_COLOR, UNREFERENCED_DATA: UNREFERENCED_DATA_COLOR}
    for kind, rects in identify_groups(labels).items():
        paints.extend(Paint(r, colors[kind], kind) for r in rects)

    return paints
