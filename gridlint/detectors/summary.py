from __future__ import annotations

from typing import Dict, List

_RANK = {"LOW": 0, "MEDIUM": 1, "HIGH": 2}


def _sheet_risk(fixes: List[Dict], high_score: float) -> str:
    if not fixes:
        return "LOW"
    if max(float(f.get("score", 0) or 0) for f in fixes) >= high_score:
        return "HIGH"
    return "MEDIUM"


def compute_executive_summary(results: Dict, high_score: float = 0.5) -> Dict:
    """
    Deterministic summary of an analysis run.

    Inputs (from results dict):
      - sheets[*].sheet, sheets[*].formula_cells
      - fixes[*].sheet, fixes[*].score
      - errors
    """
    fixes = results.get("fixes", []) or []
    errors = results.get("errors", []) or []

    sheet_risks: List[Dict] = []
    workbook_risk = "LOW"
    for s in results.get("sheets", []) or []:
        sheet = s.get("sheet", "")
        sheet_fixes = [f for f in fixes if f.get("sheet") == sheet]
        risk = _sheet_risk(sheet_fixes, high_score)
        if _RANK[risk] > _RANK[workbook_risk]:
            workbook_risk = risk

        if risk == "HIGH":
            reason = f"{len(sheet_fixes)} suspicious region(s), at least one strongly out of pattern"
        elif risk == "MEDIUM":
            reason = f"{len(sheet_fixes)} suspicious region(s)"
        else:
            reason = "No formula-shape anomalies above the reporting threshold"

        sheet_risks.append(
            {
                "sheet": sheet,
                "risk": risk,
                "reason": reason,
                "formula_cells": int(s.get("formula_cells", 0) or 0),
                "fixes": len(sheet_fixes),
            }
        )

    reasons: List[str] = []
    if fixes:
        reasons.append(f"{len(fixes)} proposed fix(es) across {sum(1 for s in sheet_risks if s['fixes'])} sheet(s)")
    if errors:
        reasons.append(f"{len(errors)} analysis error(s)")
    if not reasons:
        reasons.append("No formula-shape anomalies detected")

    return {
        "workbook_risk": workbook_risk,
        "reason": "; ".join(reasons),
        "sheet_risks": sheet_risks,
        "counters": {
            "fixes": len(fixes),
            "errors": len(errors),
            "formula_cells": sum(s["formula_cells"] for s in sheet_risks),
        },
    }
