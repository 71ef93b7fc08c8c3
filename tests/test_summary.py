"""Tests for the executive summary."""

from gridlint.detectors.summary import compute_executive_summary


def test_clean_workbook() -> None:
    summary = compute_executive_summary({"sheets": [{"sheet": "S", "formula_cells": 9}], "fixes": [], "errors": []})
    assert summary["workbook_risk"] == "LOW"
    assert summary["reason"] == "No formula-shape anomalies detected"
    assert summary["counters"] == {"fixes": 0, "errors": 0, "formula_cells": 9}


def test_risk_levels_per_sheet() -> None:
    results = {
        "sheets": [
            {"sheet": "A", "formula_cells": 10},
            {"sheet": "B", "formula_cells": 5},
            {"sheet": "C", "formula_cells": 0},
        ],
        "fixes": [
            {"sheet": "A", "score": 0.2},
            {"sheet": "B", "score": 0.2},
            {"sheet": "B", "score": 0.8},
        ],
        "errors": [{"scope": "sheet_scan"}],
    }
    summary = compute_executive_summary(results)
    assert [s["risk"] for s in summary["sheet_risks"]] == ["MEDIUM", "HIGH", "LOW"]
    assert [s["fixes"] for s in summary["sheet_risks"]] == [1, 2, 0]
    assert summary["workbook_risk"] == "HIGH"
    assert summary["reason"] == "3 proposed fix(es) across 2 sheet(s); 1 analysis error(s)"


def test_high_score_is_configurable() -> None:
    results = {"sheets": [{"sheet": "A", "formula_cells": 1}], "fixes": [{"sheet": "A", "score": 0.3}]}
    assert compute_executive_summary(results, high_score=0.25)["workbook_risk"] == "HIGH"
