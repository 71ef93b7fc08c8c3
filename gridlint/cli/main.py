# gridlint/cli/main.py
from __future__ import annotations

import argparse
import datetime as _dt
import json
import logging
import os
import sys
import time
import traceback
import webbrowser
import zipfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from openpyxl.utils.exceptions import InvalidFileException

from gridlint.core.config import AnalysisConfig, cfg_get, load_config, load_rules_config
from gridlint.core.errors import AnalysisNotRunnableError, ConfigError
from gridlint.core.fatcross import ARM_NAMES
from gridlint.core.geometry import Address, Range
from gridlint.core.vectors import Dictionary
from gridlint.detectors.fixes import ProposedFix, get_scorer
from gridlint.detectors.incremental import FatCrossAnalysis, full_analysis
from gridlint.detectors.structure import reveal_structure
from gridlint.detectors.summary import compute_executive_summary
from gridlint.host.workbook import WorkbookHost
from gridlint.reporting.html_report import render_html_report

logger = logging.getLogger(__name__)


def _utc_iso() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat().replace("+00:00", "Z")


def _resolve_output_dir(workbook_path: str, out_dir: str) -> Path:
    """
    Output rule:
      <out_dir or workbook folder>/output/<workbook_stem>/<YYYYMMDD_HHMMSS>/
    """
    wb = Path(workbook_path)
    base = Path(out_dir) if out_dir else wb.parent
    ts = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    return (base / "output" / wb.stem / ts).resolve()


def _fix_row(fix: ProposedFix, sheet: str, formulas: Dictionary[str]) -> Dict[str, Any]:
    row = fix.to_dict(sheet=sheet)
    for n, rect in (("formula1", fix.rect1), ("formula2", fix.rect2)):
        text = formulas.get(rect.upper_left) if formulas.contains(rect.upper_left) else ""
        row[n] = "=" + text if text else ""
    return row


def _error(scope: str, etype: str, dependent: str, e: BaseException) -> Dict[str, str]:
    return {"scope": scope, "type": etype, "dependent": dependent, "ref": "", "details": repr(e)}


def _analyze_cell(
    host: WorkbookHost,
    target: Address,
    config: AnalysisConfig,
    debug_colors: bool,
    outp: Path,
    stem: str,
) -> Dict[str, Any]:
    bounds = host.used_range(target.sheet)
    if bounds is None:
        raise AnalysisNotRunnableError(f"Sheet {target.sheet!r} has no used cells")
    formulas = host.formulas_from_range(bounds)
    styles = host.formatting_from_range(bounds) if config.use_styles else None

    analysis = FatCrossAnalysis(
        formulas,
        target,
        bounds,
        styles=styles,
        config=config,
        colorizer=host.color_range if debug_colors else None,
        sheet_names=host.sheet_names,
    )

    stages: List[Dict[str, Any]] = []
    result = None
    for i, result in enumerate(analysis):
        stages.append(
            {
                "stage": i + 1,
                "arm": ARM_NAMES[i],
                "range": analysis.fat_cross.arms()[i].to_a1_ref(),
                "verdict": result.kind,
                "fixes": len(result.fixes),
            }
        )
        print(f"Stage {i + 1} ({ARM_NAMES[i]}): {result.kind} ({len(result.fixes)} fix(es))")

    painted = ""
    if debug_colors:
        painted_path = outp / f"{stem}.gridlint.stages.xlsx"
        host.save(str(painted_path))
        host.restore_colors(analysis.old_colors)
        painted = str(painted_path)

    return {
        "target": target.to_a1_ref(),
        "bounds": bounds.to_a1_ref(),
        "verdict": result.kind if result is not None else "no",
        "stages": stages,
        "fixes": [_fix_row(f, target.sheet, formulas) for f in analysis.fixes],
        "sheets": [{"sheet": target.sheet, "formula_cells": len(formulas)}],
        "painted_workbook": painted,
        "errors": list(analysis.errors),
    }


def _analyze_sheets(host: WorkbookHost, sheets: List[str], config: AnalysisConfig) -> Dict[str, Any]:
    fixes: List[Dict[str, Any]] = []
    sheets_out: List[Dict[str, Any]] = []
    errors: List[Dict[str, str]] = []

    for sheet in sheets:
        try:
            rng = host.used_range(sheet)
            if rng is None:
                sheets_out.append({"sheet": sheet, "formula_cells": 0})
                continue
            formulas = host.formulas_from_range(rng)
            styles = host.formatting_from_range(rng) if config.use_styles else None
            found = full_analysis(formulas, styles, config, sheet_names=host.sheet_names, current_sheet=sheet)
            fixes.extend(_fix_row(f, sheet, formulas) for f in found)
            sheets_out.append({"sheet": sheet, "formula_cells": len(formulas)})
        except Exception as e:
            errors.append(_error("sheet_scan", "sheet_failed", sheet, e))
            sheets_out.append({"sheet": sheet, "formula_cells": 0})

    return {"fixes": fixes, "sheets": sheets_out, "errors": errors}


def _reveal(host: WorkbookHost, sheets: List[str], outp: Path, stem: str) -> Dict[str, Any]:
    """Paint the structure view of each sheet onto a copy of the workbook."""
    painted: List[Dict[str, Any]] = []
    errors: List[Dict[str, str]] = []
    for sheet in sheets:
        try:
            rng = host.used_range(sheet)
            if rng is None:
                continue
            paints = reveal_structure(
                host.formulas_from_range(rng),
                host.data_from_range(rng),
                sheet_names=host.sheet_names,
                current_sheet=sheet,
            )
            for p in paints:
                host.color_range(Range.from_rectangle(sheet, p.rect), p.color)
                painted.append(dict(p.to_dict(), sheet=sheet))
        except Exception as e:
            errors.append(_error("structure", "reveal_failed", sheet, e))

    path = outp / f"{stem}.gridlint.structure.xlsx"
    host.save(str(path))
    return {"structure_workbook": str(path), "structure": painted, "structure_errors": errors}


def analyze_workbook(
    workbook_path: str,
    out_dir: str = "",
    sheet: Optional[str] = None,
    cell: Optional[str] = None,
    config: Optional[AnalysisConfig] = None,
    debug_colors: bool = False,
    max_fixes: int = 200,
    reveal: bool = False,
) -> Tuple[Dict[str, Any], str, str]:
    """
    Read-only analysis (the workbook itself is never written).
    Returns: (scan_dict, json_path, html_path)
    """
    p = Path(workbook_path)
    config = config or load_config()
    # unknown scorer names fail here rather than once per sheet
    get_scorer(config.scorer)
    host = WorkbookHost(str(p))

    if sheet is not None:
        host.worksheet(sheet)

    outp = _resolve_output_dir(workbook_path=str(p), out_dir=out_dir)
    outp.mkdir(parents=True, exist_ok=True)
    logger.debug("analyzing %s (sheet=%s cell=%s) into %s", p, sheet, cell, outp)

    started = time.perf_counter()
    if cell:
        default_sheet = sheet or host.sheet_names[0]
        target = Address.parse(cell, default_sheet=default_sheet)
        body = _analyze_cell(host, target, config, debug_colors, outp, p.stem)
        mode = "incremental"
        sheets = [target.sheet]
    else:
        sheets = [sheet] if sheet else host.sheet_names
        body = _analyze_sheets(host, sheets, config)
        mode = "full"
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 1)

    if reveal:
        structure = _reveal(host, sheets, outp, p.stem)
        body["errors"] = body["errors"] + structure.pop("structure_errors")
        body.update(structure)

    body["fixes"] = sorted(body["fixes"], key=lambda f: f["score"], reverse=True)
    truncated = max_fixes > 0 and len(body["fixes"]) > max_fixes
    if truncated:
        body["fixes"] = body["fixes"][:max_fixes]

    scan: Dict[str, Any] = {
        "workbook": p.name,
        "generated": _utc_iso(),
        "elapsed_ms": elapsed_ms,
        "mode": mode,
        "config": {
            "reporting_threshold": config.reporting_threshold,
            "use_styles": config.use_styles,
            "strict": config.strict,
            "scorer": config.scorer,
        },
        "truncated": truncated,
    }
    scan.update(body)
    scan["summary"] = compute_executive_summary(scan)

    json_path = outp / f"{p.stem}.gridlint.json"
    html_path = outp / f"{p.stem}.gridlint.report.html"
    json_path.write_text(json.dumps(scan, indent=2, ensure_ascii=False), encoding="utf-8")
    html_path.write_text(render_html_report(scan), encoding="utf-8")

    return scan, str(json_path), str(html_path)


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)

    parser = argparse.ArgumentParser(prog="gridlint", description="gridlint - formula shape anomaly report")
    parser.add_argument("workbook", nargs="?", help="Path to .xlsx/.xlsm workbook")
    parser.add_argument("-o", "--out", dest="out_dir", default="", help="Output base directory (default: workbook folder)")
    parser.add_argument("--sheet", default=None, help="Only analyze this sheet")
    parser.add_argument("--cell", default=None, help="Run the staged analysis around this cell (e.g. Sheet1!C5)")
    parser.add_argument("--config", default=None, help="Path to a rules.yaml (default: bundled)")
    parser.add_argument("--threshold", type=float, default=None, help="Reporting threshold (0..1)")
    parser.add_argument("--styles", action=argparse.BooleanOptionalAction, default=None, help="Down-weight fixes across formatting changes")
    parser.add_argument("--lenient", action="store_true", help="Only veto constant-vs-formula pairs")
    parser.add_argument("--scorer", default=None, help="entropy | size_ratio")
    parser.add_argument("--debug-colors", action="store_true", help="Save a copy with the four stages painted (needs --cell)")
    parser.add_argument("--reveal", action="store_true", help="Save a copy with formula blocks and data cells colored by structure")
    parser.add_argument("--no-open", action="store_true", help="Do not open report automatically")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.workbook:
        print("ERROR: No workbook provided.")
        return 2

    try:
        raw = load_rules_config(Path(args.config) if args.config else None)
        config = AnalysisConfig.from_dict(cfg_get(raw, "app.analysis", {})).with_overrides(
            reporting_threshold=args.threshold,
            use_styles=args.styles,
            strict=False if args.lenient else None,
            scorer=args.scorer,
        )
        max_fixes = int(cfg_get(raw, "app.reporting.max_fixes", 200) or 200)

        scan, json_path, html_path = analyze_workbook(
            workbook_path=args.workbook,
            out_dir=args.out_dir,
            sheet=args.sheet,
            cell=args.cell,
            config=config,
            debug_colors=bool(args.debug_colors and args.cell),
            max_fixes=max_fixes,
            reveal=args.reveal,
        )
        print(f"Fixes: {len(scan['fixes'])} ({scan['summary']['workbook_risk']})")
        print(f"JSON: {json_path}")
        print(f"HTML: {html_path}")
        if scan.get("structure_workbook"):
            print(f"Structure: {scan['structure_workbook']}")
        if not args.no_open and html_path and os.path.exists(html_path):
            webbrowser.open_new_tab(Path(html_path).as_uri())
        return 0
    except ConfigError as e:
        print("ERROR: bad configuration:", e)
        return 2
    except (InvalidFileException, zipfile.BadZipFile):
        print("ERROR: Invalid or unsupported workbook file.")
        return 3
    except AnalysisNotRunnableError as e:
        print("ERROR: analysis not runnable:", e)
        return 4
    except Exception as e:
        print("ERROR:", e)
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
