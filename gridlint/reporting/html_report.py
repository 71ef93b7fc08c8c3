# gridlint/reporting/html_report.py
from __future__ import annotations

from html import escape
from pathlib import Path
from typing import Any, Dict, List


def _default_css() -> str:
    """templates/styles.css, inlined; a bare fallback if the file is gone."""
    css_path = Path(__file__).resolve().parent / "templates" / "styles.css"
    try:
        return css_path.read_text(encoding="utf-8")
    except OSError:
        return "body{font-family:sans-serif;margin:16px;} .mono{font-family:monospace;}"


_BADGE_CLASS = {"LOW": "low", "MEDIUM": "med", "HIGH": "high"}


def _risk_badge(risk: str) -> str:
    r = (risk or "UNKNOWN").upper()
    cls = _BADGE_CLASS.get(r, "med")
    return f'<span class="pill {cls}">{escape(r)}</span>'


def _mono(text: str, limit: int = 120) -> str:
    if isinstance(text, str) and len(text) > limit:
        text = text[: limit - 3] + "..."
    return f'<td class="mono">{escape(str(text or ""))}</td>'


def _score_bar(pct: int) -> str:
    return (
        '<td><span class="bar">'
        f'<span class="bar-fill" style="width:{int(pct)}%"></span>'
        f"</span> {int(pct)}%</td>"
    )


def _render_sheet_table(sheets: List[Dict[str, Any]]) -> str:
    if not sheets:
        return '<tr><td colspan="5">No sheets</td></tr>'
    rows = []
    for s in sheets:
        rows.append(
            "<tr>"
            f"<td>{escape(str(s.get('sheet', '')))}</td>"
            f"<td>{_risk_badge(s.get('risk', 'UNKNOWN'))}</td>"
            f"<td>{int(s.get('formula_cells', 0) or 0)}</td>"
            f"<td>{int(s.get('fixes', 0) or 0)}</td>"
            f"<td>{escape(str(s.get('reason', '')))}</td>"
            "</tr>"
        )
    return "".join(rows)


def _render_fixes(fixes: List[Dict[str, Any]]) -> str:
    if not fixes:
        return '<tr><td colspan="6" class="muted">No suspicious formulas found.</td></tr>'
    rows = []
    for f in fixes:
        rows.append(
            "<tr>"
            f"<td>{escape(str(f.get('sheet', '')))}</td>"
            f"<td><b>{escape(str(f.get('rect1', '')))}</b></td>"
            f"<td>{escape(str(f.get('rect2', '')))}</td>"
            + _score_bar(int(f.get("suspicion_pct", 1) or 1))
            + _mono(f.get("formula1", ""))
            + _mono(f.get("formula2", ""))
            + "</tr>"
        )
    return "".join(rows)


def _render_stages(stages: List[Dict[str, Any]]) -> str:
    if not stages:
        return ""
    rows = []
    for s in stages:
        rows.append(
            "<tr>"
            f"<td>{int(s.get('stage', 0) or 0)}</td>"
            f"<td>{escape(str(s.get('arm', '')))}</td>"
            f"<td>{escape(str(s.get('range', '')))}</td>"
            f"<td>{escape(str(s.get('verdict', '')))}</td>"
            f"<td>{int(s.get('fixes', 0) or 0)}</td>"
            "</tr>"
        )
    return (
        '<div class="section"><h2>Stages</h2>'
        '<div class="card"><table class="table">'
        "<thead><tr><th>#</th><th>Arm</th><th>Range</th><th>Verdict</th><th>Fixes</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody></table></div></div>"
    )


def _render_errors(errors: List[Dict[str, Any]]) -> str:
    if not errors:
        return ""
    rows = []
    for e in errors:
        rows.append(
            "<tr>"
            f"<td>{escape(str(e.get('scope', '')))}</td>"
            f"<td>{escape(str(e.get('type', '')))}</td>"
            f"<td>{escape(str(e.get('dependent', '')))}</td>"
            f"<td>{escape(str(e.get('ref', '')))}</td>"
            f"<td>{escape(str(e.get('details', '')))}</td>"
            "</tr>"
        )
    return (
        '<div class="section"><h2>Errors &amp; Warnings</h2>'
        '<div class="card"><table class="table">'
        "<thead><tr><th>Scope</th><th>Type</th><th>Dependent</th><th>Ref</th><th>Details</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody></table></div></div>"
    )


def render_html_report(scan: Dict[str, Any]) -> str:
    template_path = Path(__file__).resolve().parent / "templates" / "report.html"
    template = template_path.read_text(encoding="utf-8")

    summary = scan.get("summary", {}) or {}
    fixes = scan.get("fixes", []) or []

    target = scan.get("target") or ""
    scope = f"around {target}" if target else "all formulas"

    html = template
    html = html.replace("$CSS", _default_css())

    # $WORKBOOK_BADGE before its prefix $WORKBOOK
    html = html.replace("$WORKBOOK_BADGE", _risk_badge(str(summary.get("workbook_risk", "UNKNOWN"))))
    html = html.replace("$WORKBOOK", escape(str(scan.get("workbook", ""))))
    html = html.replace("$GENERATED", escape(str(scan.get("generated", ""))))
    html = html.replace("$SCOPE", escape(scope))
    html = html.replace("$ELAPSED", f"{float(scan.get('elapsed_ms', 0) or 0):.1f}")
    html = html.replace("$VERDICT", escape(str(scan.get("verdict", "") or "-")))
    html = html.replace("$REASON", escape(str(summary.get("reason", ""))))
    html = html.replace("$FIX_COUNT", str(len(fixes)))
    html = html.replace("$TRUNCATED", " (truncated)" if scan.get("truncated") else "")

    html = html.replace("$TABLE_SHEETS", _render_sheet_table(summary.get("sheet_risks", []) or []))
    html = html.replace("$TABLE_FIXES", _render_fixes(fixes))
    html = html.replace("$STAGES_BLOCK", _render_stages(scan.get("stages", []) or []))
    html = html.replace("$ERRORS_BLOCK", _render_errors(scan.get("errors", []) or []))

    return html
