"""Staged (fat cross) and whole-sheet formula anomaly analysis.

FatCrossAnalysis is an explicit state machine. Each advance() call analyzes
one arm of the fat cross around the target cell (up, left, down, right, in
that order), folds the result into the accumulated rectangles and returns
what is known so far:

  stage 1-3 -> Possibly(fixes)           (may still change)
  stage 4   -> NoAnomaly | Definitely     (conclusive; repeated afterwards)

A caller may stop after any stage and keep the last answer. An arm that
fails is recorded in `errors` and leaves the accumulated state untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from gridlint.core.config import AnalysisConfig
from gridlint.core.fatcross import ARM_NAMES, find_fat_cross
from gridlint.core.fingerprints import fingerprints
from gridlint.core.geometry import Address, Range, Rectangle
from gridlint.core.groups import Groups, identify_groups, merge_rectangle_dictionaries, merge_rectangles
from gridlint.core.references import relative_formula_refs
from gridlint.core.vectors import Dictionary, Vector
from gridlint.detectors.fixes import (
    ProposedFix,
    RectInfo,
    Scorer,
    adjust_proposed_fixes_by_style_hash,
    filter_duplicate_fixes,
    filter_fix,
    filter_fixes_by_user_threshold,
    generate_proposed_fixes,
    get_scorer,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoAnomaly:
    kind = "no"
    conclusive = True
    fixes: Tuple[ProposedFix, ...] = ()


@dataclass(frozen=True)
class Possibly:
    fixes: Tuple[ProposedFix, ...]
    kind = "possibly"
    conclusive = False


@dataclass(frozen=True)
class Definitely:
    fixes: Tuple[ProposedFix, ...]
    kind = "definitely"
    conclusive = True


StageResult = Union[NoAnomaly, Possibly, Definitely]


@dataclass(frozen=True)
class OldColor:
    """Fill color a range had before it was painted for debugging."""

    color: Optional[str]
    range: Range


Colorizer = Callable[[Range, str], OldColor]


def propose_fixes(
    groups: Groups,
    formulas: Dictionary[str],
    styles: Dictionary[str],
    config: AnalysisConfig,
    scorer: Scorer,
    target: Optional[Address] = None,
) -> List[ProposedFix]:
    pfs = filter_duplicate_fixes(generate_proposed_fixes(groups, scorer))
    if target is not None:
        pfs = [f for f in pfs if f.includes_cell_at(target)]
    pfs = filter_fixes_by_user_threshold(pfs, config.reporting_threshold)
    if config.use_styles:
        pfs = adjust_proposed_fixes_by_style_hash(pfs, styles, config.style_penalty)

    def rect_info_for(rect: Rectangle) -> RectInfo:
        key = rect.upper_left
        return RectInfo(rect, formulas.get(key) if formulas.contains(key) else None)

    out: List[ProposedFix] = []
    for fix in pfs:
        kept = filter_fix(fix, rect_info_for, config.strict)
        if kept is not None:
            out.append(kept)
    return out


def full_analysis(
    formulas: Dictionary[str],
    styles: Optional[Dictionary[str]] = None,
    config: Optional[AnalysisConfig] = None,
    sheet_names: Sequence[str] = (),
    current_sheet: Optional[str] = None,
) -> List[ProposedFix]:
    """One pass over every formula of a sheet; no target restriction."""
    config = config or AnalysisConfig()
    refs = relative_formula_refs(formulas, sheet_names, current_sheet)
    groups = identify_groups(fingerprints(refs))
    return propose_fixes(groups, formulas, styles or Dictionary(), config, get_scorer(config.scorer))


class FatCrossAnalysis:
    STAGES = len(ARM_NAMES)

    def __init__(
        self,
        formulas: Dictionary[str],
        target: Address,
        bounds: Optional[Range],
        styles: Optional[Dictionary[str]] = None,
        config: Optional[AnalysisConfig] = None,
        colorizer: Optional[Colorizer] = None,
        sheet_names: Sequence[str] = (),
    ) -> None:
        # raises AnalysisNotRunnableError before any state exists
        self.fat_cross = find_fat_cross(bounds, target)
        self.target = target
        self.formulas = formulas
        self.config = config or AnalysisConfig()
        self.scorer = get_scorer(self.config.scorer)
        self.colorizer = colorizer
        self.sheet_names = list(sheet_names)
        self._all_styles = styles or Dictionary()

        self.stage = 0
        self.rects: Groups = {}
        self.styles: Dictionary[str] = Dictionary()
        self.old_colors: List[OldColor] = []
        self.errors: List[Dict[str, str]] = []
        self.fixes: List[ProposedFix] = []

    @property
    def done(self) -> bool:
        return self.stage >= self.STAGES

    def _conclusion(self) -> StageResult:
        if not self.fixes:
            return NoAnomaly()
        return Definitely(tuple(self.fixes))

    def _run_stage(self, i: int, arm: Range) -> None:
        area = arm.rectangle()

        def in_arm(key: str) -> bool:
            return area.contains(Vector.from_key(key))

        if self.colorizer is not None:
            self.old_colors.append(self.colorizer(arm, self.config.debug_colors[i]))

        fs = self.formulas.key_filter(in_arm)
        styles = self.styles
        if self.config.use_styles:
            styles = styles.merge(self._all_styles.key_filter(in_arm))

        refs = relative_formula_refs(fs, self.sheet_names, current_sheet=self.target.sheet)
        step_rects = identify_groups(fingerprints(refs))
        rects = merge_rectangles(merge_rectangle_dictionaries(step_rects, self.rects))
        fixes = propose_fixes(rects, self.formulas, styles, self.config, self.scorer, target=self.target)

        self.rects, self.styles, self.fixes = rects, styles, fixes
        logger.debug(
            "stage %d (%s) %s: %d formulas, %d fingerprints, %d fixes",
            i + 1, ARM_NAMES[i], arm.to_a1_ref(), len(fs), len(rects), len(fixes),
        )

    def advance(self) -> StageResult:
        if self.done:
            return self._conclusion()

        i = self.stage
        arm = self.fat_cross.arms()[i]
        try:
            self._run_stage(i, arm)
        except Exception as e:
            logger.warning("stage %d (%s) failed: %r", i + 1, ARM_NAMES[i], e)
            self.errors.append(
                {
                    "scope": "stage",
                    "type": f"{ARM_NAMES[i]}_arm_failed",
                    "dependent": self.target.to_a1_ref(),
                    "ref": arm.to_a1_ref(),
                    "details": repr(e),
                }
            )
        self.stage += 1

        if self.done:
            return self._conclusion()
        return Possibly(tuple(self.fixes))

    def __iter__(self) -> Iterator[StageResult]:
        while not self.done:
            yield self.advance()

    def run(self) -> StageResult:
        """Advance through the remaining stages; returns the conclusive result."""
        for _result in self:
            pass
        return self._conclusion()
