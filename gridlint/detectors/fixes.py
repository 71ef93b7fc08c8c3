"""Proposed-fix generation, scoring and filtering.

A proposed fix pairs a rectangle with a neighboring rectangle of a different
fingerprint: "this block should probably look like that one". The pipeline is

  generate_proposed_fixes -> filter_duplicate_fixes -> (target filter)
  -> filter_fixes_by_user_threshold -> adjust_proposed_fixes_by_style_hash
  -> filter_fix

Design goals:
- Geometry only; formula text is consulted by filter_fix alone.
- Pure: every step returns a new list.
- Scoring is a pluggable strategy; higher scores are more suspicious.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Union

from gridlint.core.errors import ConfigError
from gridlint.core.geometry import Address, Rectangle
from gridlint.core.graph import build_adjacency_graph, neighbors_by_fingerprint
from gridlint.core.references import formula_relative_refs, function_names
from gridlint.core.vectors import Dictionary, Vector


@dataclass(frozen=True)
class RectInfo:
    rect: Rectangle
    formula: Optional[str]


@dataclass(frozen=True, eq=False)
class ProposedFix:
    rect1: Rectangle
    rect2: Rectangle
    score: float
    fingerprint1: str = ""
    fingerprint2: str = ""

    def __post_init__(self) -> None:
        if self.rect1 == self.rect2:
            raise ValueError(f"A fix needs two different rectangles, got {self.rect1} twice")

    def pair(self) -> frozenset:
        return frozenset((self.rect1, self.rect2))

    def includes_cell_at(self, where: Union[Address, Vector]) -> bool:
        v = where.vector() if isinstance(where, Address) else where
        return self.rect1.contains(v) or self.rect2.contains(v)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProposedFix):
            return NotImplemented
        return self.pair() == other.pair()

    def __hash__(self) -> int:
        return hash(self.pair())

    def to_dict(self, sheet: str = "") -> Dict[str, object]:
        return {
            "sheet": sheet,
            "rect1": self.rect1.to_a1(),
            "rect2": self.rect2.to_a1(),
            "score": round(self.score, 4),
            "suspicion_pct": suspicion_percent(self.score),
        }


def suspicion_percent(score: float) -> int:
    """Score as a 1..100 bar width; always show *something*."""
    return max(1, min(100, int(round(score * 100))))


# --- Scoring strategies ------------------------------------------------------


def _binary_entropy(p: float) -> float:
    if p <= 0.0 or p >= 1.0:
        return 0.0
    q = 1.0 - p
    return -(p * math.log2(p) + q * math.log2(q))


class EntropyScorer:
    """1 - H(p), p = share of the smaller rectangle in the pair's cells.

    A lone cell breaking a large block scores near 1; two equal blocks score 0.
    """

    name = "entropy"

    def __call__(self, small: Rectangle, large: Rectangle) -> float:
        s, l = small.size(), large.size()
        return 1.0 - _binary_entropy(s / (s + l))


class SizeRatioScorer:
    name = "size_ratio"

    def __call__(self, small: Rectangle, large: Rectangle) -> float:
        s, l = sorted((small.size(), large.size()))
        return 1.0 - s / l


Scorer = Callable[[Rectangle, Rectangle], float]

_SCORERS: Dict[str, Callable[[], Scorer]] = {
    EntropyScorer.name: EntropyScorer,
    SizeRatioScorer.name: SizeRatioScorer,
}


def get_scorer(name: str) -> Scorer:
    try:
        return _SCORERS[name]()
    except KeyError:
        raise ConfigError(f"Unknown scorer {name!r} (known: {', '.join(sorted(_SCORERS))})") from None


# --- Pipeline ----------------------------------------------------------------


def generate_proposed_fixes(groups: Dict[str, List[Rectangle]], scorer: Optional[Scorer] = None) -> List[ProposedFix]:
    """
    For every rectangle R and every other fingerprint touching it, pair R with
    that fingerprint's largest touching rectangle N, provided R is not bigger
    than N. Equal-sized pairs come out twice; filter_duplicate_fixes folds them.
    """
    scorer = scorer or EntropyScorer()
    g = build_adjacency_graph(groups)
    out: List[ProposedFix] = []
    for node in g.nodes:
        fp, rect = node
        for other_fp, nbs in neighbors_by_fingerprint(g, node).items():
            best = max(nbs, key=lambda n: n[1].size())[1]
            if rect.size() > best.size():
                continue
            out.append(ProposedFix(rect, best, float(scorer(rect, best)), fp, other_fp))
    return out


def filter_duplicate_fixes(fixes: List[ProposedFix]) -> List[ProposedFix]:
    seen = set()
    out: List[ProposedFix] = []
    for fix in fixes:
        key = fix.pair()
        if key in seen:
            continue
        seen.add(key)
        out.append(fix)
    return out


def filter_fixes_by_user_threshold(fixes: List[ProposedFix], threshold: float) -> List[ProposedFix]:
    return [f for f in fixes if f.score >= threshold]


def adjust_proposed_fixes_by_style_hash(
    fixes: List[ProposedFix],
    styles: Dictionary[str],
    penalty: float = 0.25,
) -> List[ProposedFix]:
    """
    Lower the score of fixes whose two representative cells are formatted
    differently. Cells without a style entry leave the score alone.
    """
    out: List[ProposedFix] = []
    for fix in fixes:
        k1, k2 = fix.rect1.upper_left, fix.rect2.upper_left
        if styles.contains(k1) and styles.contains(k2) and styles.get(k1) != styles.get(k2):
            fix = replace(fix, score=fix.score - penalty)
        out.append(fix)
    return out


def _reference_count(info: RectInfo) -> int:
    try:
        return len(formula_relative_refs(info.formula or "", info.rect.upper_left))
    except ValueError:
        return 0


def filter_fix(
    fix: ProposedFix,
    rect_info_for: Callable[[Rectangle], RectInfo],
    strict: bool = True,
) -> Optional[ProposedFix]:
    """
    Veto fixes explained by benign patterns. Returns None when suppressed.

    Always:  a side without a representative formula; exactly one side
             constant-only (data next to calculations).
    Strict:  the sides call different functions (e.g. a SUM total row under
             per-row products); reference counts differ by more than 2x.
    """
    info1, info2 = rect_info_for(fix.rect1), rect_info_for(fix.rect2)
    if info1.formula is None or info2.formula is None:
        return None

    n1, n2 = _reference_count(info1), _reference_count(info2)
    if (n1 == 0) != (n2 == 0):
        return None

    if strict:
        if set(function_names(info1.formula)) != set(function_names(info2.formula)):
            return None
        if n1 and n2 and max(n1, n2) > 2 * min(n1, n2):
            return None

    return fix
