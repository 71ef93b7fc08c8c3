"""Tests for the staged fat-cross analysis and the whole-sheet pass."""

import pytest

from gridlint.core.config import AnalysisConfig
from gridlint.core.errors import AnalysisNotRunnableError
from gridlint.core.geometry import Address, Range, Rectangle
from gridlint.core.vectors import Dictionary, Vector
from gridlint.detectors.incremental import (
    Definitely,
    FatCrossAnalysis,
    NoAnomaly,
    OldColor,
    Possibly,
    full_analysis,
)

TARGET = Address("S", 3, 3)
BOUNDS = Range.parse("S!B2:D4")


class TestFullAnalysis:
    def test_finds_the_outlier(self, outlier_formulas) -> None:
        fixes = full_analysis(outlier_formulas)
        assert len(fixes) == 1
        assert fixes[0].rect1 == Rectangle.single(Vector(2, 2))

    def test_uniform_block_is_clean(self, make_formulas) -> None:
        formulas = make_formulas({f"{c}{r}": f"={p}{r}+1" for r in (1, 2, 3) for c, p in (("B", "A"), ("C", "B"))})
        assert full_analysis(formulas) == []

    def test_threshold_can_silence(self, outlier_formulas) -> None:
        assert full_analysis(outlier_formulas, config=AnalysisConfig(reporting_threshold=0.99)) == []

    def test_style_penalty_drops_below_threshold(self, outlier_formulas) -> None:
        styles: Dictionary[str] = Dictionary()
        for key in outlier_formulas.keys():
            styles.put(key, "plain")
        styles.put(Vector(2, 2), "bold")
        config = AnalysisConfig(use_styles=True)
        fixes = full_analysis(outlier_formulas, styles, config)
        assert len(fixes) == 1
        assert fixes[0].score < full_analysis(outlier_formulas)[0].score


class TestFatCrossAnalysis:
    def test_stage_kinds(self, outlier_formulas) -> None:
        analysis = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS)
        results = list(analysis)
        assert [type(r) for r in results] == [Possibly, Possibly, Possibly, Definitely]
        assert analysis.done
        assert analysis.stage == 4
        assert not results[0].conclusive
        assert results[-1].conclusive

    def test_first_stage_agrees_with_full_run(self, outlier_formulas) -> None:
        first = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS).advance()
        final = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS).run()
        assert isinstance(final, Definitely)
        assert first.fixes
        assert {f.rect1 for f in first.fixes} <= {f.rect1 for f in final.fixes}

    def test_fixes_touch_target(self, outlier_formulas) -> None:
        final = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS).run()
        assert len(final.fixes) == 1
        assert all(f.includes_cell_at(TARGET) for f in final.fixes)

    def test_clean_target_ends_with_no_anomaly(self, outlier_formulas) -> None:
        # D4 is part of the block; the outlier pairs with the top row, which misses D4
        analysis = FatCrossAnalysis(outlier_formulas, Address("S", 4, 4), BOUNDS)
        final = analysis.run()
        assert isinstance(final, NoAnomaly)
        assert final.fixes == ()

    def test_advance_after_done_repeats_conclusion(self, outlier_formulas) -> None:
        analysis = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS)
        final = analysis.run()
        assert analysis.advance() == final
        assert analysis.stage == 4

    def test_matches_full_analysis(self, outlier_formulas) -> None:
        staged = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS).run()
        full = [f for f in full_analysis(outlier_formulas) if f.includes_cell_at(TARGET)]
        assert {f.rect1 for f in staged.fixes} == {f.rect1 for f in full}

    def test_colorizer_sees_every_arm(self, outlier_formulas) -> None:
        painted = []

        def colorize(rng: Range, color: str) -> OldColor:
            painted.append((rng.to_a1(), color))
            return OldColor(None, rng)

        config = AnalysisConfig()
        analysis = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS, config=config, colorizer=colorize)
        analysis.run()
        assert painted == list(zip(["B2:D3", "B2:C4", "B3:D4", "C2:D4"], config.debug_colors))
        assert len(analysis.old_colors) == 4

    def test_failed_stage_is_recorded_and_skipped(self, outlier_formulas) -> None:
        calls = []

        def colorize(rng: Range, color: str) -> OldColor:
            calls.append(rng)
            if len(calls) == 2:
                raise RuntimeError("paint failed")
            return OldColor(None, rng)

        analysis = FatCrossAnalysis(outlier_formulas, TARGET, BOUNDS, colorizer=colorize)
        first = analysis.advance()
        rects_before = analysis.rects
        second = analysis.advance()
        assert isinstance(second, Possibly)
        assert second.fixes == first.fixes
        assert analysis.rects is rects_before
        assert len(analysis.errors) == 1
        assert analysis.errors[0]["type"] == "left_arm_failed"
        assert analysis.errors[0]["ref"] == "S!B2:C4"
        assert isinstance(analysis.run(), Definitely)

    def test_not_runnable(self, outlier_formulas) -> None:
        with pytest.raises(AnalysisNotRunnableError):
            FatCrossAnalysis(outlier_formulas, Address("S", 9, 9), BOUNDS)
        with pytest.raises(AnalysisNotRunnableError):
            FatCrossAnalysis(outlier_formulas, TARGET, None)
