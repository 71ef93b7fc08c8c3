"""Tests for rules.yaml loading."""

from pathlib import Path

import pytest

from gridlint.core.config import (
    DEFAULT_DEBUG_COLORS,
    AnalysisConfig,
    cfg_get,
    hex_color,
    load_config,
    load_rules_config,
)
from gridlint.core.errors import ConfigError


def test_bundled_rules_match_defaults() -> None:
    raw = load_rules_config()
    assert cfg_get(raw, "app.reporting.max_fixes") == 200
    assert load_config() == AnalysisConfig()


def test_missing_file_means_defaults(tmp_path: Path) -> None:
    assert load_rules_config(tmp_path / "nope.yaml") == {}
    assert load_config(tmp_path / "nope.yaml") == AnalysisConfig()


def test_custom_file_and_overrides(tmp_path: Path) -> None:
    path = tmp_path / "rules.yaml"
    path.write_text("app:\n  analysis:\n    reporting_threshold: 0.3\n    scorer: size_ratio\n", encoding="utf-8")
    config = load_config(path, strict=False, use_styles=None)
    assert config.reporting_threshold == 0.3
    assert config.scorer == "size_ratio"
    assert config.strict is False
    assert config.use_styles is False
    assert config.debug_colors == DEFAULT_DEBUG_COLORS


def test_cfg_get_defaults() -> None:
    cfg = {"a": {"b": 1}}
    assert cfg_get(cfg, "a.b") == 1
    assert cfg_get(cfg, "a.c", "x") == "x"
    assert cfg_get(cfg, "a.b.c", None) is None
    assert cfg_get(cfg, "", 5) == 5


@pytest.mark.parametrize(
    "section",
    [
        {"use_styles": "yes-please"},
        {"reporting_threshold": "high"},
        {"reporting_threshold": True},
        {"style_penalty": 0},
        {"debug_colors": ["#000000"]},
        {"debug_colors": ["#12", "#000000", "#111111", "#222222"]},
        {"debug_colors": ["#CBAACB", "pink", "#ABDEE6", "#F3B0C3"]},
    ],
)
def test_bad_values_raise(section) -> None:
    with pytest.raises(ConfigError):
        AnalysisConfig.from_dict(section)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("#fff", "#FFFFFF"),
        ("abc", "#AABBCC"),
        ("#cbaacb", "#CBAACB"),
        ("FF00FF00", "#00FF00"),
    ],
)
def test_hex_color_normalizes(value, expected) -> None:
    assert hex_color(value) == expected


def test_short_debug_colors_are_expanded() -> None:
    cfg = AnalysisConfig.from_dict({"debug_colors": ["#fff", "#000", "#abc", "#CBAACB"]})
    assert cfg.debug_colors == ["#FFFFFF", "#000000", "#AABBCC", "#CBAACB"]
