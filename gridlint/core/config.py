"""
gridlint/core/config.py

Loads gridlint/config/rules.yaml and turns the analysis section into an
AnalysisConfig. A missing or unreadable file means defaults; values of the
wrong type raise ConfigError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from gridlint.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).resolve().parents[1] / "config" / "rules.yaml"
DEFAULT_DEBUG_COLORS = ["#CBAACB", "#FFCCB6", "#ABDEE6", "#F3B0C3"]

_RE_HEX_COLOR = re.compile(r"^#?(?:[0-9A-Fa-f]{3}|[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")


def hex_color(value: Any) -> str:
    """
    "#abc", "AABBCC" or ARGB "FFAABBCC" as "#AABBCC".

    Raises ValueError for anything else.
    """
    s = str(value or "").strip()
    if not _RE_HEX_COLOR.match(s):
        raise ValueError(f"Not a hex color: {value!r}")
    s = s.lstrip("#").upper()
    if len(s) == 3:
        s = "".join(ch * 2 for ch in s)
    return "#" + s[-6:]


def load_rules_config(path: Optional[Path] = None) -> Dict[str, Any]:
    cfg_path = Path(path) if path else DEFAULT_RULES_PATH
    try:
        raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.debug("rules config %s not loaded: %s", cfg_path, e)
        return {}
    if not isinstance(raw, dict):
        return {}
    return raw


def cfg_get(cfg: Dict[str, Any], path: str, default: Any = None) -> Any:
    """Safely fetch a dotted-path value from nested dict configs."""
    if not path:
        return default
    cur: Any = cfg
    for key in str(path).split("."):
        if not isinstance(cur, dict) or key not in cur:
            return default
        cur = cur.get(key)
    return cur


def _as_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name}: expected a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name}: expected a number, got {value!r}") from None


def _as_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{name}: expected true/false, got {value!r}")
    return value


@dataclass(frozen=True)
class AnalysisConfig:
    reporting_threshold: float = 0.1
    use_styles: bool = False
    style_penalty: float = 0.25
    strict: bool = True
    scorer: str = "entropy"
    debug_colors: List[str] = field(default_factory=lambda: list(DEFAULT_DEBUG_COLORS))

    @staticmethod
    def from_dict(section: Optional[Dict[str, Any]]) -> "AnalysisConfig":
        section = section or {}
        base = AnalysisConfig()
        kwargs: Dict[str, Any] = {}
        if section.get("reporting_threshold") is not None:
            kwargs["reporting_threshold"] = _as_float("reporting_threshold", section["reporting_threshold"])
        if section.get("use_styles") is not None:
            kwargs["use_styles"] = _as_bool("use_styles", section["use_styles"])
        if section.get("style_penalty") is not None:
            penalty = _as_float("style_penalty", section["style_penalty"])
            if penalty <= 0:
                raise ConfigError(f"style_penalty must be positive, got {penalty}")
            kwargs["style_penalty"] = penalty
        if section.get("strict") is not None:
            kwargs["strict"] = _as_bool("strict", section["strict"])
        if section.get("scorer") is not None:
            kwargs["scorer"] = str(section["scorer"])
        colors = section.get("debug_colors")
        if colors is not None:
            if not isinstance(colors, list) or len(colors) != 4:
                raise ConfigError(f"debug_colors: expected a list of 4 colors, got {colors!r}")
            try:
                kwargs["debug_colors"] = [hex_color(c) for c in colors]
            except ValueError as e:
                raise ConfigError(f"debug_colors: {e}") from None
        return replace(base, **kwargs)

    def with_overrides(self, **overrides: Any) -> "AnalysisConfig":
        """Apply non-None overrides (CLI flags)."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_config(path: Optional[Path] = None, **overrides: Any) -> AnalysisConfig:
    raw = load_rules_config(path)
    return AnalysisConfig.from_dict(cfg_get(raw, "app.analysis", {})).with_overrides(**overrides)
