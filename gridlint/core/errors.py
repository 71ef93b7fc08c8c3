"""
gridlint/core/errors.py

Error conditions raised by the analysis engine.

The engine does no I/O, so these only describe structurally invalid input:
  - AbsentKeyError: a Dictionary lookup for an address that is not present
  - InvalidRectangleError: corners given in the wrong order
  - AnalysisNotRunnableError: empty bounds / target outside bounds
  - ConfigError: rules.yaml values of the wrong type or range
"""

from __future__ import annotations


class GridlintError(Exception):
    """Base class for every error raised by gridlint."""


class AbsentKeyError(GridlintError, KeyError):
    def __init__(self, key: str) -> None:
        super().__init__(key)
        self.key = key

    def __str__(self) -> str:
        return f"no entry for address key {self.key!r}"


class InvalidRectangleError(GridlintError, ValueError):
    pass


class AnalysisNotRunnableError(GridlintError, ValueError):
    """The analysis cannot start; distinct from 'ran and found nothing'."""


class ConfigError(GridlintError, ValueError):
    pass
