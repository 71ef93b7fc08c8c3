"""Shared fixtures for gridlint tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict

import pytest
from openpyxl import Workbook

from gridlint.core.geometry import Address
from gridlint.core.vectors import Dictionary


def _formulas(cells: Dict[str, str]) -> Dictionary[str]:
    d: Dictionary[str] = Dictionary()
    for a1, text in cells.items():
        d.put(Address.parse(a1).vector(), text[1:] if text.startswith("=") else text)
    return d


def _block_with_outlier() -> Dict[str, str]:
    """B2:D4, every cell adds 1 to its left neighbor except C3, which reads from above."""
    cells: Dict[str, str] = {}
    for row in (2, 3, 4):
        for col, left in (("B", "A"), ("C", "B"), ("D", "C")):
            cells[f"{col}{row}"] = f"={left}{row}+1"
    cells["C3"] = "=C2+1"
    return cells


@pytest.fixture
def make_formulas() -> Callable[[Dict[str, str]], Dictionary[str]]:
    """Build a formula Dictionary from {"A1": "=..."}."""
    return _formulas


@pytest.fixture
def outlier_cells() -> Dict[str, str]:
    return _block_with_outlier()


@pytest.fixture
def outlier_formulas() -> Dictionary[str]:
    return _formulas(_block_with_outlier())


@pytest.fixture
def outlier_workbook(tmp_path: Path) -> Path:
    """An .xlsx on disk with the outlier block on Sheet1 and an empty Sheet2."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Sheet1"
    for a1, text in _block_with_outlier().items():
        ws[a1] = text
    wb.create_sheet("Sheet2")
    path = tmp_path / "book.xlsx"
    wb.save(path)
    return path
