"""
Cell barcode table: barcode -> matrix column.
"""

from __future__ import annotations

from pathlib import Path

from .utils import strip_newline


def load_cell_table(cell_file: str | Path) -> dict[str, int]:
    """
    Load newline-delimited cell barcodes.

    Line ``i`` (0-based) maps its barcode to column ``i``. A barcode listed
    more than once keeps the index of its last occurrence.

    Args:
        cell_file: Path to the barcode list.

    Returns:
        Dict mapping barcode to 0-based column index, in file order.
    """
    cells: dict[str, int] = {}
    with open(cell_file, "r") as f:
        for index, line in enumerate(f):
            cells[strip_newline(line)] = index
    return cells


def n_columns(cells: dict[str, int]) -> int:
    """Number of matrix columns needed for ``cells``.

    Equals ``len(cells)`` when barcodes are unique, and the number of lines in
    the barcode file otherwise, so every column index stays in range and lines
    up with the copied barcode file.
    """
    return max(cells.values(), default=-1) + 1
