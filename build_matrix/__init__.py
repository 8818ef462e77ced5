"""
Build and load feature x cell matrices from fragment files.
"""

from __future__ import annotations

from .fragments_to_matrix import fragments_to_matrix, main
from .read_matrix import read_matrix

__all__ = ["fragments_to_matrix", "main", "read_matrix"]
