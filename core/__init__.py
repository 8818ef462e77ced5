"""
Core modules for frag2mtx.
"""

from __future__ import annotations

from .cells import load_cell_table, n_columns
from .counter import SparseCounts, count_fragments
from .features import build_feature_index, read_regions
from .fragments import FragmentFormatError, FragmentReader, FragmentRecord
from .gzip_writer import ParallelGzipWriter
from .intervals import ChromosomeIntervals, FeatureIndex, GenomicInterval
from .mtx import read_mtx, write_matrix_market

__all__ = [
    "ChromosomeIntervals",
    "FeatureIndex",
    "FragmentFormatError",
    "FragmentReader",
    "FragmentRecord",
    "GenomicInterval",
    "ParallelGzipWriter",
    "SparseCounts",
    "build_feature_index",
    "count_fragments",
    "load_cell_table",
    "n_columns",
    "read_mtx",
    "read_regions",
    "write_matrix_market",
]
