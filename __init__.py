"""
frag2mtx - Count fragment insertion sites in genomic features for single cells.
"""

from __future__ import annotations

__version__ = "0.1.0"

from frag2mtx._settings import settings
from frag2mtx.core import (
    FeatureIndex,
    FragmentReader,
    SparseCounts,
    build_feature_index,
    count_fragments,
    load_cell_table,
    read_mtx,
    write_matrix_market,
)
from frag2mtx.build_matrix.fragments_to_matrix import fragments_to_matrix
from frag2mtx.build_matrix.read_matrix import read_matrix

__all__ = [
    "FeatureIndex",
    "FragmentReader",
    "SparseCounts",
    "__version__",
    "settings",
    "build_feature_index",
    "count_fragments",
    "fragments_to_matrix",
    "load_cell_table",
    "read_matrix",
    "read_mtx",
    "write_matrix_market",
]
