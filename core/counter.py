"""
Overlap counting of fragment insertion sites against the feature index.

Each fragment contributes one count per feature overlapping its start
position and one per feature overlapping its end position. When the start
lands in a feature that also holds the fragment end (``end < feature_end``),
that feature is credited twice straight away and the end lookup is skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator

import numpy as np
from scipy.sparse import coo_matrix

from frag2mtx._settings import settings

from .fragments import FragmentFormatError, FragmentRecord
from .intervals import FeatureIndex

logger = logging.getLogger(__name__)


class SparseCounts:
    """
    Feature x cell counts stored as one ``{column: count}`` dict per feature.

    Cells are only stored once they receive a count, so a missing entry means
    zero. Row order is feature-id order; order within a row is insertion order.
    """

    __slots__ = ("rows", "ncol")

    def __init__(self, nrow: int, ncol: int):
        self.rows: list[dict[int, int]] = [{} for _ in range(nrow)]
        self.ncol = ncol

    @property
    def nrow(self) -> int:
        return len(self.rows)

    @property
    def shape(self) -> tuple[int, int]:
        return (self.nrow, self.ncol)

    @property
    def nnz(self) -> int:
        """Number of stored (nonzero) entries."""
        return sum(len(row) for row in self.rows)

    def increment(self, row: int, column: int, by: int = 1) -> None:
        counts = self.rows[row]
        counts[column] = counts.get(column, 0) + by

    def get(self, row: int, column: int) -> int:
        return self.rows[row].get(column, 0)

    def __iter__(self) -> Iterator[tuple[int, int, int]]:
        """Iterate ``(row, column, value)`` triples in row-major order."""
        for row, counts in enumerate(self.rows):
            for column, value in counts.items():
                yield row, column, value

    def to_coo(self) -> coo_matrix:
        """Convert to a SciPy COO matrix of shape ``(nrow, ncol)``."""
        nnz = self.nnz
        rows = np.empty(nnz, dtype=np.int64)
        cols = np.empty(nnz, dtype=np.int64)
        vals = np.empty(nnz, dtype=np.uint32)
        for i, (row, column, value) in enumerate(self):
            rows[i] = row
            cols[i] = column
            vals[i] = value
        return coo_matrix((vals, (rows, cols)), shape=self.shape)


def count_fragments(
    lines: Iterable[str],
    feature_index: FeatureIndex,
    cells: dict[str, int],
    total_features: int,
    ncol: int | None = None,
    progress_interval: int | None = None,
) -> SparseCounts:
    """
    Count fragment insertion sites per feature and cell.

    Args:
        lines: Fragment lines in file order (e.g. a :class:`FragmentReader`).
        feature_index: Index built by :func:`build_feature_index`.
        cells: Barcode to column mapping; fragments from other barcodes are ignored.
        total_features: Number of matrix rows.
        ncol: Number of matrix columns (default ``max(cells.values()) + 1``).
        progress_interval: Records between progress messages
            (default ``settings.progress_interval``).

    Returns:
        The accumulated :class:`SparseCounts`.

    Raises:
        FragmentFormatError: If a fragment from a known cell has a start or end
            that is not an unsigned 32-bit integer.
    """
    if ncol is None:
        ncol = max(cells.values(), default=-1) + 1
    if progress_interval is None:
        progress_interval = settings.progress_interval

    counts = SparseCounts(total_features, ncol)
    rows = counts.rows
    get_cell = cells.get
    get_chrom = feature_index.get

    n_records = 0
    n_admitted = 0
    for line in lines:
        if line.startswith("#"):
            continue

        n_records += 1
        if n_records % progress_interval == 0:
            logger.info("Processed %g M fragments", n_records / 1_000_000)

        fields = line.split("\t", 4)
        if len(fields) < 4:
            continue
        column = get_cell(fields[3])
        if column is None:
            continue
        n_admitted += 1

        try:
            record = FragmentRecord.from_fields(fields)
        except FragmentFormatError as e:
            raise FragmentFormatError(f"Fragment record {n_records}: {e}") from e
        start = record.start
        end = record.end

        intervals = get_chrom(record.chromosome)
        if intervals is None:
            continue

        check_end = True
        for feature_id, feature_end in intervals.find(start, start + 1):
            row = rows[feature_id]
            row[column] = row.get(column, 0) + 1
            # Fragment ends inside this feature too: credit the end site now
            if end < feature_end:
                check_end = False
                row[column] += 1

        if check_end:
            for feature_id, _ in intervals.find(end, end + 1):
                row = rows[feature_id]
                row[column] = row.get(column, 0) + 1

    logger.info(
        "Counted %d fragment records, %d from listed cells, %d nonzero entries",
        n_records, n_admitted, counts.nnz,
    )
    return counts
