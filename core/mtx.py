"""
Matrix Market (coordinate, integer) output for feature x cell counts.
"""

from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path

from scipy.io import mmread
from scipy.sparse import csr_matrix

from frag2mtx._settings import settings

from .counter import SparseCounts
from .gzip_writer import ParallelGzipWriter

logger = logging.getLogger(__name__)

MTX_HEADER = "%%MatrixMarket matrix coordinate integer general"


def _metadata_line() -> str:
    from frag2mtx import __version__

    metadata = {"software_version": f"frag2mtx-{__version__}"}
    return f"%metadata_json: {json.dumps(metadata)}"


def write_matrix_market(
    outfile: str | Path,
    counts: SparseCounts,
    nrow: int | None = None,
    ncol: int | None = None,
    num_threads: int | None = None,
    flush_rows: int | None = None,
) -> int:
    """
    Write counts as a gzip-compressed Matrix Market coordinate file.

    Rows are features and columns are cells; indices in the file are 1-based.
    Entries are written row by row, in insertion order within a row.

    Args:
        outfile: Output path (conventionally ``matrix.mtx.gz``).
        counts: Accumulated counts.
        nrow: Number of rows in the header (default ``counts.nrow``).
        ncol: Number of columns in the header (default ``counts.ncol``).
        num_threads: Compression threads (default ``settings.num_threads``).
        flush_rows: Rows of text buffered between writes to the compressor
            (default ``settings.flush_rows``).

    Returns:
        Number of nonzero entries written.
    """
    nrow = counts.nrow if nrow is None else nrow
    ncol = counts.ncol if ncol is None else ncol
    flush_rows = settings.flush_rows if flush_rows is None else flush_rows

    nonzero = counts.nnz

    with ParallelGzipWriter(outfile, num_threads=num_threads) as encoder:
        encoder.write(f"{MTX_HEADER}\n{_metadata_line()}\n{nrow} {ncol} {nonzero}\n")

        output: list[str] = []
        for index, row in enumerate(counts.rows):
            feature = index + 1
            for column, value in row.items():
                output.append(f"{feature} {column + 1} {value}\n")
            if (index + 1) % flush_rows == 0 and output:
                encoder.write("".join(output))
                output.clear()

        if output:
            encoder.write("".join(output))

    logger.info("Wrote %d x %d matrix with %d nonzero entries", nrow, ncol, nonzero)
    return nonzero


def read_mtx(path: str | Path) -> csr_matrix:
    """
    Read a (optionally gzip-compressed) Matrix Market file as CSR.

    Args:
        path: Path to ``.mtx`` or ``.mtx.gz``.

    Returns:
        The matrix exactly as stored (features x cells for frag2mtx output).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Matrix file not found: {path}")
    if path.suffix == ".gz":
        with gzip.open(path, "rb") as handle:
            matrix = mmread(handle)
    else:
        matrix = mmread(str(path))
    return csr_matrix(matrix)
