#!/usr/bin/env python3
"""
Fragments to matrix: create a feature x cell count matrix from a fragment file.

Writes three files to the output directory:
- features.tsv.gz: one feature label per matrix row
- matrix.mtx.gz: Matrix Market coordinate counts (features x cells)
- barcodes.tsv: verbatim copy of the cell barcode file (one per column)
"""

import argparse
import logging
import shutil
import sys
from pathlib import Path

from frag2mtx._settings import settings
from frag2mtx.core.cells import load_cell_table, n_columns
from frag2mtx.core.counter import count_fragments
from frag2mtx.core.features import build_feature_index
from frag2mtx.core.fragments import FragmentReader
from frag2mtx.core.mtx import write_matrix_market

logger = logging.getLogger(__name__)

FEATURES_FILE = "features.tsv.gz"
MATRIX_FILE = "matrix.mtx.gz"
BARCODES_FILE = "barcodes.tsv"


def prepare_output_directory(output_dir):
    """Create ``output_dir`` if needed and make sure it is a directory."""
    output_path = Path(output_dir)
    if output_path.exists() and not output_path.is_dir():
        raise NotADirectoryError(f"Provided output is not a directory: {output_path}")
    output_path.mkdir(parents=True, exist_ok=True)
    return output_path


def write_cells(outfile, cell_file):
    """Copy the cell barcode file to the output directory unchanged."""
    shutil.copyfile(cell_file, outfile)
    logger.info("Copied %d bytes to %s", Path(outfile).stat().st_size, outfile)


def fragments_to_matrix(
    fragments,
    bed,
    cells,
    output_dir,
    group=False,
    num_threads=None,
):
    """
    Count fragment insertion sites in genomic features for each listed cell.

    Args:
        fragments: Gzip-compressed fragment file (chrom, start, end, barcode, ...).
        bed: Region list (chrom, start, end[, group]).
        cells: File of cell barcodes to include, one per line.
        output_dir: Output directory; created if it does not exist.
        group: Collapse regions sharing the name in the fourth BED column.
        num_threads: Compression threads (default ``settings.num_threads``).

    Returns:
        dict with output paths and matrix dimensions::

            {"features": Path, "matrix": Path, "barcodes": Path,
             "shape": (n_features, n_cells), "nnz": int}
    """
    fragments = Path(fragments)
    bed = Path(bed)
    cells = Path(cells)
    for label, path in (("fragment", fragments), ("BED", bed), ("cell", cells)):
        if not path.exists():
            raise FileNotFoundError(f"Can't find input {label} file: {path}")

    output_path = prepare_output_directory(output_dir)
    if num_threads is None:
        num_threads = settings.num_threads

    logger.info(
        "Processing fragment file: %s, BED file: %s, Cell file: %s", fragments, bed, cells
    )

    # Features are written while the BED file is indexed
    feature_path = output_path / FEATURES_FILE
    logger.info("Writing output feature file: %s", feature_path)
    total_features, feature_index = build_feature_index(
        bed, feature_path, group=group, num_threads=num_threads
    )

    cell_table = load_cell_table(cells)
    ncol = n_columns(cell_table)
    logger.info("Loaded %d cell barcodes", len(cell_table))

    with FragmentReader(fragments) as reader:
        counts = count_fragments(reader, feature_index, cell_table, total_features, ncol=ncol)

    counts_path = output_path / MATRIX_FILE
    logger.info("Writing output counts file: %s", counts_path)
    nnz = write_matrix_market(counts_path, counts, total_features, ncol, num_threads=num_threads)

    cell_path = output_path / BARCODES_FILE
    logger.info("Writing output cells file: %s", cell_path)
    write_cells(cell_path, cells)

    return {
        "features": feature_path,
        "matrix": counts_path,
        "barcodes": cell_path,
        "shape": (total_features, ncol),
        "nnz": nnz,
    }


def main(argv=None):
    """Main function with command-line interface."""
    from frag2mtx import __version__

    parser = argparse.ArgumentParser(
        prog="frag2mtx",
        description='Fragments to matrix: create a feature x cell matrix from a fragment file.'
    )
    parser.add_argument(
        '-f', '--fragments',
        required=True,
        help='Path to the fragment file'
    )
    parser.add_argument(
        '-b', '--bed',
        required=True,
        help='BED file containing non-overlapping genomic regions to quantify'
    )
    parser.add_argument(
        '-c', '--cells',
        required=True,
        help='File containing cell barcodes to include'
    )
    parser.add_argument(
        '-o', '--outdir',
        required=True,
        help='Output directory name. Directory will be created if it does not exist. '
             'The output directory will contain matrix.mtx.gz, features.tsv.gz, barcodes.tsv'
    )
    parser.add_argument(
        '-t', '--threads',
        type=int,
        default=settings.num_threads,
        help=f'Number of compression threads to use (default: {settings.num_threads})'
    )
    parser.add_argument(
        '--group',
        action='store_true',
        help='Group peaks by variable in fourth BED column'
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Log debug messages')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log warnings and errors')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s - %(levelname)s: %(message)s')

    if args.threads < 1:
        print(f"ERROR: Number of threads must be at least 1, got {args.threads}")
        return 1

    for label, path in (("fragment", args.fragments), ("BED", args.bed), ("cell", args.cells)):
        if not Path(path).exists():
            print(f"ERROR: Can't find path to input {label} file: {path}")
            return 1

    logger.info("Grouping peaks: %s", args.group)

    try:
        result = fragments_to_matrix(
            Path(args.fragments).resolve(),
            Path(args.bed).resolve(),
            Path(args.cells).resolve(),
            args.outdir,
            group=args.group,
            num_threads=args.threads,
        )
    except Exception as e:
        print(f"ERROR: {e}")
        logger.debug("Run failed", exc_info=True)
        return 1

    n_features, n_cells = result["shape"]
    logger.info(
        "Done: %d features x %d cells, %d nonzero entries", n_features, n_cells, result["nnz"]
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
