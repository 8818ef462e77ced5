"""
Load a frag2mtx output directory for downstream analysis.
"""

from __future__ import annotations

from pathlib import Path

import anndata as ad
import pandas as pd

from frag2mtx.core.mtx import read_mtx

from .fragments_to_matrix import BARCODES_FILE, FEATURES_FILE, MATRIX_FILE


def read_matrix(output_dir: str | Path) -> ad.AnnData:
    """
    Read ``matrix.mtx.gz``, ``features.tsv.gz`` and ``barcodes.tsv`` as AnnData.

    The stored matrix is features x cells; the returned object follows the
    AnnData convention of cells (obs) x features (var).

    Args:
        output_dir: Directory written by :func:`fragments_to_matrix`.

    Returns:
        AnnData with a CSR ``X``, barcodes as ``obs_names`` and feature labels
        as ``var_names``.
    """
    output_path = Path(output_dir)
    if not output_path.exists():
        raise FileNotFoundError(f"Directory not found: {output_path}")
    if not output_path.is_dir():
        raise ValueError(f"Path is not a directory: {output_path}")

    X = read_mtx(output_path / MATRIX_FILE).T.tocsr()
    barcodes = _read_names(output_path / BARCODES_FILE)
    features = _read_names(output_path / FEATURES_FILE)

    if X.shape != (len(barcodes), len(features)):
        raise ValueError(
            f"Matrix shape {X.shape} does not match {len(barcodes)} barcodes "
            f"and {len(features)} features"
        )

    obs = pd.DataFrame(index=pd.Index(barcodes, name="barcode"))
    var = pd.DataFrame(index=pd.Index(features, name="feature"))
    return ad.AnnData(X=X, obs=obs, var=var)


def _read_names(path: Path) -> list[str]:
    """Read a one-column name file (plain or gzip-compressed)."""
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        names = pd.read_csv(
            path, sep="\t", header=None, usecols=[0], dtype=str,
            keep_default_na=False, compression="infer",
        )
    except pd.errors.EmptyDataError:
        return []
    return names[0].tolist()
