"""
Pytest configuration and fixtures for frag2mtx tests.

This module provides small region, cell and fragment files for testing the
counting pipeline end to end.
"""

from __future__ import annotations

import gzip
import importlib.util
import sys
from pathlib import Path

# Make the repository importable as ``frag2mtx`` when it is not installed
_test_dir = Path(__file__).parent
_project_root = _test_dir.parent
try:
    import frag2mtx  # noqa: F401
except ImportError:
    _spec = importlib.util.spec_from_file_location(
        "frag2mtx",
        _project_root / "__init__.py",
        submodule_search_locations=[str(_project_root)],
    )
    _module = importlib.util.module_from_spec(_spec)
    sys.modules["frag2mtx"] = _module
    _spec.loader.exec_module(_module)

import pytest


def write_lines(path: Path, lines: list[str]) -> Path:
    """Write lines (newline-terminated) to a plain text file."""
    path.write_text("".join(f"{line}\n" for line in lines))
    return path


def write_gzip_lines(path: Path, lines: list[str]) -> Path:
    """Write lines to a gzip-compressed text file."""
    with gzip.open(path, "wt") as f:
        for line in lines:
            f.write(f"{line}\n")
    return path


def read_gzip_lines(path: Path) -> list[str]:
    """Read all lines of a gzip-compressed text file."""
    with gzip.open(path, "rt") as f:
        return f.read().splitlines()


@pytest.fixture
def regions_file(tmp_path: Path) -> Path:
    """Two non-overlapping peaks on chr1."""
    return write_lines(tmp_path / "peaks.bed", ["chr1\t100\t200", "chr1\t500\t600"])


@pytest.fixture
def cells_file(tmp_path: Path) -> Path:
    return write_lines(tmp_path / "cells.txt", ["AAA", "BBB"])


@pytest.fixture
def fragments_file(tmp_path: Path) -> Path:
    """One fragment contained in peak 1, one crossing its right edge, plus noise."""
    return write_gzip_lines(
        tmp_path / "fragments.tsv.gz",
        [
            "# comment line",
            "chr1\t150\t180\tAAA\t1",
            "chr1\t190\t210\tBBB\t2",
            "chr1\t150\t180\tCCC\t1",
            "chr2\t150\t180\tAAA\t1",
        ],
    )


@pytest.fixture
def grouped_regions_file(tmp_path: Path) -> Path:
    return write_lines(
        tmp_path / "grouped.bed",
        [
            "chr1\t100\t200\tgeneA",
            "chr1\t300\t400\tgeneB",
            "chr2\t100\t200\tgeneA",
            "chr1\t500\t600\tgeneC",
        ],
    )


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset frag2mtx settings after each test."""
    from frag2mtx import settings

    original_values = {
        "num_threads": settings.num_threads,
        "compression_level": settings.compression_level,
        "block_size": settings.block_size,
        "flush_rows": settings.flush_rows,
        "progress_interval": settings.progress_interval,
    }

    yield

    for key, value in original_values.items():
        setattr(settings, key, value)
