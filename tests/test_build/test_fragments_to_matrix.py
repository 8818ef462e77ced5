"""
Full pipeline tests: region list + cell list + fragment file -> output directory.
"""

from __future__ import annotations

import gzip
import random
from collections import Counter
from pathlib import Path

import pytest
from conftest import read_gzip_lines, write_gzip_lines, write_lines

from frag2mtx.build_matrix.fragments_to_matrix import fragments_to_matrix, main
from frag2mtx.core.fragments import FragmentFormatError


def _entries(matrix_path: Path) -> tuple[str, list[tuple[int, int, int]]]:
    """Return the dimension line and the sorted (row, col, value) triples."""
    lines = read_gzip_lines(matrix_path)
    body = [line for line in lines if not line.startswith("%")]
    triples = sorted(tuple(int(x) for x in line.split()) for line in body[1:])
    return body[0], triples


class TestFragmentsToMatrix:
    """End-to-end behaviour of a single run."""

    def test_worked_example(self, fragments_file, regions_file, cells_file, tmp_path: Path):
        outdir = tmp_path / "out"
        result = fragments_to_matrix(fragments_file, regions_file, cells_file, outdir)

        assert result["shape"] == (2, 2)
        assert result["nnz"] == 2
        assert read_gzip_lines(outdir / "features.tsv.gz") == ["chr1-100-200", "chr1-500-600"]
        dims, triples = _entries(outdir / "matrix.mtx.gz")
        assert dims == "2 2 2"
        # feature 1 / AAA contained -> 2, feature 1 / BBB crosses the edge -> 1
        assert triples == [(1, 1, 2), (1, 2, 1)]
        assert (outdir / "barcodes.tsv").read_bytes() == cells_file.read_bytes()

    def test_grouped(self, grouped_regions_file, cells_file, tmp_path: Path):
        fragments = write_gzip_lines(tmp_path / "frags.tsv.gz", [
            "chr1\t150\t180\tAAA",
            "chr2\t150\t180\tAAA",
            "chr1\t350\t360\tBBB",
            "chr1\t590\t700\tBBB",
        ])
        outdir = tmp_path / "grouped_out"
        result = fragments_to_matrix(fragments, grouped_regions_file, cells_file, outdir, group=True)

        assert result["shape"] == (3, 2)
        assert read_gzip_lines(outdir / "features.tsv.gz") == ["geneA", "geneB", "geneC"]
        _, triples = _entries(outdir / "matrix.mtx.gz")
        assert triples == [(1, 1, 4), (2, 2, 2), (3, 2, 1)]

    def test_creates_nested_output_directory(self, fragments_file, regions_file, cells_file, tmp_path: Path):
        outdir = tmp_path / "a" / "b" / "c"
        fragments_to_matrix(fragments_file, regions_file, cells_file, outdir)
        assert (outdir / "matrix.mtx.gz").exists()

    def test_output_is_a_file(self, fragments_file, regions_file, cells_file, tmp_path: Path):
        not_a_dir = write_lines(tmp_path / "file.txt", ["x"])
        with pytest.raises(NotADirectoryError):
            fragments_to_matrix(fragments_file, regions_file, cells_file, not_a_dir)

    def test_missing_input(self, regions_file, cells_file, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="fragment"):
            fragments_to_matrix(tmp_path / "missing.tsv.gz", regions_file, cells_file, tmp_path / "out")

    def test_bad_fragment_coordinate_aborts(self, regions_file, cells_file, tmp_path: Path):
        fragments = write_gzip_lines(tmp_path / "bad.tsv.gz", ["chr1\t150\t180\tAAA", "chr1\tx\t180\tBBB"])
        outdir = tmp_path / "out"
        with pytest.raises(FragmentFormatError):
            fragments_to_matrix(fragments, regions_file, cells_file, outdir)
        assert not (outdir / "matrix.mtx.gz").exists()

    def test_corrupt_fragment_file_aborts(self, regions_file, cells_file, tmp_path: Path):
        fragments = tmp_path / "corrupt.tsv.gz"
        fragments.write_bytes(b"definitely not gzip")
        with pytest.raises(RuntimeError, match="Failed to read fragment file"):
            fragments_to_matrix(fragments, regions_file, cells_file, tmp_path / "out")

    def test_duplicate_barcodes(self, regions_file, tmp_path: Path):
        cells = write_lines(tmp_path / "cells.txt", ["AAA", "BBB", "AAA"])
        fragments = write_gzip_lines(tmp_path / "frags.tsv.gz", ["chr1\t150\t180\tAAA"])
        outdir = tmp_path / "out"
        result = fragments_to_matrix(fragments, regions_file, cells, outdir)

        assert result["shape"] == (2, 3)
        dims, triples = _entries(outdir / "matrix.mtx.gz")
        assert dims == "2 3 1"
        assert triples == [(1, 3, 2)]


def test_thread_count_does_not_change_counts(tmp_path: Path):
    """Any worker count yields the same multiset of (row, col, value) triples."""
    rng = random.Random(42)
    regions = [f"chr{c}\t{s}\t{s + 300}" for c in (1, 2) for s in range(1000, 200_000, 1000)]
    cells = [f"CELL{i:04d}" for i in range(50)]
    fragments = []
    for _ in range(20000):
        chrom = rng.choice(["chr1", "chr2", "chr3"])
        start = rng.randrange(0, 210_000)
        barcode = rng.choice(cells + ["OTHER"])
        fragments.append(f"{chrom}\t{start}\t{start + rng.randrange(20, 800)}\t{barcode}\t1")

    bed = write_lines(tmp_path / "regions.bed", regions)
    cell_file = write_lines(tmp_path / "cells.txt", cells)
    frag_file = write_gzip_lines(tmp_path / "frags.tsv.gz", fragments)

    results = []
    for num_threads in (1, 2, 7):
        outdir = tmp_path / f"out_{num_threads}"
        fragments_to_matrix(frag_file, bed, cell_file, outdir, num_threads=num_threads)
        results.append(Counter(_entries(outdir / "matrix.mtx.gz")[1]))

    assert results[0] == results[1] == results[2]
    assert sum(results[0].values()) > 0


def test_multi_member_fragment_file(regions_file, cells_file, tmp_path: Path):
    fragments = tmp_path / "bgzip_like.tsv.gz"
    with open(fragments, "wb") as f:
        f.write(gzip.compress(b"chr1\t150\t180\tAAA\n"))
        f.write(gzip.compress(b"chr1\t190\t210\tBBB\n"))
    outdir = tmp_path / "out"
    fragments_to_matrix(fragments, regions_file, cells_file, outdir)
    _, triples = _entries(outdir / "matrix.mtx.gz")
    assert triples == [(1, 1, 2), (1, 2, 1)]


class TestCommandLine:
    """The frag2mtx entry point."""

    def test_main_success(self, fragments_file, regions_file, cells_file, tmp_path: Path):
        outdir = tmp_path / "cli_out"
        code = main([
            "-f", str(fragments_file),
            "-b", str(regions_file),
            "-c", str(cells_file),
            "-o", str(outdir),
            "-t", "2",
            "--quiet",
        ])
        assert code == 0
        assert sorted(p.name for p in outdir.iterdir()) == ["barcodes.tsv", "features.tsv.gz", "matrix.mtx.gz"]

    def test_main_group_flag(self, grouped_regions_file, cells_file, fragments_file, tmp_path: Path):
        outdir = tmp_path / "cli_grouped"
        code = main([
            "--fragments", str(fragments_file),
            "--bed", str(grouped_regions_file),
            "--cells", str(cells_file),
            "--outdir", str(outdir),
            "--group",
            "-q",
        ])
        assert code == 0
        assert read_gzip_lines(outdir / "features.tsv.gz") == ["geneA", "geneB", "geneC"]

    def test_main_missing_input(self, regions_file, cells_file, tmp_path: Path, capsys):
        code = main([
            "-f", str(tmp_path / "missing.tsv.gz"),
            "-b", str(regions_file),
            "-c", str(cells_file),
            "-o", str(tmp_path / "out"),
            "-q",
        ])
        assert code == 1
        assert "ERROR" in capsys.readouterr().out

    def test_main_bad_threads(self, fragments_file, regions_file, cells_file, tmp_path: Path, capsys):
        code = main([
            "-f", str(fragments_file),
            "-b", str(regions_file),
            "-c", str(cells_file),
            "-o", str(tmp_path / "out"),
            "-t", "0",
            "-q",
        ])
        assert code == 1
        assert "threads" in capsys.readouterr().out

    def test_main_fatal_error(self, regions_file, cells_file, tmp_path: Path, capsys):
        fragments = write_gzip_lines(tmp_path / "bad.tsv.gz", ["chr1\tx\t180\tAAA"])
        code = main([
            "-f", str(fragments),
            "-b", str(regions_file),
            "-c", str(cells_file),
            "-o", str(tmp_path / "out"),
            "-q",
        ])
        assert code == 1
        assert "ERROR" in capsys.readouterr().out

    def test_main_requires_arguments(self):
        with pytest.raises(SystemExit):
            main([])
