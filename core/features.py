"""
Build the per-chromosome feature index from a BED-like region list.

Each accepted region becomes one interval. In ungrouped mode every region is
its own feature, labelled ``{chrom}-{start}-{end}``. In grouped mode regions
sharing the name in the fourth column collapse into one feature, labelled with
that name and numbered in order of first appearance.

The feature labels are written (gzip-compressed) while the region list is
read, so the file is only traversed once.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .gzip_writer import ParallelGzipWriter
from .intervals import FeatureIndex, GenomicInterval
from .utils import parse_u32, strip_newline

logger = logging.getLogger(__name__)


def read_regions(bed_file: str | Path, group: bool = False):
    """
    Parse a region list into feature labels and intervals.

    Lines with fewer than three tab-separated fields, with start/end values
    that are not unsigned 32-bit integers, or (in grouped mode) without a
    fourth column are logged and skipped. A present fourth column is used as
    the group name verbatim, so whitespace is significant and an empty field
    is a group of its own.

    Args:
        bed_file: Path to the tab-separated region list (``chrom, start, end[, group]``).
        group: Collapse regions by the name in the fourth column.

    Yields:
        ``(label, interval)`` pairs. ``label`` is the feature label to emit, or
        None when the interval reuses an already-labelled group.
    """
    group_index: dict[str, int] = {}
    next_feature = 0

    with open(bed_file, "r") as f:
        for index, line in enumerate(f):
            fields = strip_newline(line).split("\t")
            if len(fields) < 3:
                logger.warning("Line %d: Less than three fields", index + 1)
                continue

            chromosome = fields[0]
            try:
                start = parse_u32(fields[1])
            except ValueError:
                logger.warning("Line %d: Failed to parse start position", index + 1)
                continue
            try:
                end = parse_u32(fields[2])
            except ValueError:
                logger.warning("Line %d: Failed to parse end position", index + 1)
                continue

            if group:
                if len(fields) < 4:
                    logger.warning("Line %d: Failed to parse group information", index + 1)
                    continue
                # Group names are keys exactly as written, empty included
                name = fields[3]
                feature_id = group_index.get(name)
                label = None
                if feature_id is None:
                    feature_id = group_index[name] = next_feature
                    next_feature += 1
                    label = name
                yield label, GenomicInterval(chromosome, start, end, feature_id)
            else:
                yield (
                    f"{chromosome}-{start}-{end}",
                    GenomicInterval(chromosome, start, end, next_feature),
                )
                next_feature += 1


def build_feature_index(
    bed_file: str | Path,
    feature_file: str | Path,
    group: bool = False,
    num_threads: int | None = None,
) -> tuple[int, FeatureIndex]:
    """
    Build the feature index and write the feature labels.

    Args:
        bed_file: Path to the region list.
        feature_file: Destination for gzip-compressed feature labels, one per
            line in feature-id order.
        group: Group regions by the name in the fourth column.
        num_threads: Compression threads for the label file.

    Returns:
        ``(total_features, index)`` where ``total_features`` is the number of
        accepted regions (ungrouped) or distinct group names (grouped).
    """
    intervals: list[GenomicInterval] = []
    total_features = 0

    with ParallelGzipWriter(feature_file, num_threads=num_threads) as writer:
        for label, interval in read_regions(bed_file, group=group):
            intervals.append(interval)
            if label is not None:
                writer.write(f"{label}\n")
                total_features += 1

    index = FeatureIndex.from_intervals(intervals)
    logger.info(
        "Indexed %d regions on %d chromosomes as %d features",
        len(intervals), len(index), total_features,
    )
    return total_features, index
