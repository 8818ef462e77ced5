"""
Per-chromosome interval collections for overlap queries.

Intervals are half-open ``[start, end)`` and each carries the id of the feature
(matrix row) it belongs to. Once built, a collection is sorted by
``(start, end)`` and answers overlap queries with a binary search on the start
coordinates, bounded on the left by the longest interval in the collection.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import NamedTuple

import numpy as np


class GenomicInterval(NamedTuple):
    """A region of interest on one chromosome."""

    chromosome: str
    start: int
    end: int
    feature_id: int


class ChromosomeIntervals:
    """
    Immutable, queryable interval collection for a single chromosome.

    Ordering is ``(start, end)`` with ties kept in insertion order, so overlap
    hits are reported in a deterministic order for identical input.
    """

    __slots__ = ("_starts", "_start_list", "_end_list", "_id_list", "max_len")

    def __init__(self, starts, ends, feature_ids):
        starts = np.asarray(starts, dtype=np.int64)
        ends = np.asarray(ends, dtype=np.int64)
        feature_ids = np.asarray(feature_ids, dtype=np.int64)
        if not (len(starts) == len(ends) == len(feature_ids)):
            raise ValueError("starts, ends and feature_ids must have the same length")

        # lexsort is stable: primary key is the last one
        order = np.lexsort((ends, starts))
        self._starts = starts[order]
        # Plain lists are much faster than numpy scalars in the per-hit loop
        self._start_list = self._starts.tolist()
        self._end_list = ends[order].tolist()
        self._id_list = feature_ids[order].tolist()
        if len(starts):
            self.max_len = int(np.maximum(ends - starts, 0).max())
        else:
            self.max_len = 0

    def __len__(self) -> int:
        return len(self._start_list)

    def __iter__(self) -> Iterator[tuple[int, int, int]]:
        """Iterate ``(start, end, feature_id)`` in query order."""
        return iter(zip(self._start_list, self._end_list, self._id_list))

    def find(self, start: int, stop: int) -> list[tuple[int, int]]:
        """
        Find all intervals intersecting ``[start, stop)``.

        Args:
            start: Query start (inclusive).
            stop: Query end (exclusive).

        Returns:
            List of ``(feature_id, interval_end)`` tuples, ordered by interval
            ``(start, end)``.
        """
        starts = self._start_list
        ends = self._end_list
        n = len(starts)
        i = int(np.searchsorted(self._starts, start - self.max_len, side="left"))
        hits = []
        while i < n and starts[i] < stop:
            if ends[i] > start:
                hits.append((self._id_list[i], ends[i]))
            i += 1
        return hits


class FeatureIndex:
    """
    Mapping from chromosome name to its :class:`ChromosomeIntervals`.

    Build one with :meth:`from_intervals` (or with
    :func:`frag2mtx.core.features.build_feature_index` from a BED file).
    """

    def __init__(self, chromosomes: dict[str, ChromosomeIntervals] | None = None):
        self._chromosomes = dict(chromosomes or {})

    @classmethod
    def from_intervals(cls, intervals: Iterable[GenomicInterval]) -> FeatureIndex:
        """Group intervals by chromosome and finalize each group for querying."""
        grouped: dict[str, tuple[list[int], list[int], list[int]]] = {}
        for chromosome, start, end, feature_id in intervals:
            starts, ends, ids = grouped.setdefault(chromosome, ([], [], []))
            starts.append(start)
            ends.append(end)
            ids.append(feature_id)
        return cls({
            chromosome: ChromosomeIntervals(starts, ends, ids)
            for chromosome, (starts, ends, ids) in grouped.items()
        })

    def __contains__(self, chromosome: object) -> bool:
        return chromosome in self._chromosomes

    def __len__(self) -> int:
        return len(self._chromosomes)

    def __getitem__(self, chromosome: str) -> ChromosomeIntervals:
        return self._chromosomes[chromosome]

    def get(self, chromosome: str) -> ChromosomeIntervals | None:
        return self._chromosomes.get(chromosome)

    @property
    def chromosomes(self) -> list[str]:
        return list(self._chromosomes)

    @property
    def n_intervals(self) -> int:
        """Total number of intervals across all chromosomes."""
        return sum(len(c) for c in self._chromosomes.values())

    def find(self, chromosome: str, start: int, stop: int) -> list[tuple[int, int]] | None:
        """
        Query one chromosome for intervals intersecting ``[start, stop)``.

        Returns None when the chromosome has no intervals at all, otherwise the
        (possibly empty) list of ``(feature_id, interval_end)`` hits.
        """
        intervals = self._chromosomes.get(chromosome)
        if intervals is None:
            return None
        return intervals.find(start, stop)
