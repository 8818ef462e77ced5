"""
Fragment file records and the background decompression thread.

A fragment file is gzip-compressed (single or multi-member), tab-separated
text with columns ``chrom, start, end, barcode, ...``; lines starting with
``#`` are comments. :class:`FragmentReader` decompresses it on a dedicated
thread and hands lines to the caller through an unbounded FIFO queue, one
line per message, in file order.
"""

from __future__ import annotations

import gzip
import logging
import queue
import threading
from pathlib import Path
from typing import NamedTuple

from .utils import parse_u32, strip_newline

logger = logging.getLogger(__name__)


class FragmentFormatError(ValueError):
    """A fragment record has coordinates that cannot be parsed."""


class FragmentRecord(NamedTuple):
    """The four leading fields of a fragment line."""

    chromosome: str
    start: int
    end: int
    barcode: str

    @classmethod
    def from_fields(cls, fields: list[str]) -> FragmentRecord:
        """
        Build a record from the split fields of a fragment line.

        ``fields`` needs at least four entries; anything after the barcode is
        ignored.

        Raises:
            FragmentFormatError: If start or end is not an unsigned 32-bit integer.
        """
        try:
            start = parse_u32(fields[1])
            end = parse_u32(fields[2])
        except ValueError as e:
            raise FragmentFormatError(str(e)) from e
        return cls(fields[0], start, end, fields[3])

    @classmethod
    def from_line(cls, line: str) -> FragmentRecord | None:
        """
        Parse a fragment line.

        Returns None for comment lines and lines with fewer than four fields.
        """
        if line.startswith("#"):
            return None
        fields = strip_newline(line).split("\t", 4)
        if len(fields) < 4:
            return None
        return cls.from_fields(fields)


# Marks the end of the stream on the queue
_DONE = object()


class FragmentReader:
    """
    Decompress a fragment file on a background thread.

    Iterating yields decoded lines (newline removed) in file order. The
    iterator ends once the producer has finished and the queue is drained.
    If the producer failed (missing file, corrupt gzip data, invalid text)
    the failure is re-raised from the iterator as :class:`RuntimeError` after
    all lines read before the failure have been delivered.

    Use as a context manager so the producer is stopped and joined even if
    the consumer stops early::

        with FragmentReader("fragments.tsv.gz") as reader:
            for line in reader:
                ...
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._queue: queue.Queue = queue.Queue()  # unbounded
        self._stop = threading.Event()
        self._error: BaseException | None = None
        self._thread = threading.Thread(
            target=self._produce, name="frag2mtx-decompress", daemon=True
        )
        self._started = False
        self._drained = False
        self.lines_read = 0

    def _produce(self) -> None:
        try:
            # gzip treats concatenated members as one stream
            with gzip.open(self.path, "rt", encoding="utf-8", newline="\n") as handle:
                for line in handle:
                    if self._stop.is_set():
                        # Consumer has gone away
                        break
                    self._queue.put(strip_newline(line))
                    self.lines_read += 1
        except BaseException as e:
            self._error = e
        finally:
            self._queue.put(_DONE)

    def start(self) -> FragmentReader:
        if not self._started:
            self._started = True
            self._thread.start()
        return self

    def close(self) -> None:
        """Ask the producer to stop and wait for it."""
        self._stop.set()
        if self._started:
            self._thread.join()

    def __enter__(self) -> FragmentReader:
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self):
        self.start()
        get = self._queue.get
        while not self._drained:
            line = get()
            if line is _DONE:
                self._drained = True
                break
            yield line
        self._thread.join()
        if self._error is not None:
            raise RuntimeError(
                f"Failed to read fragment file {self.path}: {self._error}"
            ) from self._error
