"""
Parallel gzip compression for large text outputs.

Input is cut into fixed-size blocks, each block is compressed on a worker
thread as an independent gzip member, and members are written to the file in
submission order. The concatenation is a valid multi-member gzip stream that
``gzip``, ``zcat`` and ``scipy.io.mmread`` read as one continuous file.
"""

from __future__ import annotations

import gzip
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from frag2mtx._settings import settings


def _compress_block(block: bytes, level: int) -> bytes:
    # mtime=0 keeps output byte-identical across runs
    return gzip.compress(block, compresslevel=level, mtime=0)


class ParallelGzipWriter:
    """
    Ordered, synchronous-looking gzip writer backed by a thread pool.

    Use as a context manager; leaving the block normally finishes the stream,
    leaving it with an exception cancels pending work and still closes the file.

    Args:
        path: Output file path.
        num_threads: Number of compression workers (default ``settings.num_threads``).
        compression_level: Gzip level 0-9 (default ``settings.compression_level``).
        block_size: Uncompressed bytes per gzip member (default ``settings.block_size``).
    """

    def __init__(
        self,
        path: str | Path,
        num_threads: int | None = None,
        compression_level: int | None = None,
        block_size: int | None = None,
    ):
        self.path = Path(path)
        self.num_threads = settings.num_threads if num_threads is None else num_threads
        self.compression_level = (
            settings.compression_level if compression_level is None else compression_level
        )
        self.block_size = settings.block_size if block_size is None else block_size

        if self.num_threads < 1:
            raise ValueError(f"num_threads must be at least 1, got {self.num_threads}")
        if not 0 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be between 0 and 9, got {self.compression_level}")
        if self.block_size < 1:
            raise ValueError(f"block_size must be positive, got {self.block_size}")

        self._buffer = bytearray()
        self._pending: deque[Future] = deque()
        self._max_pending = 2 * self.num_threads
        self._members_written = 0
        self.bytes_in = 0
        self.closed = False

        self._file = open(self.path, "wb")
        self._executor = ThreadPoolExecutor(
            max_workers=self.num_threads, thread_name_prefix="frag2mtx-gzip"
        )

    def __enter__(self) -> ParallelGzipWriter:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.abort()

    def write(self, data: str | bytes) -> int:
        """Queue text or bytes for compression. Returns the number of bytes accepted."""
        if self.closed:
            raise ValueError("write to closed ParallelGzipWriter")
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer += data
        self.bytes_in += len(data)
        while len(self._buffer) >= self.block_size:
            block = bytes(self._buffer[:self.block_size])
            del self._buffer[:self.block_size]
            self._submit(block)
        return len(data)

    def _submit(self, block: bytes) -> None:
        self._pending.append(
            self._executor.submit(_compress_block, block, self.compression_level)
        )
        # Bound memory: keep at most a couple of blocks in flight per worker
        while len(self._pending) > self._max_pending:
            self._write_next()

    def _write_next(self) -> None:
        member = self._pending.popleft().result()
        self._file.write(member)
        self._members_written += 1

    def flush(self) -> None:
        """Compress any partial block and write all finished members to disk."""
        if self._buffer:
            self._submit(bytes(self._buffer))
            self._buffer.clear()
        while self._pending:
            self._write_next()
        self._file.flush()

    def close(self) -> None:
        """Finish the gzip stream and close the file."""
        if self.closed:
            return
        try:
            self.flush()
            if self._members_written == 0:
                # An empty stream still needs one member to be valid gzip
                self._file.write(_compress_block(b"", self.compression_level))
        finally:
            self.closed = True
            self._executor.shutdown(wait=True)
            self._file.close()

    def abort(self) -> None:
        """Drop pending work and close the file without finishing the stream."""
        if self.closed:
            return
        self.closed = True
        for future in self._pending:
            future.cancel()
        self._pending.clear()
        self._executor.shutdown(wait=True)
        self._file.close()
