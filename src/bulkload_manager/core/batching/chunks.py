# -*- coding: utf-8 -*-
"""
This module splits a delimited-text dataset into batch-sized chunks.
Every chunk repeats the dataset header so it can be loaded on its own,
and is bounded both by serialized size in bytes and by number of rows.
"""

import logging
import tempfile
from contextlib import contextmanager
from typing import Iterable, Iterator

from ..errors import ChunkingError
from ..models import Chunk

DEFAULT_MAX_BYTES_PER_BATCH = 10_000_000   # 10 million bytes per batch
DEFAULT_MAX_ROWS_PER_BATCH = 10_000        # 10 thousand rows per batch
DEFAULT_SPOOL_LIMIT = 1024**2              # Stage in memory up to 1MB, then on disk


def _strip_newline(line: str) -> str:
    if line.endswith('\r\n'):
        return line[:-2]
    if line.endswith('\n'):
        return line[:-1]
    return line


def _encoded_size(line: str) -> int:
    return len(line.encode('utf-8')) + 1


def chunk_dataset(
        lines: Iterable[str],
        max_bytes: int = DEFAULT_MAX_BYTES_PER_BATCH,
        max_rows: int = DEFAULT_MAX_ROWS_PER_BATCH
    ) -> Iterator[Chunk]:
    """
    Split a header + rows line stream into size and row bounded chunks.

    The header is read immediately so a malformed dataset fails before any
    remote call is made; data rows are consumed lazily, exactly once.

    Args:
        lines (Iterable[str]): Text lines of the dataset, header first.
        max_bytes (int): Maximum serialized size of a chunk, header included.
        max_rows (int): Maximum number of data rows per chunk.

    Returns:
        Iterator[Chunk]: Lazy, single-pass sequence of chunks.

    Raises:
        ValueError: If a limit is not a positive integer.
        ChunkingError: If the dataset has no header row.
    """
    if max_bytes is None or max_bytes <= 0:
        raise ValueError(f"max_bytes must be a positive integer, got {max_bytes}")
    if max_rows is None or max_rows <= 0:
        raise ValueError(f"max_rows must be a positive integer, got {max_rows}")

    rows = iter(lines)
    try:
        header = _strip_newline(next(rows))
    except StopIteration:
        raise ChunkingError("Dataset is empty: a header row is required.") from None
    if not header.strip():
        raise ChunkingError("Dataset header row is blank.")

    return _iter_chunks(header, rows, max_bytes, max_rows)


def _iter_chunks(header, rows, max_bytes, max_rows):
    header_bytes = _encoded_size(header)
    index = 0
    current = Chunk(index=index, header=header)
    current_bytes = header_bytes

    for line in rows:
        row = _strip_newline(line)
        row_bytes = _encoded_size(row)

        # Start a new chunk when our batch size limit is reached
        if current.rows and (current_bytes + row_bytes > max_bytes
                             or len(current.rows) >= max_rows):
            yield current
            index += 1
            current = Chunk(index=index, header=header)
            current_bytes = header_bytes

        if current_bytes + row_bytes > max_bytes:
            logging.warning(f"Row of {row_bytes} bytes exceeds max_bytes={max_bytes}; "
                            f"it will be sent alone in chunk {index}.")
        current.rows.append(row)
        current_bytes += row_bytes

    if current.rows:
        yield current


@contextmanager
def stage_chunk(chunk: Chunk, spool_limit: int = DEFAULT_SPOOL_LIMIT):
    """
    Stage a chunk as a readable binary stream for upload.

    The chunk is written to a spooled temporary file which stays in memory
    up to `spool_limit` bytes and rolls over to disk beyond it. The file is
    closed (and removed) on every exit path.

    Args:
        chunk (Chunk): The chunk to stage.
        spool_limit (int): In-memory threshold in bytes.

    Yields:
        BinaryIO: The staged CSV content positioned at the start.
    """
    staged = tempfile.SpooledTemporaryFile(max_size=spool_limit, mode='w+b',
                                           prefix='bulkload', suffix='.csv')
    try:
        for line in chunk.lines():
            staged.write(f"{line}\n".encode('utf-8'))
        staged.flush()
        staged.seek(0)
        yield staged
    finally:
        staged.close()
