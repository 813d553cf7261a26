# -*- coding: utf-8 -*-

"""
Data model shared by the chunker, job controller, poller and reconciler.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class Operation(str, Enum):
    """Kind of bulk operation a job performs on its target object."""
    INSERT = 'insert'
    UPDATE = 'update'
    UPSERT = 'upsert'
    DELETE = 'delete'
    HARD_DELETE = 'hardDelete'


class JobState(str, Enum):
    OPEN = 'Open'
    CLOSED = 'Closed'
    ABORTED = 'Aborted'


class BatchState(str, Enum):
    QUEUED = 'Queued'
    IN_PROGRESS = 'InProgress'
    COMPLETED = 'Completed'
    FAILED = 'Failed'

    @property
    def is_terminal(self) -> bool:
        return self in (BatchState.COMPLETED, BatchState.FAILED)


@dataclass
class Chunk:
    """
    A header-prefixed slice of the input dataset.

    Rows are stored without their line terminator; serialization appends a
    single newline to the header and to every row.
    """
    index: int
    header: str
    rows: List[str] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def size(self) -> int:
        """Serialized size in bytes (UTF-8), header included."""
        return sum(len(line.encode('utf-8')) + 1 for line in self.lines())

    def lines(self):
        yield self.header
        yield from self.rows

    def to_bytes(self) -> bytes:
        return ''.join(f"{line}\n" for line in self.lines()).encode('utf-8')


@dataclass
class Batch:
    """One submitted chunk, tracked by the remote service."""
    id: str
    job_id: str
    chunk_index: int
    row_count: int
    state: BatchState = BatchState.QUEUED
    state_message: Optional[str] = None


@dataclass
class Job:
    """One remote bulk operation; owns the batches submitted to it."""
    id: str
    object_type: str
    operation: Operation
    external_id_field: Optional[str] = None
    state: JobState = JobState.OPEN
    batches: List[Batch] = field(default_factory=list)


@dataclass(frozen=True)
class BatchStatus:
    """A single entry of a bulk status query."""
    batch_id: str
    state: BatchState
    state_message: Optional[str] = None
    records_processed: int = 0
    records_failed: int = 0


@dataclass(frozen=True)
class RecordOutcome:
    """Result of loading one data row."""
    row_number: int
    success: bool
    created: bool
    id: Optional[str] = None
    error: Optional[str] = None

    @property
    def status(self) -> str:
        if not self.success:
            return 'failed'
        return 'created' if self.created else 'updated'
