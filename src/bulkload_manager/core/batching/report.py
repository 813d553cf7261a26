# -*- coding: utf-8 -*-

"""
Aggregate report of a bulk load run.
"""

from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

import polars as pl

from ..models import BatchState, RecordOutcome


@dataclass(frozen=True)
class BatchResult:
    """
    Report entry for one batch, or for a chunk whose submission failed.

    Attributes:
        key (str): Batch ID, or `chunk-<index>` when no batch was created.
        batch_id (str | None): Remote batch ID, if the chunk was accepted.
        chunk_index (int): Position of the chunk in the dataset.
        state (BatchState | None): Last observed state.
        outcomes (tuple[RecordOutcome]): Reconciled per-record outcomes.
        failure (str | None): Why the entry has no (or partial) outcomes.
        reconciled (bool): Whether the result stream was read to the end.
    """
    key: str
    batch_id: Optional[str]
    chunk_index: int
    state: Optional[BatchState] = None
    outcomes: Tuple[RecordOutcome, ...] = ()
    failure: Optional[str] = None
    reconciled: bool = False

    @property
    def submitted(self) -> bool:
        return self.batch_id is not None

    @property
    def resolved(self) -> bool:
        """True when the batch reached a terminal state and was reconciled."""
        return self.reconciled and self.state is not None and self.state.is_terminal

    def counts(self) -> Counter:
        return Counter(outcome.status for outcome in self.outcomes)


@dataclass(frozen=True)
class Report:
    """Immutable aggregate of every batch entry of a job."""
    job_id: str
    object_type: str
    operation: str
    batches: Mapping[str, BatchResult] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'batches', MappingProxyType(dict(self.batches)))

    def _count(self, status) -> int:
        return sum(entry.counts()[status] for entry in self.batches.values())

    @property
    def created_count(self) -> int:
        return self._count('created')

    @property
    def updated_count(self) -> int:
        return self._count('updated')

    @property
    def failed_count(self) -> int:
        return self._count('failed')

    @property
    def total_count(self) -> int:
        return sum(len(entry.outcomes) for entry in self.batches.values())

    @property
    def unresolved(self) -> list:
        """Keys of entries without reconciled outcomes (unsubmitted, pending or unreadable)."""
        return [key for key, entry in self.batches.items() if not entry.resolved]

    def outcomes(self) -> Iterator[Tuple[str, RecordOutcome]]:
        for key, entry in self.batches.items():
            for outcome in entry.outcomes:
                yield key, outcome

    def failures(self) -> Iterator[Tuple[str, RecordOutcome]]:
        return ((key, outcome) for key, outcome in self.outcomes() if not outcome.success)

    def summary(self) -> dict:
        """
        Summary dictionary of the run.

        Returns:
            dict: Job info, record counts and per-state batch counts.
        """
        batch_states = Counter(
            entry.state.value if entry.state else 'NotSubmitted'
            for entry in self.batches.values()
        )
        return {
            "job_id": self.job_id,
            "object": self.object_type,
            "operation": self.operation,
            "batches": {
                "total": len(self.batches),
                "states": dict(batch_states),
                "unresolved": self.unresolved,
            },
            "records": {
                "total": self.total_count,
                "created": self.created_count,
                "updated": self.updated_count,
                "failed": self.failed_count,
            },
        }

    def to_df(self) -> pl.DataFrame:
        """One row per record outcome, with the batch key and chunk index."""
        rows = [
            {
                "batch": key,
                "chunk_index": self.batches[key].chunk_index,
                "row_number": outcome.row_number,
                "status": outcome.status,
                "success": outcome.success,
                "created": outcome.created,
                "id": outcome.id,
                "error": outcome.error,
            }
            for key, outcome in self.outcomes()
        ]
        schema = {
            "batch": pl.Utf8, "chunk_index": pl.Int64, "row_number": pl.Int64,
            "status": pl.Utf8, "success": pl.Boolean, "created": pl.Boolean,
            "id": pl.Utf8, "error": pl.Utf8,
        }
        return pl.DataFrame(rows, schema=schema)
