# -*- coding: utf-8 -*-

"""
Capability interface of a remote asynchronous bulk-processing service.
"""

from abc import ABC, abstractmethod
from typing import BinaryIO, Iterable, List, Optional

from ..models import BatchStatus, Operation


class BulkService(ABC):
    """
    Remote bulk service used by the job controller, poller and reconciler.

    Concrete adapters own the transport and the caller's session. They must
    raise `TransportError` for connectivity failures and `RemoteServiceError`
    when the service rejects a request.
    """

    @abstractmethod
    def create_job(
            self,
            object_type: str,
            operation: Operation,
            external_id_field: Optional[str] = None
        ) -> str:
        """Create a job descriptor and return the job ID assigned remotely."""

    @abstractmethod
    def submit_batch(self, job_id: str, stream: BinaryIO) -> str:
        """Upload one staged CSV chunk as a batch and return its batch ID."""

    @abstractmethod
    def close_job(self, job_id: str) -> None:
        """Close the job so no more batches can be added."""

    @abstractmethod
    def abort_job(self, job_id: str) -> None:
        """Abort the job; unprocessed batches are not processed."""

    @abstractmethod
    def get_batch_states(self, job_id: str) -> List[BatchStatus]:
        """Return the current state of every batch of the job in one call."""

    @abstractmethod
    def get_batch_result_stream(self, job_id: str, batch_id: str) -> Iterable[str]:
        """
        Open the per-record result stream of a terminal batch.

        The returned object yields text lines (header first) and exposes a
        `close()` method that releases the underlying connection.
        """
