# -*- coding: utf-8 -*-
"""
This module manages the lifecycle of a remote bulk job: creating the job
descriptor, submitting chunks as batches, and closing or aborting the job.
No retries happen here: transport and service errors reach the caller.
"""

import logging
import threading
from typing import Optional

from ..errors import JobStateError
from ..models import Batch, Chunk, Job, JobState, Operation
from ..service.base import BulkService
from .chunks import DEFAULT_SPOOL_LIMIT, stage_chunk


class JobController:
    """
    Creates jobs and submits batches through a `BulkService`.

    Args:
        service (BulkService): Remote bulk service adapter.
        spool_limit (int): In-memory threshold used when staging chunks.
    """

    def __init__(self, service: BulkService, spool_limit: int = DEFAULT_SPOOL_LIMIT):
        self.service = service
        self.spool_limit = spool_limit
        self._lock = threading.Lock()

    def create_job(
            self,
            object_type: str,
            operation: Operation | str,
            external_id_field: Optional[str] = None
        ) -> Job:
        """
        Create a new job for the given object type and operation.

        Raises:
            ValueError: If the operation is unknown, or is an upsert without
                an external ID field.
            RemoteServiceError: If the service rejects the job descriptor.
        """
        operation = Operation(operation)
        if operation is Operation.UPSERT and not external_id_field:
            raise ValueError("Upsert jobs require an external ID field.")
        if not object_type:
            raise ValueError("An object type is required to create a job.")

        job_id = self.service.create_job(object_type, operation, external_id_field)
        job = Job(
            id=job_id,
            object_type=object_type,
            operation=operation,
            external_id_field=external_id_field,
        )
        logging.info(f"Created {operation.value} job {job.id} for {object_type}")
        return job

    def submit_batch(self, job: Job, chunk: Chunk) -> Batch:
        """
        Stage a chunk and submit it as a new batch of the job.

        Safe to call from several threads for the same job.

        Raises:
            JobStateError: If the job is not open.
            RemoteServiceError, TransportError: If the upload fails.
        """
        if job.state is not JobState.OPEN:
            raise JobStateError(f"Cannot submit batches to job {job.id} in state {job.state.value}.")

        with stage_chunk(chunk, spool_limit=self.spool_limit) as stream:
            batch_id = self.service.submit_batch(job.id, stream)

        batch = Batch(
            id=batch_id,
            job_id=job.id,
            chunk_index=chunk.index,
            row_count=chunk.row_count,
        )
        with self._lock:
            job.batches.append(batch)
        logging.debug(f"Submitted chunk {chunk.index} ({chunk.row_count} rows) as batch {batch_id}")
        return batch

    def close_job(self, job: Job) -> None:
        """Close the job for further submissions. Must be called exactly once."""
        if job.state is not JobState.OPEN:
            raise JobStateError(f"Job {job.id} is already {job.state.value}.")
        self.service.close_job(job.id)
        job.state = JobState.CLOSED
        logging.info(f"Closed job {job.id} with {len(job.batches)} batches")

    def abort_job(self, job: Job) -> None:
        """Abort the job on the remote service."""
        if job.state is JobState.ABORTED:
            return
        self.service.abort_job(job.id)
        job.state = JobState.ABORTED
        logging.warning(f"Aborted job {job.id}")
