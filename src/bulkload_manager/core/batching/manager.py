# -*- coding: utf-8 -*-

import logging
import threading
from concurrent.futures import (FIRST_COMPLETED, ThreadPoolExecutor,
                                as_completed, wait)
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from tqdm.auto import tqdm

from ..errors import (BatchWaitTimeout, BulkLoadError, OperationCancelled,
                      RemoteServiceError, TransportError)
from ..models import Batch, BatchState, BatchStatus, Chunk, Job, Operation
from ..service.base import BulkService
from ..utils.config import LoaderConfig
from ..utils.misc import mask_path
from .chunks import chunk_dataset
from .jobs import JobController
from .polling import CompletionPoller
from .report import BatchResult, Report
from .results import ResultReconciler
from .utils import retrying_on_transport_errors


class BulkLoadManager:
    """
    Loads a delimited-text dataset through a remote bulk service.

    The pipeline chunks the dataset, creates a job, submits every chunk as a
    batch, closes the job, waits for every batch to finish and reconciles the
    per-record results into a `Report`.

    Errors before the job is closed abort the run (the remote job is aborted
    first), except submission errors once at least one batch was accepted,
    which are recorded against their chunk. After the job is closed nothing
    aborts the run but cancellation: batches that never finish, or whose
    results cannot be read, are reported as unresolved.

    Args:
        service (BulkService): Remote bulk service adapter holding the session.
        config (LoaderConfig): Batching, polling and concurrency settings.
    """

    def __init__(self, service: BulkService, config: Optional[LoaderConfig] = None):
        self.service = service
        self.config = config if config is not None else LoaderConfig()
        self.controller = JobController(service, spool_limit=self.config.spool_limit)
        self.poller = CompletionPoller(
            service,
            poll_interval=self.config.poll_interval,
            max_wait=self.config.max_wait,
            retry_attempts=self.config.status_retry_attempts,
            retry_max_wait=self.config.retry_max_wait,
        )
        self.reconciler = ResultReconciler(service)

    def _retrying(self):
        # tenacity controllers keep per-call state: one per call, per thread
        return retrying_on_transport_errors(
            self.config.status_retry_attempts, self.config.retry_max_wait
        )

    #=========================================================================
    # Pipeline
    #=========================================================================

    def run(
            self,
            dataset: Iterable[str],
            object_type: str,
            operation: Operation | str = Operation.INSERT,
            max_bytes: Optional[int] = None,
            max_rows: Optional[int] = None,
            external_id_field: Optional[str] = None,
            cancel_event: Optional[threading.Event] = None
        ) -> Report:
        """
        Run the whole load for a dataset and return the aggregate report.

        Args:
            dataset (Iterable[str]): Text lines of the dataset, header first.
            object_type (str): Target object type, e.g. "Account".
            operation (Operation | str): Bulk operation, "insert" by default.
            max_bytes (int): Maximum batch size in bytes. Defaults to config.
            max_rows (int): Maximum data rows per batch. Defaults to config.
            external_id_field (str): External ID field, required for upserts.
            cancel_event (threading.Event): Set it to stop the run early.

        Returns:
            Report: One entry per submitted batch and per rejected chunk.

        Raises:
            ChunkingError: If the dataset has no header.
            RemoteServiceError, TransportError: If the job cannot be created,
                the first batch cannot be submitted or the job cannot be closed.
            OperationCancelled: If `cancel_event` is set during the run.
        """
        if cancel_event is None:
            cancel_event = threading.Event()
        if max_bytes is None:
            max_bytes = self.config.max_bytes_per_batch
        if max_rows is None:
            max_rows = self.config.max_rows_per_batch

        chunks = chunk_dataset(dataset, max_bytes=max_bytes, max_rows=max_rows)
        job = self.controller.create_job(object_type, operation, external_id_field)

        try:
            entries = self._submit_chunks(job, chunks, cancel_event)
            self.controller.close_job(job)
        except BaseException:
            # Ctrl-C included: never leave an open job with queued batches
            self._abort_after_failure(job)
            raise

        try:
            self.poller.await_all(job, cancel_event=cancel_event)
        except BatchWaitTimeout as e:
            logging.error(f"{e} They are reported as unresolved.")
        except (TransportError, RemoteServiceError) as e:
            logging.error(f"Could not observe batch states of job {job.id}: {e}. "
                          "Pending batches are reported as unresolved.")

        for batch in job.batches:
            if not batch.state.is_terminal:
                entries[batch.id] = BatchResult(
                    key=batch.id,
                    batch_id=batch.id,
                    chunk_index=batch.chunk_index,
                    state=batch.state,
                    failure=f"Batch did not reach a terminal state (last seen {batch.state.value})",
                )

        terminal = [batch for batch in job.batches if batch.state.is_terminal]
        for entry in self._reconcile_batches(job, terminal, cancel_event):
            entries[entry.key] = entry

        report = Report(
            job_id=job.id,
            object_type=job.object_type,
            operation=job.operation.value,
            batches=dict(sorted(entries.items(), key=lambda item: item[1].chunk_index)),
        )
        logging.info(f"Job {job.id} done: {report.created_count} created, "
                     f"{report.updated_count} updated, {report.failed_count} failed, "
                     f"{len(report.unresolved)} unresolved batches.")
        return report

    def run_file(self, path: str | Path, object_type: str, **kwargs) -> Report:
        """Run the load for a UTF-8 delimited-text file. See `run` for arguments."""
        path = Path(path)
        logging.info(f"Loading {mask_path(path)} into {object_type}")
        with open(path, 'r', encoding='utf-8', newline='') as dataset:
            return self.run(dataset, object_type, **kwargs)

    def get_batch_states(self, job_id: str) -> List[BatchStatus]:
        """Query the current state of every batch of an existing job."""
        return self._retrying()(self.service.get_batch_states, job_id)

    #=========================================================================
    # Submission
    #=========================================================================

    @staticmethod
    def _check_cancelled(cancel_event, job):
        if cancel_event.is_set():
            raise OperationCancelled(f"Run of job {job.id} cancelled.")

    def _abort_after_failure(self, job):
        try:
            self.controller.abort_job(job)
        except BulkLoadError as e:
            logging.error(f"Could not abort job {job.id}: {e}")

    def _record_failed_submission(self, job, chunk, error, entries):
        if not job.batches:
            logging.error(f"Submission of chunk {chunk.index} failed before any batch "
                          f"was accepted: {error}")
            raise error
        logging.error(f"Submission of chunk {chunk.index} failed: {error}")
        key = f"chunk-{chunk.index}"
        entries[key] = BatchResult(
            key=key, batch_id=None, chunk_index=chunk.index,
            failure=f"Submission failed: {error}",
        )

    def _collect_submission(self, job, chunk, future, entries):
        error = future.exception()
        if error is None:
            return
        if not isinstance(error, (RemoteServiceError, TransportError)):
            raise error
        self._record_failed_submission(job, chunk, error, entries)

    def _submit_chunks(self, job: Job, chunks: Iterable[Chunk], cancel_event) -> Dict[str, BatchResult]:
        """
        Submit every chunk as a batch of the job.

        Returns:
            dict: Report entries for chunks whose submission failed.
        """
        entries = {}
        max_workers = self.config.max_workers
        progress = tqdm(desc="Submitting batches", unit="batch")

        if max_workers == 1:
            with progress:
                for chunk in chunks:
                    self._check_cancelled(cancel_event, job)
                    try:
                        self.controller.submit_batch(job, chunk)
                    except (RemoteServiceError, TransportError) as e:
                        self._record_failed_submission(job, chunk, e, entries)
                    progress.update(1)
            return entries

        logging.info(f"Submitting batches in parallel (max_workers={max_workers})...")
        with progress, ThreadPoolExecutor(max_workers=max_workers) as executor:
            in_flight = {}
            for chunk in chunks:
                self._check_cancelled(cancel_event, job)
                # Keep a bounded number of chunks in memory
                if len(in_flight) >= 2 * max_workers:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        self._collect_submission(job, in_flight.pop(future), future, entries)
                        progress.update(1)
                in_flight[executor.submit(self.controller.submit_batch, job, chunk)] = chunk

            for future in as_completed(list(in_flight)):
                self._collect_submission(job, in_flight.pop(future), future, entries)
                progress.update(1)

        job.batches.sort(key=lambda batch: batch.chunk_index)
        return entries

    #=========================================================================
    # Reconciliation
    #=========================================================================

    def _reconcile_batch(self, job: Job, batch: Batch) -> BatchResult:
        batch_failure = None
        if batch.state is BatchState.FAILED:
            batch_failure = batch.state_message or "Batch failed"

        try:
            outcomes = self._retrying()(lambda: tuple(self.reconciler.reconcile(job, batch)))
        except (RemoteServiceError, TransportError) as e:
            logging.error(f"Could not read results of batch {batch.id}: {e}")
            reason = f"Results unavailable: {e}"
            return BatchResult(
                key=batch.id, batch_id=batch.id, chunk_index=batch.chunk_index,
                state=batch.state,
                failure=f"{batch_failure}; {reason}" if batch_failure else reason,
            )

        if len(outcomes) != batch.row_count:
            logging.warning(f"Batch {batch.id} returned {len(outcomes)} results "
                            f"for {batch.row_count} submitted rows")
        return BatchResult(
            key=batch.id, batch_id=batch.id, chunk_index=batch.chunk_index,
            state=batch.state, outcomes=outcomes, failure=batch_failure,
            reconciled=True,
        )

    def _reconcile_batches(self, job: Job, batches: List[Batch], cancel_event) -> List[BatchResult]:
        results = []
        max_workers = self.config.max_workers

        if max_workers == 1 or len(batches) <= 1:
            for batch in tqdm(batches, desc="Reconciling batches", unit="batch"):
                self._check_cancelled(cancel_event, job)
                results.append(self._reconcile_batch(job, batch))
            return results

        logging.info(f"Reconciling {len(batches)} batches in parallel (max_workers={max_workers})...")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(self._reconcile_batch, job, batch) for batch in batches]
            try:
                for future in tqdm(as_completed(futures), total=len(futures),
                                   desc="Reconciling batches", unit="batch"):
                    self._check_cancelled(cancel_event, job)
                    results.append(future.result())
            except OperationCancelled:
                for future in futures:
                    future.cancel()
                raise
        return results

