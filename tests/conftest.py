"""Shared fixtures: an in-memory bulk service and dataset helpers."""
import csv
import io
import threading

import pytest

from bulkload_manager.core.errors import RemoteServiceError
from bulkload_manager.core.models import BatchState, BatchStatus
from bulkload_manager.core.service.base import BulkService


class FakeResultStream:
    def __init__(self, lines):
        self._lines = lines
        self.closed = False

    def __iter__(self):
        return iter(self._lines)

    def close(self):
        self.closed = True


class FakeBulkService(BulkService):
    """
    In-memory bulk service.

    Batches report InProgress for `polls_until_done` status queries and then
    Completed (or Failed for submission indexes in `failed_batches`). Results
    are generated from the uploaded CSV: one successful creation per row, or
    one failure per row for failed batches.
    """

    def __init__(self, polls_until_done=1, failed_batches=(), never_complete=False):
        self.polls_until_done = polls_until_done
        self.failed_batches = set(failed_batches)
        self.never_complete = never_complete
        self.submission_errors = {}   # submission index -> exception
        self.status_errors = []       # raised (in order) by the next status queries
        self.result_errors = {}       # batch id -> exception
        self.reject_job = None
        self.uploads = {}             # batch id -> uploaded bytes
        self.batch_index = {}         # batch id -> submission index
        self.calls = []
        self.status_queries = 0
        self.streams = []
        self._submissions = 0
        self._lock = threading.Lock()

    def create_job(self, object_type, operation, external_id_field=None):
        self.calls.append(('create_job', object_type, operation.value, external_id_field))
        if self.reject_job is not None:
            raise self.reject_job
        return 'JOB1'

    def submit_batch(self, job_id, stream):
        with self._lock:
            index = self._submissions
            self._submissions += 1
        data = stream.read()
        if index in self.submission_errors:
            raise self.submission_errors[index]
        batch_id = f"B{index}"
        with self._lock:
            self.uploads[batch_id] = data
            self.batch_index[batch_id] = index
            self.calls.append(('submit_batch', job_id, batch_id))
        return batch_id

    def close_job(self, job_id):
        self.calls.append(('close_job', job_id))

    def abort_job(self, job_id):
        self.calls.append(('abort_job', job_id))

    def _state_of(self, batch_id):
        if self.never_complete or self.status_queries <= self.polls_until_done:
            return BatchState.IN_PROGRESS
        if self.batch_index[batch_id] in self.failed_batches:
            return BatchState.FAILED
        return BatchState.COMPLETED

    def get_batch_states(self, job_id):
        self.status_queries += 1
        self.calls.append(('get_batch_states', job_id))
        if self.status_errors:
            raise self.status_errors.pop(0)
        statuses = []
        for batch_id in self.uploads:
            state = self._state_of(batch_id)
            message = 'InvalidBatch : Failed to process' if state is BatchState.FAILED else None
            statuses.append(BatchStatus(batch_id, state, state_message=message))
        return statuses

    def get_batch_result_stream(self, job_id, batch_id):
        self.calls.append(('get_batch_result_stream', job_id, batch_id))
        if batch_id in self.result_errors:
            raise self.result_errors[batch_id]
        if batch_id not in self.uploads:
            raise RemoteServiceError(f"Unknown batch {batch_id}", status_code=404)

        rows = list(csv.reader(io.StringIO(self.uploads[batch_id].decode('utf-8'))))[1:]
        failed = self.batch_index[batch_id] in self.failed_batches
        lines = ['"Id","Success","Created","Error"\n']
        for n, _ in enumerate(rows):
            if failed:
                lines.append('"","false","false","INVALID_FIELD:Bad value"\n')
            else:
                lines.append(f'"001{batch_id}{n:06d}","true","true",""\n')
        stream = FakeResultStream(lines)
        self.streams.append(stream)
        return stream


@pytest.fixture
def service():
    return FakeBulkService()


def make_dataset(n_rows, header='Name'):
    """Header + `n_rows` data lines, newline-terminated like a text file."""
    return [f"{header}\n"] + [f"Name {i}\n" for i in range(n_rows)]
