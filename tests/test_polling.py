"""Tests for the completion poller."""
import threading

import pytest

from bulkload_manager.core.batching.jobs import JobController
from bulkload_manager.core.batching.polling import CompletionPoller
from bulkload_manager.core.errors import (BatchWaitTimeout, OperationCancelled,
                                          RemoteServiceError, TransportError)
from bulkload_manager.core.models import BatchState, BatchStatus, Chunk

from conftest import FakeBulkService


def _closed_job(service, n_batches):
    controller = JobController(service)
    job = controller.create_job('Account', 'insert')
    for i in range(n_batches):
        controller.submit_batch(job, Chunk(index=i, header='Name', rows=[f"r{i}"]))
    controller.close_job(job)
    return job


def test_waits_until_all_batches_are_terminal():
    service = FakeBulkService(polls_until_done=2, failed_batches={1})
    job = _closed_job(service, 3)

    states = CompletionPoller(service, poll_interval=0).await_all(job)

    assert states == {
        'B0': BatchState.COMPLETED,
        'B1': BatchState.FAILED,
        'B2': BatchState.COMPLETED,
    }
    assert service.status_queries == 3
    assert job.batches[1].state is BatchState.FAILED
    assert job.batches[1].state_message


def test_one_bulk_query_per_cycle():
    service = FakeBulkService(polls_until_done=0)
    job = _closed_job(service, 50)
    CompletionPoller(service, poll_interval=0).await_all(job)
    assert service.status_queries == 1


def test_no_batches_returns_immediately():
    service = FakeBulkService()
    job = _closed_job(service, 0)
    assert CompletionPoller(service, poll_interval=0).await_all(job) == {}
    assert service.status_queries == 0


def test_timeout_raises_without_fabricating_states():
    service = FakeBulkService(never_complete=True)
    job = _closed_job(service, 2)

    with pytest.raises(TimeoutError) as exc_info:
        CompletionPoller(service, poll_interval=0.01, max_wait=0.05).await_all(job)

    assert isinstance(exc_info.value, BatchWaitTimeout)
    assert exc_info.value.pending == ['B0', 'B1']
    assert all(batch.state is BatchState.IN_PROGRESS for batch in job.batches)


def test_cancel_event_interrupts_the_wait():
    service = FakeBulkService(never_complete=True)
    job = _closed_job(service, 1)
    cancel_event = threading.Event()
    timer = threading.Timer(0.05, cancel_event.set)
    timer.start()
    try:
        with pytest.raises(OperationCancelled):
            CompletionPoller(service, poll_interval=60).await_all(job, cancel_event=cancel_event)
    finally:
        timer.cancel()
    assert service.status_queries == 1


def test_transport_errors_are_retried():
    service = FakeBulkService(polls_until_done=0)
    job = _closed_job(service, 1)
    service.status_errors = [TransportError("timeout"), TransportError("timeout")]

    poller = CompletionPoller(service, poll_interval=0, retry_attempts=3, retry_max_wait=0)
    assert poller.await_all(job) == {'B0': BatchState.COMPLETED}
    assert service.status_queries == 3


def test_transport_errors_give_up_after_attempts():
    service = FakeBulkService(polls_until_done=0)
    job = _closed_job(service, 1)
    service.status_errors = [TransportError("down")] * 3

    poller = CompletionPoller(service, poll_interval=0, retry_attempts=2, retry_max_wait=0)
    with pytest.raises(TransportError):
        poller.await_all(job)
    assert service.status_queries == 2


def test_remote_errors_are_not_retried():
    service = FakeBulkService(polls_until_done=0)
    job = _closed_job(service, 1)
    service.status_errors = [RemoteServiceError("InvalidSessionId", status_code=400)]

    with pytest.raises(RemoteServiceError):
        CompletionPoller(service, poll_interval=0, retry_max_wait=0).await_all(job)
    assert service.status_queries == 1


def test_only_tracked_batches_are_awaited():
    service = FakeBulkService(polls_until_done=0)
    job = _closed_job(service, 3)
    states = CompletionPoller(service, poll_interval=0).await_all(job, batches=job.batches[:1])
    assert states == {'B0': BatchState.COMPLETED}


class _MissingBatchService(FakeBulkService):
    """Omits batch B1 from the first status listing."""

    def get_batch_states(self, job_id):
        statuses = super().get_batch_states(job_id)
        if self.status_queries == 1:
            return [s for s in statuses if s.batch_id != 'B1']
        return statuses + [BatchStatus('UNKNOWN', BatchState.COMPLETED)]


def test_missing_batches_stay_pending_and_unknown_ids_are_ignored():
    service = _MissingBatchService(polls_until_done=0)
    job = _closed_job(service, 2)
    states = CompletionPoller(service, poll_interval=0).await_all(job)
    assert states == {'B0': BatchState.COMPLETED, 'B1': BatchState.COMPLETED}
    assert service.status_queries == 2


@pytest.mark.parametrize("kwargs", [{'poll_interval': -1}, {'max_wait': -5}])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        CompletionPoller(FakeBulkService(), **kwargs)
