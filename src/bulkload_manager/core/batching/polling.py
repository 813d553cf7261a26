# -*- coding: utf-8 -*-
"""
This module waits for the batches of a closed job to reach a terminal state.
The remote service is queried once per cycle for the state of every batch
of the job, so the number of calls does not grow with the number of batches.
"""

import logging
import threading
import time
from typing import Dict, Iterable, Optional

from ..errors import BatchWaitTimeout, OperationCancelled
from ..models import Batch, BatchState, Job
from ..service.base import BulkService
from .utils import (DEFAULT_RETRY_ATTEMPTS, DEFAULT_RETRY_MAX_WAIT,
                    retrying_on_transport_errors)

DEFAULT_POLL_INTERVAL = 10.0  # Seconds between two status queries


class CompletionPoller:
    """
    Polls batch states until all tracked batches are Completed or Failed.

    Args:
        service (BulkService): Remote bulk service adapter.
        poll_interval (float): Seconds to wait between status queries. The
            first query is sent immediately.
        max_wait (float | None): Give up after this many seconds. None waits
            for as long as it takes.
        retry_attempts (int): Attempts per status query on transport errors.
        retry_max_wait (float): Maximum backoff between those attempts.
    """

    def __init__(
            self,
            service: BulkService,
            poll_interval: float = DEFAULT_POLL_INTERVAL,
            max_wait: Optional[float] = None,
            retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
            retry_max_wait: float = DEFAULT_RETRY_MAX_WAIT
        ):
        if poll_interval < 0:
            raise ValueError("poll_interval must be >= 0")
        if max_wait is not None and max_wait < 0:
            raise ValueError("max_wait must be >= 0 or None")
        self.service = service
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._retrying = retrying_on_transport_errors(retry_attempts, retry_max_wait)

    def await_all(
            self,
            job: Job,
            batches: Optional[Iterable[Batch]] = None,
            cancel_event: Optional[threading.Event] = None
        ) -> Dict[str, BatchState]:
        """
        Block until every tracked batch has reached a terminal state.

        Each observed state is written back onto its `Batch`, so callers keep
        the latest known state even if the wait ends early.

        Args:
            job (Job): The closed job owning the batches.
            batches (Iterable[Batch]): Batches to track. Defaults to all the
                batches of the job.
            cancel_event (threading.Event): When set, the wait stops at once.

        Returns:
            dict: Mapping from batch ID to its terminal state.

        Raises:
            BatchWaitTimeout: If `max_wait` elapses with batches still pending.
            OperationCancelled: If `cancel_event` is set.
            TransportError: If a status query keeps failing after retries.
            RemoteServiceError: If the service rejects the status query.
        """
        if cancel_event is None:
            cancel_event = threading.Event()

        tracked = {batch.id: batch for batch in (job.batches if batches is None else batches)}
        pending = {batch_id for batch_id, batch in tracked.items() if not batch.state.is_terminal}
        terminal = {batch_id: batch.state for batch_id, batch in tracked.items()
                    if batch.state.is_terminal}

        started = time.monotonic()
        sleep_time = 0.0
        cycle = 0
        while pending:
            if self.max_wait is not None:
                remaining = self.max_wait - (time.monotonic() - started)
                sleep_time = max(0.0, min(sleep_time, remaining))
            if cancel_event.wait(sleep_time):
                raise OperationCancelled(f"Wait for job {job.id} cancelled "
                                         f"with {len(pending)} batches pending.")
            sleep_time = self.poll_interval
            cycle += 1

            logging.info(f"Awaiting results of job {job.id}: {len(pending)} batches pending (check #{cycle})")
            statuses = self._retrying(self.service.get_batch_states, job.id)

            for status in statuses:
                batch = tracked.get(status.batch_id)
                if batch is None:
                    continue
                batch.state = status.state
                batch.state_message = status.state_message
                if status.state.is_terminal and status.batch_id in pending:
                    pending.discard(status.batch_id)
                    terminal[status.batch_id] = status.state
                    log = logging.warning if status.state is BatchState.FAILED else logging.info
                    log(f"Batch {status.batch_id} {status.state.value}: "
                        f"{status.records_processed} processed, {status.records_failed} failed"
                        f"{f' ({status.state_message})' if status.state_message else ''}")

            if pending and self.max_wait is not None \
                    and time.monotonic() - started >= self.max_wait:
                raise BatchWaitTimeout(
                    f"{len(pending)} batches of job {job.id} still pending "
                    f"after {self.max_wait} seconds.",
                    pending=pending
                )

        logging.info(f"All {len(terminal)} batches of job {job.id} reached a terminal state")
        return terminal
