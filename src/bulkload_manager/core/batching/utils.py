# -*- coding: utf-8 -*-

from tenacity import (Retrying, retry_if_exception_type, stop_after_attempt,
                      wait_exponential)

from ..errors import TransportError

DEFAULT_RETRY_ATTEMPTS = 5
DEFAULT_RETRY_MAX_WAIT = 60


def retrying_on_transport_errors(
        attempts: int = DEFAULT_RETRY_ATTEMPTS,
        max_wait: float = DEFAULT_RETRY_MAX_WAIT
    ) -> Retrying:
    """
    Build a tenacity controller retrying calls that raise `TransportError`.

    Waits grow exponentially from 1 second up to `max_wait`; the last error
    is re-raised once `attempts` calls have failed.

    Usage:
        retrying = retrying_on_transport_errors(attempts=3)
        statuses = retrying(service.get_batch_states, job_id)
    """
    return Retrying(
        retry=retry_if_exception_type(TransportError),
        wait=wait_exponential(min=min(1, max_wait), max=max_wait),
        stop=stop_after_attempt(attempts),
        reraise=True
    )
