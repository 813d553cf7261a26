# -*- coding: utf-8 -*-

"""
Error kinds raised by the bulk load pipeline.
"""


class BulkLoadError(Exception):
    """Base class for every error raised by bulkload_manager."""


class TransportError(BulkLoadError):
    """Network or connectivity failure while talking to the remote service."""


class RemoteServiceError(BulkLoadError):
    """
    The remote service rejected a request.

    Attributes:
        status_code (int | None): HTTP status code, when the adapter has one.
        exception_code (str | None): Service specific error code.
    """

    def __init__(self, message, status_code=None, exception_code=None):
        super().__init__(message)
        self.status_code = status_code
        self.exception_code = exception_code


class ChunkingError(BulkLoadError):
    """The input dataset is malformed (e.g. missing header row)."""


class JobStateError(BulkLoadError):
    """A job or batch was used outside of its lifecycle."""


class OperationCancelled(BulkLoadError):
    """A caller-provided cancel event was set while waiting."""


class BatchWaitTimeout(BulkLoadError, TimeoutError):
    """
    Batches did not reach a terminal state within the configured wait.

    Attributes:
        pending (list[str]): Batch IDs still not terminal when the wait ended.
    """

    def __init__(self, message, pending=()):
        super().__init__(message)
        self.pending = sorted(pending)
