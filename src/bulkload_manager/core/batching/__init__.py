"""
Bulk load pipeline for bulkload_manager.

This module contains the pipeline stages organized into submodules:

Submodules:
    chunks:  Split a dataset into header-prefixed, size-bounded chunks
    jobs:    Job lifecycle (create, submit batches, close, abort)
    polling: Wait for batches to reach a terminal state
    results: Reconcile per-record results of a batch
    report:  Aggregate report of a run
    manager: High-level orchestration of the whole pipeline

Example Usage:
    import bulkload_manager as blm

    service = blm.utils.clients.create_salesforce_bulk_service()
    manager = blm.BulkLoadManager(service)
    report = manager.run_file('./accounts.csv', 'Account', operation='insert')
    print(report.summary())
"""

# Import submodules (not individual functions)
from . import chunks
from . import jobs
from . import polling
from . import results
from . import report
from . import manager

__all__ = [
    'chunks',     # blm.batching.chunks.*
    'jobs',       # blm.batching.jobs.*
    'polling',    # blm.batching.polling.*
    'results',    # blm.batching.results.*
    'report',     # blm.batching.report.*
    'manager',    # blm.batching.manager.*
]
