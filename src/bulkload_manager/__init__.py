"""
bulkload-manager - Bulk data loading through asynchronous batch services

Splits large delimited-text datasets into bounded batches, submits them to a
remote bulk-processing service (Salesforce Bulk API 1.0 out of the box),
waits for every batch to finish and reconciles per-record results.

Package Structure:
    batching: Pipeline stages (chunks, jobs, polling, results, report)
    service:  Remote bulk service interface and adapters
    utils:    Service clients and configuration

Example Usage:

    import bulkload_manager as blm

    service = blm.utils.clients.create_salesforce_bulk_service(
        instance_url='https://na1.salesforce.com',
        session_id='00D...!AQ...',
    )
    manager = blm.BulkLoadManager(service, blm.LoaderConfig(max_workers=4))
    report = manager.run_file('./contacts.csv', 'Contact')
    print(report.created_count, report.failed_count)

CLI Usage:
    $ bulkloadm load Contact ./contacts.csv --workers 4
    $ bulkloadm status 750x0000000005LAAQ

Environment Setup:
    - SALESFORCE_INSTANCE_URL + SALESFORCE_SESSION_ID (used when no session is passed)
    These can be set via .env or .env.local files in the current directory.
"""

__version__ = "0.1.0"

# Load environment on package import
from .core.utils.environment import setup_environment
setup_environment()

from . import core
batching = core.batching
service = core.service
utils = core.utils
errors = core.errors
models = core.models
BulkLoadManager = core.BulkLoadManager
LoaderConfig = core.utils.config.LoaderConfig
Report = core.batching.report.Report

__all__ = [
    '__version__',
    'batching',         # blm.batching.*
    'service',          # blm.service.*
    'utils',            # blm.utils.*
    'errors',           # blm.errors.*
    'models',           # blm.models.*
    'BulkLoadManager',  # blm.BulkLoadManager()
    'LoaderConfig',
    'Report',
]

del setup_environment, core
