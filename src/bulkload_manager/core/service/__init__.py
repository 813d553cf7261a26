"""
Remote bulk service interface and its concrete adapters.

Submodules:
    base:       Abstract `BulkService` capability used by the pipeline
    salesforce: Salesforce Bulk API 1.0 adapter over `requests`
"""

from .base import BulkService
from .salesforce import SalesforceBulkService

__all__ = [
    'BulkService',
    'SalesforceBulkService',
]
