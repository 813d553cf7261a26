"""
Core functionality for bulkload_manager.

Architecture:
    batching/   - Bulk load pipeline
      ├── chunks/    - Dataset chunking and chunk staging
      ├── jobs/      - Job lifecycle management
      ├── polling/   - Completion polling
      ├── results/   - Per-record result reconciliation
      ├── report/    - Aggregate report
      └── manager/   - High-level orchestration

    service/    - Remote bulk service interface and adapters
    utils/      - Clients, configuration, environment
    errors      - Error kinds
    models      - Data model
"""

from . import errors
from . import models
from . import service
from . import batching
from . import utils

from .batching.manager import BulkLoadManager

__all__ = [
    'errors',
    'models',
    'service',
    'batching',
    'utils',
    'BulkLoadManager',  # High-level orchestration interface
]
