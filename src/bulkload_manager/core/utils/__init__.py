"""
Shared utilities for bulkload_manager.

Submodules:
    clients:     Bulk service creation from the caller's session
    config:      Loader configuration (YAML file, defaults)
    environment: Environment configuration (internal)
    misc:        Internal utilities (internal)
"""

from . import clients
from . import config

__all__ = [
    'clients',  # blm.utils.clients.* (service factories)
    'config',   # blm.utils.config.* (LoaderConfig, load_config)
]
