"""
Command-line interface for bulkload_manager.

Commands:
    - load:   Load a delimited-text file through the bulk service
    - status: Show the batch states of an existing job

Environment Requirements:
    - SALESFORCE_INSTANCE_URL + SALESFORCE_SESSION_ID

Example Workflow:
    $ bulkloadm load Account ./accounts.csv --workers 4 --max-wait 3600
    $ bulkloadm status 750x0000000005LAAQ
"""

from .cli import cli

__all__ = [
    'cli',  # Main CLI interface (Click command group)
]
