# -*- coding: utf-8 -*-

import sys
import click
import logging
from collections import Counter

from ..core.batching.manager import BulkLoadManager
from ..core.errors import BulkLoadError
from ..core.models import Operation
from ..core.utils.clients import create_salesforce_bulk_service
from ..core.utils.config import load_config
from ..core.utils.environment import validate_required_env_vars
from .utils import (
    setup_logging,
    _validate_positive_integer_callback,
    _validate_non_negative_callback,
    _log_report_summary
)


def _get_service(ctx, config):
    """Return the bulk service of the context, creating it from the environment if needed."""
    if ctx.obj.get('service') is not None:
        return ctx.obj['service']

    missing_vars = validate_required_env_vars()
    if missing_vars:
        logging.error(f"Missing required environment variables: {missing_vars}")
        logging.info("Please set these environment variables or create a "
                     ".env file in the current directory with:")
        for var in missing_vars:
            logging.info(f"  {var}=your_value_here")
        raise SystemExit(1)

    try:
        ctx.obj['service'] = create_salesforce_bulk_service(
            api_version=config.api_version,
            timeout=config.request_timeout,
        )
    except ValueError as e:
        logging.error(f"Error creating bulk service: {e}")
        raise SystemExit(1)
    return ctx.obj['service']


@click.group()
@click.option(
    '-v', '--verbose', is_flag=True,
    help='Enable verbose (DEBUG) logging'
)
@click.option(
    '-q', '--quiet', is_flag=True,
    help='Only show warnings and errors'
)
@click.option(
    '-c', '--config', 'config_path', type=click.Path(exists=True, dir_okay=False),
    default=None,
    help=('YAML configuration file with loader settings. Defaults to the '
          'user configuration file, if any.')
)
@click.pass_context
def cli(ctx, verbose, quiet, config_path):
    """
    bulkload-manager CLI - Load large delimited-text datasets through an
    asynchronous bulk API.

    Datasets are split into batches, submitted to a single job, tracked until
    every batch is done and reconciled record by record.

    \b
    Ensure your session is available in environment variables:
    - SALESFORCE_INSTANCE_URL, SALESFORCE_SESSION_ID
    """
    setup_logging(verbose=verbose, quiet=quiet)

    ctx.ensure_object(dict)

    # Skip checks if --help/-h is requested
    if any(arg in sys.argv for arg in ['--help', '-h']):
        return

    try:
        config = load_config(config_path)
    except (ValueError, TypeError, FileNotFoundError) as e:
        logging.error(f"Invalid configuration: {e}")
        raise SystemExit(1)

    ctx.obj['config'] = config


@cli.command()
@click.argument('object_type')
@click.argument('data_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--operation', type=click.Choice([op.value for op in Operation]),
    default=Operation.INSERT.value, show_default=True,
    help='Bulk operation to perform on every record.'
)
@click.option(
    '--external-id-field', type=str, default=None,
    help='External ID field used to match records. Required for upsert.'
)
@click.option(
    '--max-bytes', type=int, default=None,
    callback=_validate_positive_integer_callback,
    help='Maximum size of a batch in bytes, header included.'
)
@click.option(
    '--max-rows', type=int, default=None,
    callback=_validate_positive_integer_callback,
    help='Maximum number of data rows of a batch.'
)
@click.option(
    '--poll-interval', type=float, default=None,
    callback=_validate_non_negative_callback,
    help='Seconds between two batch status checks.'
)
@click.option(
    '--max-wait', type=float, default=None,
    callback=_validate_non_negative_callback,
    help='Stop waiting for batches after this many seconds. Waits forever by default.'
)
@click.option(
    '--workers', type=int, default=None,
    callback=_validate_positive_integer_callback,
    help='Number of batches submitted and reconciled concurrently.'
)
@click.option(
    '--show-failures', is_flag=True, default=False,
    help='Log every failed record with its error.'
)
@click.pass_context
def load(ctx, object_type, data_file, operation, external_id_field, max_bytes,
         max_rows, poll_interval, max_wait, workers, show_failures):
    """
    Load a delimited-text file into an object.

    \b
    OBJECT_TYPE:
      Target object, e.g. Account or Contact.
    DATA_FILE:
      UTF-8 CSV file whose first line holds the field names.

    Exits with status 1 when any record failed or any batch is unresolved.
    """
    config = ctx.obj['config'].updated(
        max_bytes_per_batch=max_bytes,
        max_rows_per_batch=max_rows,
        poll_interval=poll_interval,
        max_wait=max_wait,
        max_workers=workers,
    )
    manager = BulkLoadManager(_get_service(ctx, config), config)

    try:
        report = manager.run_file(
            data_file, object_type,
            operation=operation,
            external_id_field=external_id_field,
        )
    except ValueError as e:
        raise click.UsageError(str(e))
    except BulkLoadError as e:
        logging.error(f"Load failed: {e}")
        raise SystemExit(1)

    _log_report_summary(report, show_failures=show_failures)

    if report.failed_count or report.unresolved:
        raise SystemExit(1)


@cli.command()
@click.argument('job_id')
@click.pass_context
def status(ctx, job_id):
    """
    Check the state of every batch of an existing job.

    \b
    JOB_ID:
      ID of the job, as logged by the 'load' command.
    """
    config = ctx.obj['config']
    manager = BulkLoadManager(_get_service(ctx, config), config)

    try:
        statuses = manager.get_batch_states(job_id)
    except BulkLoadError as e:
        logging.error(f"Status check failed: {e}")
        raise SystemExit(1)

    for batch in statuses:
        message = f" ({batch.state_message})" if batch.state_message else ""
        logging.info(f"- Batch {batch.batch_id}: {batch.state.value}, "
                     f"{batch.records_processed} processed, {batch.records_failed} failed{message}")

    counter = Counter(batch.state.value for batch in statuses)
    total = sum(counter.values())
    logging.info(f"{'='*25}")
    logging.info(f"Job {job_id}: {total} batches")
    for state, count in counter.items():
        logging.info(f"- {state}: {count} ({count / total * 100:.2f}%)")
