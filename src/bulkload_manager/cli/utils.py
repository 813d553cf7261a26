# -*- coding: utf-8 -*-

import logging
import click


def setup_logging(verbose=False, quiet=False):
    """Configure logging for CLI execution."""
    if quiet:
        level = logging.WARNING
    elif verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    # Configure root logger
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True  # Override any existing configuration
    )

    # Reduce noise from external libraries in non-verbose mode
    if not verbose:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)

    if verbose:
        logger = logging.getLogger(__name__)
        logger.debug("CLI logging setup completed")


def _validate_positive_integer_callback(ctx, param, value):
    """Validate that the provided value is a positive integer."""
    if value is not None and value <= 0:
        raise click.BadParameter("Value must be a positive integer.")
    return value


def _validate_non_negative_callback(ctx, param, value):
    """Validate that the provided value is zero or positive."""
    if value is not None and value < 0:
        raise click.BadParameter("Value must not be negative.")
    return value


def _log_report_summary(report, show_failures=False):
    """Log the summary of a run report and, optionally, every failed record."""
    summary = report.summary()
    records = summary['records']
    batches = summary['batches']

    logging.info(f"{'='*25}")
    logging.info(f"Job {summary['job_id']} ({summary['operation']} on {summary['object']}) summary:")
    logging.info(f"- Batches: {batches['total']}")
    for state, count in batches['states'].items():
        logging.info(f"  - {state}: {count}")
    logging.info(f"- Records: {records['total']}")
    logging.info(f"  - created: {records['created']}")
    logging.info(f"  - updated: {records['updated']}")
    logging.info(f"  - failed: {records['failed']}")

    for key in batches['unresolved']:
        logging.warning(f"Unresolved batch {key}: {report.batches[key].failure}")

    if show_failures:
        for key, outcome in report.failures():
            logging.warning(f"Batch {key} row {outcome.row_number} failed with error: {outcome.error}")
