# -*- coding: utf-8 -*-
"""
This module reads the per-record result stream of a terminal batch and turns
each row into a `RecordOutcome`.
"""

import csv
import logging
from contextlib import closing
from typing import Iterator

from ..errors import JobStateError
from ..models import Batch, Job, RecordOutcome
from ..service.base import BulkService

MISSING_ERROR_MESSAGE = "No error message returned"
MISSING_ID_MESSAGE = "Record reported as created but no Id was returned"


def parse_bool(value) -> bool:
    """Parse a result flag; only 'true' (any case) is true."""
    return value is not None and value.strip().lower() == 'true'


def parse_outcome(row_number: int, fields: dict) -> RecordOutcome:
    """
    Build an outcome from one result row mapped by field name.

    Failed records always carry an error message, and created records always
    carry an ID; rows breaking the latter are reported as failed.
    """
    success = parse_bool(fields.get('Success'))
    created = parse_bool(fields.get('Created'))
    record_id = fields.get('Id') or None
    error = fields.get('Error') or None

    if success and created and not record_id:
        return RecordOutcome(row_number, success=False, created=False, error=MISSING_ID_MESSAGE)
    if not success:
        return RecordOutcome(row_number, success=False, created=False,
                             id=record_id, error=error or MISSING_ERROR_MESSAGE)
    return RecordOutcome(row_number, success=True, created=created, id=record_id)


class ResultReconciler:
    """Reads batch result streams from a `BulkService`."""

    def __init__(self, service: BulkService):
        self.service = service

    def reconcile(self, job: Job, batch: Batch) -> Iterator[RecordOutcome]:
        """
        Lazily yield one outcome per result row of a terminal batch.

        The result stream is opened when iteration starts and closed when it
        ends, fails or the generator is closed. Each call reads the stream
        anew, so reconciling the same batch twice yields the same outcomes.

        Raises:
            JobStateError: If the batch has not reached a terminal state.
        """
        if not batch.state.is_terminal:
            raise JobStateError(f"Batch {batch.id} is {batch.state.value}; "
                                "results are only available once it is terminal.")
        return self._iter_outcomes(job, batch)

    def _iter_outcomes(self, job, batch):
        with closing(self.service.get_batch_result_stream(job.id, batch.id)) as stream:
            # split CRLF terminators surface as empty lines, which are not records
            reader = (row for row in csv.reader(stream) if row)
            header = next(reader, None)
            if header is None:
                logging.warning(f"Batch {batch.id} returned an empty result stream")
                return

            for row_number, row in enumerate(reader, start=1):
                fields = dict(zip(header, row))
                outcome = parse_outcome(row_number, fields)
                if outcome.status == 'failed':
                    logging.debug(f"Batch {batch.id} row {row_number} failed with error: {outcome.error}")
                yield outcome
