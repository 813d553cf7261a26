# -*- coding: utf-8 -*-
"""
Salesforce Bulk API 1.0 adapter.

Jobs and batches are described with XML `jobInfo`/`batchInfo` documents and
batch data is uploaded as CSV. The adapter does not log in: it is handed the
caller's session (instance URL and session ID) and keeps it for its lifetime.
"""

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

import requests

from ..errors import RemoteServiceError, TransportError
from ..models import BatchState, BatchStatus, Operation
from .base import BulkService

DEFAULT_API_VERSION = '45.0'
DEFAULT_REQUEST_TIMEOUT = 60

NAMESPACE = 'http://www.force.com/2009/06/asyncapi/dataload'

XML_CONTENT_TYPE = 'application/xml; charset=UTF-8'
CSV_CONTENT_TYPE = 'text/csv; charset=UTF-8'

# NotProcessed batches never run (e.g. job aborted); they are final for us
REMOTE_BATCH_STATES = {
    'Queued': BatchState.QUEUED,
    'InProgress': BatchState.IN_PROGRESS,
    'Completed': BatchState.COMPLETED,
    'Failed': BatchState.FAILED,
    'NotProcessed': BatchState.FAILED,
}


def _tag(name):
    return f"{{{NAMESPACE}}}{name}"


def _job_info_xml(**fields) -> bytes:
    """Build a jobInfo document. Field order is kept, the API requires it."""
    root = ET.Element('jobInfo', xmlns=NAMESPACE)
    for name, value in fields.items():
        if value is not None:
            ET.SubElement(root, name).text = str(value)
    return b'<?xml version="1.0" encoding="UTF-8"?>' + ET.tostring(root)


def _parse_xml(content: bytes, what: str) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise RemoteServiceError(f"Unreadable {what} response: {e}") from e


class _ResultStream:
    """Line iterator over a streamed HTTP response that can be closed."""

    def __init__(self, response: requests.Response):
        self._response = response
        if not self._response.encoding:
            self._response.encoding = 'utf-8'

    def __iter__(self):
        try:
            for line in self._response.iter_lines(decode_unicode=True):
                yield f"{line}\n"
        except requests.RequestException as e:
            raise TransportError(f"Result stream interrupted: {e}") from e

    def close(self):
        self._response.close()


class SalesforceBulkService(BulkService):
    """
    Bulk service adapter for the Salesforce asynchronous (Bulk 1.0) API.

    Args:
        instance_url (str): Salesforce instance, e.g. https://na1.salesforce.com
        session_id (str): Session ID obtained by the caller at login.
        api_version (str): Bulk API version.
        timeout (float): Per-request timeout in seconds.
        session (requests.Session): Optional pre-configured HTTP session.
    """

    def __init__(
            self,
            instance_url: str,
            session_id: str,
            api_version: str = DEFAULT_API_VERSION,
            timeout: float = DEFAULT_REQUEST_TIMEOUT,
            session: Optional[requests.Session] = None
        ):
        if not instance_url:
            raise ValueError("No Salesforce instance URL provided.")
        if not session_id:
            raise ValueError("No Salesforce session ID provided.")

        self.base_url = f"{instance_url.rstrip('/')}/services/async/{api_version}"
        self.api_version = api_version
        self.timeout = timeout
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({
            'X-SFDC-Session': session_id,
            'Accept-Encoding': 'gzip',
        })

    #=========================================================================
    # HTTP plumbing
    #=========================================================================

    def _request(self, method, path, stream=False, **kwargs) -> requests.Response:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.request(
                method, url, timeout=self.timeout, stream=stream, **kwargs
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.status_code >= 400:
            try:
                raise self._service_error(method, path, response)
            finally:
                response.close()
        return response

    @staticmethod
    def _service_error(method, path, response) -> RemoteServiceError:
        exception_code = None
        message = response.text
        try:
            root = ET.fromstring(response.content)
        except ET.ParseError:
            root = None
        if root is not None:
            exception_code = root.findtext(_tag('exceptionCode'))
            message = root.findtext(_tag('exceptionMessage')) or message
        return RemoteServiceError(
            f"{method} {path} rejected with HTTP {response.status_code}"
            f"{f' ({exception_code})' if exception_code else ''}: {message}",
            status_code=response.status_code,
            exception_code=exception_code,
        )

    def _update_job_state(self, job_id, state):
        self._request(
            'POST', f"job/{job_id}",
            data=_job_info_xml(state=state),
            headers={'Content-Type': XML_CONTENT_TYPE},
        )

    #=========================================================================
    # BulkService
    #=========================================================================

    def create_job(self, object_type, operation, external_id_field=None):
        operation = Operation(operation)
        body = _job_info_xml(
            operation=operation.value,
            object=object_type,
            externalIdFieldName=external_id_field,
            contentType='CSV',
        )
        response = self._request(
            'POST', 'job', data=body, headers={'Content-Type': XML_CONTENT_TYPE}
        )
        job_id = _parse_xml(response.content, 'job').findtext(_tag('id'))
        if not job_id:
            raise RemoteServiceError("Job creation response has no job ID.")
        logging.debug(f"Created {operation.value} job {job_id} on {object_type}")
        return job_id

    def submit_batch(self, job_id, stream):
        response = self._request(
            'POST', f"job/{job_id}/batch",
            data=stream, headers={'Content-Type': CSV_CONTENT_TYPE},
        )
        batch_id = _parse_xml(response.content, 'batch').findtext(_tag('id'))
        if not batch_id:
            raise RemoteServiceError(f"Batch creation response for job {job_id} has no batch ID.")
        return batch_id

    def close_job(self, job_id):
        self._update_job_state(job_id, 'Closed')

    def abort_job(self, job_id):
        self._update_job_state(job_id, 'Aborted')

    def get_batch_states(self, job_id) -> List[BatchStatus]:
        response = self._request('GET', f"job/{job_id}/batch")
        root = _parse_xml(response.content, 'batch list')

        statuses = []
        for info in root.iter(_tag('batchInfo')):
            remote_state = info.findtext(_tag('state'))
            if remote_state not in REMOTE_BATCH_STATES:
                raise RemoteServiceError(f"Unknown batch state '{remote_state}' for job {job_id}.")
            statuses.append(BatchStatus(
                batch_id=info.findtext(_tag('id')),
                state=REMOTE_BATCH_STATES[remote_state],
                state_message=info.findtext(_tag('stateMessage')),
                records_processed=int(info.findtext(_tag('numberRecordsProcessed')) or 0),
                records_failed=int(info.findtext(_tag('numberRecordsFailed')) or 0),
            ))
        return statuses

    def get_batch_result_stream(self, job_id, batch_id):
        response = self._request('GET', f"job/{job_id}/batch/{batch_id}/result", stream=True)
        return _ResultStream(response)
