"""Tests for the Salesforce Bulk API adapter with a mocked HTTP session."""
import io
import xml.etree.ElementTree as ET
from unittest.mock import Mock

import pytest
import requests

from bulkload_manager.core.errors import RemoteServiceError, TransportError
from bulkload_manager.core.models import BatchState, Operation
from bulkload_manager.core.service.salesforce import NAMESPACE, SalesforceBulkService

BASE = 'https://na1.salesforce.com/services/async/45.0'


def _response(status_code=200, content=b'', lines=None):
    response = Mock()
    response.status_code = status_code
    response.content = content
    response.text = content.decode('utf-8')
    response.encoding = 'UTF-8'
    response.iter_lines.return_value = iter(lines or [])
    return response


def _xml(root, **fields):
    body = ''.join(f"<{name}>{value}</{name}>" for name, value in fields.items())
    return f'<?xml version="1.0" encoding="UTF-8"?><{root} xmlns="{NAMESPACE}">{body}</{root}>'.encode()


@pytest.fixture
def session():
    session = Mock()
    session.headers = {}
    return session


@pytest.fixture
def service(session):
    return SalesforceBulkService('https://na1.salesforce.com/', 'SESSION', session=session)


def _sent_xml(session):
    data = session.request.call_args.kwargs['data']
    return {child.tag.split('}')[-1]: child.text for child in ET.fromstring(data)}


def test_session_headers(service, session):
    assert session.headers['X-SFDC-Session'] == 'SESSION'
    assert service.base_url == BASE


def test_missing_session_is_rejected(session):
    with pytest.raises(ValueError):
        SalesforceBulkService('https://na1.salesforce.com', '', session=session)


def test_create_job(service, session):
    session.request.return_value = _response(201, _xml('jobInfo', id='750J', state='Open'))

    job_id = service.create_job('Account', Operation.UPSERT, external_id_field='Ext__c')

    assert job_id == '750J'
    args = session.request.call_args
    assert args.args == ('POST', f"{BASE}/job")
    assert args.kwargs['headers']['Content-Type'].startswith('application/xml')
    assert _sent_xml(session) == {
        'operation': 'upsert',
        'object': 'Account',
        'externalIdFieldName': 'Ext__c',
        'contentType': 'CSV',
    }


def test_create_job_error_body_is_parsed(service, session):
    session.request.return_value = _response(400, _xml(
        'error', exceptionCode='InvalidJob', exceptionMessage='Unable to find object: Nope__c'
    ))

    with pytest.raises(RemoteServiceError) as exc_info:
        service.create_job('Nope__c', 'insert')

    assert exc_info.value.status_code == 400
    assert exc_info.value.exception_code == 'InvalidJob'
    assert 'Unable to find object' in str(exc_info.value)


def test_connection_errors_become_transport_errors(service, session):
    session.request.side_effect = requests.ConnectionError("Connection refused")
    with pytest.raises(TransportError):
        service.close_job('750J')


def test_submit_batch_uploads_csv(service, session):
    session.request.return_value = _response(201, _xml('batchInfo', id='751B', state='Queued'))
    stream = io.BytesIO(b'Name\nAcme\n')

    assert service.submit_batch('750J', stream) == '751B'

    args = session.request.call_args
    assert args.args == ('POST', f"{BASE}/job/750J/batch")
    assert args.kwargs['data'] is stream
    assert args.kwargs['headers']['Content-Type'].startswith('text/csv')


def test_close_and_abort_job(service, session):
    session.request.return_value = _response(200, _xml('jobInfo', id='750J'))

    service.close_job('750J')
    assert session.request.call_args.args == ('POST', f"{BASE}/job/750J")
    assert _sent_xml(session) == {'state': 'Closed'}

    service.abort_job('750J')
    assert _sent_xml(session) == {'state': 'Aborted'}


def test_get_batch_states(service, session):
    infos = ''.join(
        f"<batchInfo><id>{batch_id}</id><jobId>750J</jobId><state>{state}</state>"
        f"{f'<stateMessage>{message}</stateMessage>' if message else ''}"
        f"<numberRecordsProcessed>{processed}</numberRecordsProcessed>"
        f"<numberRecordsFailed>{failed}</numberRecordsFailed></batchInfo>"
        for batch_id, state, message, processed, failed in [
            ('B1', 'Completed', None, 10, 1),
            ('B2', 'InProgress', None, 3, 0),
            ('B3', 'Failed', 'InvalidBatch : Field name not found', 0, 0),
            ('B4', 'NotProcessed', None, 0, 0),
        ]
    )
    session.request.return_value = _response(
        200, f'<batchInfoList xmlns="{NAMESPACE}">{infos}</batchInfoList>'.encode()
    )

    statuses = service.get_batch_states('750J')

    assert session.request.call_args.args == ('GET', f"{BASE}/job/750J/batch")
    assert [(s.batch_id, s.state) for s in statuses] == [
        ('B1', BatchState.COMPLETED),
        ('B2', BatchState.IN_PROGRESS),
        ('B3', BatchState.FAILED),
        ('B4', BatchState.FAILED),
    ]
    assert statuses[0].records_processed == 10
    assert statuses[0].records_failed == 1
    assert statuses[2].state_message == 'InvalidBatch : Field name not found'


def test_unknown_batch_state(service, session):
    session.request.return_value = _response(
        200, f'<batchInfoList xmlns="{NAMESPACE}"><batchInfo><id>B1</id><state>Weird</state>'
             f'</batchInfo></batchInfoList>'.encode()
    )
    with pytest.raises(RemoteServiceError):
        service.get_batch_states('750J')


def test_result_stream(service, session):
    response = _response(200, lines=['"Id","Success","Created","Error"', '"001A","true","true",""'])
    session.request.return_value = response

    stream = service.get_batch_result_stream('750J', 'B1')

    args = session.request.call_args
    assert args.args == ('GET', f"{BASE}/job/750J/batch/B1/result")
    assert args.kwargs['stream'] is True
    assert list(stream) == ['"Id","Success","Created","Error"\n', '"001A","true","true",""\n']
    stream.close()
    response.close.assert_called_once()


def test_unreadable_response(service, session):
    session.request.return_value = _response(201, b'not xml')
    with pytest.raises(RemoteServiceError):
        service.submit_batch('750J', io.BytesIO(b'Name\n'))


def test_interrupted_result_stream_is_a_transport_error(service, session):
    def broken_lines(decode_unicode=False):
        yield '"Id","Success","Created","Error"'
        raise requests.exceptions.ChunkedEncodingError("connection broken")

    response = _response(200)
    response.iter_lines.side_effect = broken_lines
    session.request.return_value = response

    stream = service.get_batch_result_stream('750J', 'B1')
    with pytest.raises(TransportError):
        list(stream)
