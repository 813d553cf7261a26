# -*- coding: utf-8 -*-

import os
import logging

from ..service.salesforce import (DEFAULT_API_VERSION, DEFAULT_REQUEST_TIMEOUT,
                                  SalesforceBulkService)


def create_salesforce_bulk_service(
        instance_url=None,
        session_id=None,
        api_version=None,
        timeout=DEFAULT_REQUEST_TIMEOUT
    ):
    """
    Create a Salesforce Bulk API service for an existing session.

    Args:
        instance_url (str): Salesforce instance URL. If not provided, it will be fetched from SALESFORCE_INSTANCE_URL.
        session_id (str): Session ID of a logged-in user. If not provided, it will be fetched from SALESFORCE_SESSION_ID.
        api_version (str): Bulk API version. Falls back to SALESFORCE_API_VERSION, then to the package default.
        timeout (float): Per-request timeout in seconds.
    """
    if instance_url is None:
        instance_url = os.getenv('SALESFORCE_INSTANCE_URL')
    if instance_url is None:
        raise ValueError("No Salesforce instance URL provided or found in environment.")

    if session_id is None:
        session_id = os.getenv('SALESFORCE_SESSION_ID')
    if session_id is None:
        raise ValueError("No Salesforce session ID provided or found in environment.")

    if api_version is None:
        api_version = os.getenv('SALESFORCE_API_VERSION', DEFAULT_API_VERSION)

    service = SalesforceBulkService(
        instance_url=instance_url,
        session_id=session_id,
        api_version=api_version,
        timeout=timeout,
    )
    logging.info(f"Salesforce Bulk API {api_version} service created successfully.")
    return service
