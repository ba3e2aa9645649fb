"""Fakturownia Connector Package.

REST client, endpoint table and named operations for the Fakturownia
invoicing API (https://{domain}.fakturownia.pl).
"""

from connectors.fakturownia.fa_client import (
    AttemptOutcome,
    AttemptRecord,
    FakturowniaApiConfig,
    FakturowniaApiError,
    FakturowniaClient,
    FakturowniaHTTPError,
    FakturowniaRetryExhaustedError,
    FakturowniaTimeoutError,
    FakturowniaTransportError,
    RetryConfig,
)
from connectors.fakturownia.fa_connector import FakturowniaConnector
from connectors.fakturownia.fa_endpoints import (
    ENDPOINTS,
    EndpointDescriptor,
    RequestIntent,
    UnknownOperationError,
    get_endpoint,
    invoice_pdf_url,
    list_operations,
)

__all__ = [
    # Connector
    "FakturowniaConnector",
    # Executor
    "FakturowniaClient",
    "FakturowniaApiConfig",
    "RetryConfig",
    "AttemptOutcome",
    "AttemptRecord",
    # Errors
    "FakturowniaApiError",
    "FakturowniaHTTPError",
    "FakturowniaRetryExhaustedError",
    "FakturowniaTimeoutError",
    "FakturowniaTransportError",
    "UnknownOperationError",
    # Endpoint table
    "ENDPOINTS",
    "EndpointDescriptor",
    "RequestIntent",
    "get_endpoint",
    "invoice_pdf_url",
    "list_operations",
]
