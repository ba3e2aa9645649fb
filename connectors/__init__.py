"""Connectors - invoicing service integrations.

Key Design Principle:
- The API layer depends only on FakturowniaConnector and the error types
- Endpoint routing is static data (connectors.fakturownia.fa_endpoints)
- Retry, timeout and token handling live in one place (fa_client)
"""

from connectors.fakturownia import (
    FakturowniaConnector,
    FakturowniaClient,
    FakturowniaApiConfig,
    FakturowniaApiError,
    UnknownOperationError,
)

__all__ = [
    "FakturowniaConnector",
    "FakturowniaClient",
    "FakturowniaApiConfig",
    "FakturowniaApiError",
    "UnknownOperationError",
]
