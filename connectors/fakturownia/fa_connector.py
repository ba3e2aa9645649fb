"""Fakturownia Connector.

Named operations on top of the request executor. Each method binds its
arguments to an endpoint table entry and hands it to FakturowniaClient.
"""

from typing import Any, Dict, Optional

from connectors.fakturownia.fa_client import (
    FakturowniaApiConfig,
    FakturowniaClient,
    RetryConfig,
)
from connectors.fakturownia.fa_endpoints import get_endpoint, invoice_pdf_url
from core.observability.logging import with_correlation
from core.settings import AppSettings

Params = Optional[Dict[str, Any]]
Payload = Dict[str, Any]


class FakturowniaConnector:
    """Fakturownia operations grouped by resource.

    Usage:
        connector = FakturowniaConnector.from_settings(load_settings())
        async with connector:
            invoices = await connector.list_invoices({"period": "this_month"})
    """

    def __init__(self, client: FakturowniaClient):
        self._client = client

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "FakturowniaConnector":
        api_config = FakturowniaApiConfig(
            api_token=settings.api_token,
            domain=settings.domain,
            timeout_seconds=settings.timeout_seconds,
            retry_config=RetryConfig(max_retries=settings.max_retries),
        )
        return cls(FakturowniaClient(api_config))

    @property
    def client(self) -> FakturowniaClient:
        return self._client

    # =========================================================================
    # Connection Management
    # =========================================================================

    async def connect(self) -> None:
        await self._client.connect()

    async def disconnect(self) -> None:
        await self._client.disconnect()

    async def __aenter__(self) -> "FakturowniaConnector":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.disconnect()

    # =========================================================================
    # Generic dispatch
    # =========================================================================

    async def call(
        self,
        operation: str,
        id: Optional[int] = None,
        payload: Optional[Payload] = None,
        query: Params = None,
    ) -> Any:
        """Run a named operation from the endpoint table.

        Raises:
            UnknownOperationError: operation is not in the table
        """
        descriptor = get_endpoint(operation)
        path_params = {"id": id} if id is not None else {}
        with with_correlation(operation=operation):
            return await self._client.execute(descriptor, payload, query, **path_params)

    # =========================================================================
    # Invoices
    # =========================================================================

    async def list_invoices(self, params: Params = None):
        return await self.call("list_invoices", query=params)

    async def get_invoice(self, id: int, params: Params = None):
        return await self.call("get_invoice", id, query=params)

    async def create_invoice(self, invoice: Payload, gov_save_and_send: bool = False):
        query = {"gov_save_and_send": "1"} if gov_save_and_send else None
        return await self.call("create_invoice", payload=invoice, query=query)

    async def update_invoice(self, id: int, invoice: Payload):
        return await self.call("update_invoice", id, payload=invoice)

    async def delete_invoice(self, id: int):
        return await self.call("delete_invoice", id)

    async def send_invoice_by_email(self, id: int):
        # Empty body; the executor still injects api_token into it
        return await self.call("send_invoice_email", id)

    async def change_invoice_status(self, id: int, status: str):
        return await self.call("change_invoice_status", id, query={"status": status})

    def get_invoice_pdf_url(self, id: int) -> Dict[str, str]:
        """PDF location for an invoice. No request is made."""
        return {
            "pdf_url_internal": invoice_pdf_url(self._client.base_url, id),
            "message": (
                "PDF is available at the URL above (requires authentication). "
                "Use the Fakturownia web interface to download or share the PDF securely."
            ),
        }

    async def send_invoice_to_ksef(self, id: int):
        return await self.call("send_invoice_to_ksef", id)

    async def get_invoice_ksef_status(self, id: int):
        return await self.call("get_invoice_ksef_status", id)

    # =========================================================================
    # Clients
    # =========================================================================

    async def list_clients(self, params: Params = None):
        return await self.call("list_clients", query=params)

    async def get_client(self, id: int):
        return await self.call("get_client", id)

    async def create_client(self, client: Payload):
        return await self.call("create_client", payload=client)

    async def update_client(self, id: int, client: Payload):
        return await self.call("update_client", id, payload=client)

    async def delete_client(self, id: int):
        return await self.call("delete_client", id)

    # =========================================================================
    # Products
    # =========================================================================

    async def list_products(self, params: Params = None):
        return await self.call("list_products", query=params)

    async def get_product(self, id: int):
        return await self.call("get_product", id)

    async def create_product(self, product: Payload):
        return await self.call("create_product", payload=product)

    async def update_product(self, id: int, product: Payload):
        return await self.call("update_product", id, payload=product)

    # =========================================================================
    # Payments
    # =========================================================================

    async def list_payments(self, params: Params = None):
        return await self.call("list_payments", query=params)

    async def get_payment(self, id: int):
        return await self.call("get_payment", id)

    async def create_payment(self, payment: Payload):
        return await self.call("create_payment", payload=payment)

    async def update_payment(self, id: int, payment: Payload):
        return await self.call("update_payment", id, payload=payment)

    async def delete_payment(self, id: int):
        return await self.call("delete_payment", id)

    # =========================================================================
    # Warehouse Documents
    # =========================================================================

    async def list_warehouse_documents(self, params: Params = None):
        return await self.call("list_warehouse_documents", query=params)

    async def get_warehouse_document(self, id: int):
        return await self.call("get_warehouse_document", id)

    async def create_warehouse_document(self, document: Payload):
        return await self.call("create_warehouse_document", payload=document)

    async def update_warehouse_document(self, id: int, document: Payload):
        return await self.call("update_warehouse_document", id, payload=document)

    async def delete_warehouse_document(self, id: int):
        return await self.call("delete_warehouse_document", id)

    # =========================================================================
    # Categories
    # =========================================================================

    async def list_categories(self):
        return await self.call("list_categories")

    async def get_category(self, id: int):
        return await self.call("get_category", id)

    async def create_category(self, category: Payload):
        return await self.call("create_category", payload=category)

    async def update_category(self, id: int, category: Payload):
        return await self.call("update_category", id, payload=category)

    async def delete_category(self, id: int):
        return await self.call("delete_category", id)

    # =========================================================================
    # Warehouses
    # =========================================================================

    async def list_warehouses(self):
        return await self.call("list_warehouses")

    async def get_warehouse(self, id: int):
        return await self.call("get_warehouse", id)

    async def create_warehouse(self, warehouse: Payload):
        return await self.call("create_warehouse", payload=warehouse)

    async def update_warehouse(self, id: int, warehouse: Payload):
        return await self.call("update_warehouse", id, payload=warehouse)

    async def delete_warehouse(self, id: int):
        return await self.call("delete_warehouse", id)

    # =========================================================================
    # Departments
    # =========================================================================

    async def list_departments(self):
        return await self.call("list_departments")

    async def get_department(self, id: int):
        return await self.call("get_department", id)

    async def create_department(self, department: Payload):
        return await self.call("create_department", payload=department)

    async def update_department(self, id: int, department: Payload):
        return await self.call("update_department", id, payload=department)

    async def delete_department(self, id: int):
        return await self.call("delete_department", id)

    # =========================================================================
    # Account
    # =========================================================================

    async def get_account_info(self):
        return await self.call("get_account_info")
