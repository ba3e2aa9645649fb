"""Tool registry.

Declares every tool exposed to agents: name, description, argument model
and the connector call it makes. Tool results are rendered as text content,
failures as error results, so one failing call never takes the server down.
"""

import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError

from connectors.fakturownia import (
    FakturowniaApiError,
    FakturowniaConnector,
    UnknownOperationError,
)
from core.observability.logging import (
    get_logger,
    log_tool_call,
    log_tool_error,
    with_correlation,
)

logger = get_logger(__name__)

JsonPayload = Union[Dict[str, Any], str]


# =============================================================================
# Result Models
# =============================================================================

class TextContent(BaseModel):
    """One block of text returned to the agent."""
    type: str = "text"
    text: str


class ToolResult(BaseModel):
    """Result of a tool call."""
    content: List[TextContent]
    is_error: bool = Field(default=False, serialization_alias="isError")


class ToolInfo(BaseModel):
    """Public description of a registered tool."""
    name: str
    description: str
    input_schema: Dict[str, Any] = Field(serialization_alias="inputSchema")


def render_result(data: Any) -> ToolResult:
    """Render decoded API data as indented JSON text."""
    if isinstance(data, str):
        text = data
    else:
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
    return ToolResult(content=[TextContent(text=text)])


def render_error(error: Union[Exception, str]) -> ToolResult:
    message = str(error)
    return ToolResult(content=[TextContent(text=f"Error: {message}")], is_error=True)


def parse_payload(value: JsonPayload, field_name: str) -> Dict[str, Any]:
    """Accept a JSON object or a JSON string encoding one."""
    if isinstance(value, dict):
        return value
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in '{field_name}': {e.msg}") from e
    if not isinstance(parsed, dict):
        raise ValueError(f"'{field_name}' must be a JSON object")
    return parsed


def _query_params(args: BaseModel, exclude: Optional[set] = None) -> Dict[str, str]:
    """Non-empty filter fields as string query params."""
    return {
        key: str(value)
        for key, value in args.model_dump(exclude=exclude or set()).items()
        if value is not None
    }


# =============================================================================
# Argument Models
# =============================================================================

class NoArgs(BaseModel):
    pass


class IdArgs(BaseModel):
    id: int = Field(..., description="Resource ID")


class PageArgs(BaseModel):
    page: Optional[str] = Field(default=None, description="Page number")
    per_page: Optional[str] = Field(default=None, description="Items per page (max 100)")


class ListInvoicesArgs(PageArgs):
    period: Optional[str] = Field(
        default=None,
        description="Period: last_12_months, this_month, last_month, this_year, last_year, all, more",
    )
    date_from: Optional[str] = Field(default=None, description="Start date (YYYY-MM-DD) when period=more")
    date_to: Optional[str] = Field(default=None, description="End date (YYYY-MM-DD) when period=more")
    kind: Optional[str] = Field(default=None, description="Invoice type: vat, proforma, correction, etc.")
    status: Optional[str] = Field(default=None, description="Status: issued, sent, paid, partial, rejected")
    include_positions: Optional[str] = Field(default=None, description="Include line items: true/false")
    income: Optional[str] = Field(default=None, description="1 = income, 0 = expense")


class GetInvoiceArgs(IdArgs):
    include_positions: Optional[str] = Field(default=None, description="Include line items: true/false")


class CreateInvoiceArgs(BaseModel):
    invoice: JsonPayload = Field(
        ...,
        description="JSON string of the invoice object (kind, positions, buyer_name, buyer_tax_no, sell_date, issue_date, etc.)",
    )
    gov_save_and_send: Optional[bool] = Field(default=None, description="Send to KSeF after saving")


class UpdateInvoiceArgs(IdArgs):
    invoice: JsonPayload = Field(..., description="JSON string of fields to update")


class ChangeInvoiceStatusArgs(IdArgs):
    status: str = Field(..., description="New status: issued, sent, paid, partial, rejected")


class ListClientsArgs(PageArgs):
    name: Optional[str] = Field(default=None, description="Search by name")
    email: Optional[str] = Field(default=None, description="Search by email")
    tax_no: Optional[str] = Field(default=None, description="Search by NIP")
    shortcut: Optional[str] = Field(default=None, description="Search by shortcut")
    external_id: Optional[str] = Field(default=None, description="Search by external ID")


class CreateClientArgs(BaseModel):
    client_data: JsonPayload = Field(
        ..., description="JSON string of client object (name, tax_no, city, street, email, etc.)"
    )


class UpdateClientArgs(IdArgs):
    client_data: JsonPayload = Field(..., description="JSON string of fields to update")


class ListProductsArgs(PageArgs):
    warehouse_id: Optional[str] = Field(default=None, description="Filter by warehouse ID")
    date_from: Optional[str] = Field(default=None, description="Products changed after this date (YYYY-MM-DD)")


class CreateProductArgs(BaseModel):
    product: JsonPayload = Field(
        ..., description="JSON string of product object (name, code, price_net, tax, etc.)"
    )


class UpdateProductArgs(IdArgs):
    product: JsonPayload = Field(..., description="JSON string of fields to update")


class ListPaymentsArgs(PageArgs):
    include: Optional[str] = Field(default=None, description="Set to 'invoices' to include linked invoice data")


class CreatePaymentArgs(BaseModel):
    payment: JsonPayload = Field(
        ...,
        description="JSON string of payment object (name, price, invoice_id or invoice_ids, paid, kind, etc.)",
    )


class UpdatePaymentArgs(IdArgs):
    payment: JsonPayload = Field(..., description="JSON string of fields to update")


class CreateWarehouseDocumentArgs(BaseModel):
    document: JsonPayload = Field(
        ..., description="JSON string: kind (pz/wz/mm), warehouse_id, issue_date, warehouse_actions[], etc."
    )


class UpdateWarehouseDocumentArgs(IdArgs):
    document: JsonPayload = Field(..., description="JSON string of fields to update")


class CategoryArgs(BaseModel):
    category: JsonPayload = Field(..., description="JSON string of category object (name, etc.)")


class UpdateCategoryArgs(IdArgs, CategoryArgs):
    pass


class WarehouseArgs(BaseModel):
    warehouse: JsonPayload = Field(..., description="JSON string of warehouse object (name, etc.)")


class UpdateWarehouseArgs(IdArgs, WarehouseArgs):
    pass


class DepartmentArgs(BaseModel):
    department: JsonPayload = Field(..., description="JSON string of department object (name, shortcut, etc.)")


class UpdateDepartmentArgs(IdArgs, DepartmentArgs):
    pass


# =============================================================================
# Registry
# =============================================================================

Handler = Callable[[FakturowniaConnector, Any], Awaitable[Any]]


@dataclass(frozen=True)
class ToolSpec:
    """A registered tool."""
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: Handler

    def info(self) -> ToolInfo:
        return ToolInfo(
            name=self.name,
            description=self.description,
            input_schema=self.args_model.model_json_schema(),
        )


_tool_registry: Dict[str, ToolSpec] = {}


def tool(name: str, description: str, args_model: Type[BaseModel] = NoArgs):
    """Decorator to register a tool handler."""
    def decorator(handler: Handler) -> Handler:
        if name in _tool_registry:
            raise ValueError(f"Tool already registered: {name}")
        _tool_registry[name] = ToolSpec(name, description, args_model, handler)
        return handler
    return decorator


def list_tools() -> List[ToolSpec]:
    """All registered tools in registration order."""
    return list(_tool_registry.values())


def get_tool(name: str) -> ToolSpec:
    try:
        return _tool_registry[name]
    except KeyError:
        raise UnknownOperationError(f"Unknown tool: {name}") from None


async def invoke_tool(
    connector: FakturowniaConnector,
    name: str,
    arguments: Optional[Dict[str, Any]] = None,
) -> ToolResult:
    """Validate arguments, run the tool and render its outcome.

    Raises:
        UnknownOperationError: No tool with this name
    """
    spec = get_tool(name)

    with with_correlation(tool_name=name):
        log_tool_call(name)
        started = time.monotonic()
        try:
            args = spec.args_model.model_validate(arguments or {})
            data = await spec.handler(connector, args)
        except UnknownOperationError:
            raise
        except ValidationError as e:
            log_tool_error(name, "invalid arguments")
            return render_error(_validation_message(e))
        except (FakturowniaApiError, ValueError) as e:
            log_tool_error(name, str(e), error_type=type(e).__name__)
            return render_error(e)
        except Exception as e:
            logger.exception(f"Unexpected error in tool {name}")
            return render_error(e)

        logger.info(
            f"Tool completed: {name}",
            extra_fields={"duration_ms": round((time.monotonic() - started) * 1000, 1)},
        )
        return render_result(data)


def _validation_message(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "arguments"
        parts.append(f"{location}: {item['msg']}")
    return "Invalid arguments - " + "; ".join(parts)


# =============================================================================
# Invoices
# =============================================================================

@tool("list_invoices", "List invoices with optional filters (page, period, kind, status, etc.)", ListInvoicesArgs)
async def _list_invoices(connector, args: ListInvoicesArgs):
    return await connector.list_invoices(_query_params(args))


@tool("get_invoice", "Get a single invoice by ID", GetInvoiceArgs)
async def _get_invoice(connector, args: GetInvoiceArgs):
    return await connector.get_invoice(args.id, _query_params(args, exclude={"id"}))


@tool(
    "create_invoice",
    "Create a new invoice. Provide invoice object with kind, positions, buyer info, etc.",
    CreateInvoiceArgs,
)
async def _create_invoice(connector, args: CreateInvoiceArgs):
    invoice = parse_payload(args.invoice, "invoice")
    return await connector.create_invoice(invoice, bool(args.gov_save_and_send))


@tool("update_invoice", "Update an existing invoice", UpdateInvoiceArgs)
async def _update_invoice(connector, args: UpdateInvoiceArgs):
    return await connector.update_invoice(args.id, parse_payload(args.invoice, "invoice"))


@tool("delete_invoice", "Delete an invoice by ID", IdArgs)
async def _delete_invoice(connector, args: IdArgs):
    return await connector.delete_invoice(args.id)


@tool("send_invoice_email", "Send an invoice by email", IdArgs)
async def _send_invoice_email(connector, args: IdArgs):
    return await connector.send_invoice_by_email(args.id)


@tool("change_invoice_status", "Change the status of an invoice", ChangeInvoiceStatusArgs)
async def _change_invoice_status(connector, args: ChangeInvoiceStatusArgs):
    return await connector.change_invoice_status(args.id, args.status)


@tool("get_invoice_pdf_url", "Get direct PDF download URL for an invoice", IdArgs)
async def _get_invoice_pdf_url(connector, args: IdArgs):
    return {"pdf_url": connector.get_invoice_pdf_url(args.id)}


# KSeF

@tool("send_invoice_to_ksef", "Send an existing invoice to the KSeF system", IdArgs)
async def _send_invoice_to_ksef(connector, args: IdArgs):
    return await connector.send_invoice_to_ksef(args.id)


@tool("get_invoice_ksef_status", "Get KSeF status for an invoice (gov_status, gov_id, errors, etc.)", IdArgs)
async def _get_invoice_ksef_status(connector, args: IdArgs):
    return await connector.get_invoice_ksef_status(args.id)


# =============================================================================
# Clients
# =============================================================================

@tool("list_clients", "List clients with optional search filters", ListClientsArgs)
async def _list_clients(connector, args: ListClientsArgs):
    return await connector.list_clients(_query_params(args))


@tool("get_client", "Get a single client by ID", IdArgs)
async def _get_client(connector, args: IdArgs):
    return await connector.get_client(args.id)


@tool("create_client", "Create a new client. Only name is required.", CreateClientArgs)
async def _create_client(connector, args: CreateClientArgs):
    return await connector.create_client(parse_payload(args.client_data, "client_data"))


@tool("update_client", "Update an existing client", UpdateClientArgs)
async def _update_client(connector, args: UpdateClientArgs):
    return await connector.update_client(args.id, parse_payload(args.client_data, "client_data"))


@tool("delete_client", "Delete a client by ID", IdArgs)
async def _delete_client(connector, args: IdArgs):
    return await connector.delete_client(args.id)


# =============================================================================
# Products
# =============================================================================

@tool("list_products", "List products with optional filters", ListProductsArgs)
async def _list_products(connector, args: ListProductsArgs):
    return await connector.list_products(_query_params(args))


@tool("get_product", "Get a single product by ID", IdArgs)
async def _get_product(connector, args: IdArgs):
    return await connector.get_product(args.id)


@tool("create_product", "Create a new product", CreateProductArgs)
async def _create_product(connector, args: CreateProductArgs):
    return await connector.create_product(parse_payload(args.product, "product"))


@tool("update_product", "Update an existing product", UpdateProductArgs)
async def _update_product(connector, args: UpdateProductArgs):
    return await connector.update_product(args.id, parse_payload(args.product, "product"))


# =============================================================================
# Payments
# =============================================================================

@tool("list_payments", "List payments with optional filters", ListPaymentsArgs)
async def _list_payments(connector, args: ListPaymentsArgs):
    return await connector.list_payments(_query_params(args))


@tool("get_payment", "Get a single payment by ID", IdArgs)
async def _get_payment(connector, args: IdArgs):
    return await connector.get_payment(args.id)


@tool("create_payment", "Create a new payment", CreatePaymentArgs)
async def _create_payment(connector, args: CreatePaymentArgs):
    return await connector.create_payment(parse_payload(args.payment, "payment"))


@tool("update_payment", "Update an existing payment", UpdatePaymentArgs)
async def _update_payment(connector, args: UpdatePaymentArgs):
    return await connector.update_payment(args.id, parse_payload(args.payment, "payment"))


@tool("delete_payment", "Delete a payment by ID", IdArgs)
async def _delete_payment(connector, args: IdArgs):
    return await connector.delete_payment(args.id)


# =============================================================================
# Warehouse Documents
# =============================================================================

@tool("list_warehouse_documents", "List warehouse documents (PZ, WZ, MM)", PageArgs)
async def _list_warehouse_documents(connector, args: PageArgs):
    return await connector.list_warehouse_documents(_query_params(args))


@tool("get_warehouse_document", "Get a warehouse document by ID", IdArgs)
async def _get_warehouse_document(connector, args: IdArgs):
    return await connector.get_warehouse_document(args.id)


@tool("create_warehouse_document", "Create a warehouse document (PZ, WZ, MM)", CreateWarehouseDocumentArgs)
async def _create_warehouse_document(connector, args: CreateWarehouseDocumentArgs):
    return await connector.create_warehouse_document(parse_payload(args.document, "document"))


@tool("update_warehouse_document", "Update a warehouse document", UpdateWarehouseDocumentArgs)
async def _update_warehouse_document(connector, args: UpdateWarehouseDocumentArgs):
    return await connector.update_warehouse_document(args.id, parse_payload(args.document, "document"))


@tool("delete_warehouse_document", "Delete a warehouse document by ID", IdArgs)
async def _delete_warehouse_document(connector, args: IdArgs):
    return await connector.delete_warehouse_document(args.id)


# =============================================================================
# Categories
# =============================================================================

@tool("list_categories", "List all product categories")
async def _list_categories(connector, args: NoArgs):
    return await connector.list_categories()


@tool("get_category", "Get a category by ID", IdArgs)
async def _get_category(connector, args: IdArgs):
    return await connector.get_category(args.id)


@tool("create_category", "Create a new product category", CategoryArgs)
async def _create_category(connector, args: CategoryArgs):
    return await connector.create_category(parse_payload(args.category, "category"))


@tool("update_category", "Update a product category", UpdateCategoryArgs)
async def _update_category(connector, args: UpdateCategoryArgs):
    return await connector.update_category(args.id, parse_payload(args.category, "category"))


@tool("delete_category", "Delete a product category by ID", IdArgs)
async def _delete_category(connector, args: IdArgs):
    return await connector.delete_category(args.id)


# =============================================================================
# Warehouses
# =============================================================================

@tool("list_warehouses", "List all warehouses")
async def _list_warehouses(connector, args: NoArgs):
    return await connector.list_warehouses()


@tool("get_warehouse", "Get a warehouse by ID", IdArgs)
async def _get_warehouse(connector, args: IdArgs):
    return await connector.get_warehouse(args.id)


@tool("create_warehouse", "Create a new warehouse", WarehouseArgs)
async def _create_warehouse(connector, args: WarehouseArgs):
    return await connector.create_warehouse(parse_payload(args.warehouse, "warehouse"))


@tool("update_warehouse", "Update a warehouse", UpdateWarehouseArgs)
async def _update_warehouse(connector, args: UpdateWarehouseArgs):
    return await connector.update_warehouse(args.id, parse_payload(args.warehouse, "warehouse"))


@tool("delete_warehouse", "Delete a warehouse by ID", IdArgs)
async def _delete_warehouse(connector, args: IdArgs):
    return await connector.delete_warehouse(args.id)


# =============================================================================
# Departments
# =============================================================================

@tool("list_departments", "List all company departments")
async def _list_departments(connector, args: NoArgs):
    return await connector.list_departments()


@tool("get_department", "Get a department by ID", IdArgs)
async def _get_department(connector, args: IdArgs):
    return await connector.get_department(args.id)


@tool("create_department", "Create a new department", DepartmentArgs)
async def _create_department(connector, args: DepartmentArgs):
    return await connector.create_department(parse_payload(args.department, "department"))


@tool("update_department", "Update a department", UpdateDepartmentArgs)
async def _update_department(connector, args: UpdateDepartmentArgs):
    return await connector.update_department(args.id, parse_payload(args.department, "department"))


@tool("delete_department", "Delete a department by ID", IdArgs)
async def _delete_department(connector, args: IdArgs):
    return await connector.delete_department(args.id)


# =============================================================================
# Account
# =============================================================================

@tool("get_account_info", "Get current account information")
async def _get_account_info(connector, args: NoArgs):
    return await connector.get_account_info()
