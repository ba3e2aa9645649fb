"""Fakturownia Endpoint Table.

Static description of every named operation exposed by the connector:
HTTP verb, path template, body wrapper key and query handling.

The table is plain data. The executor never looks operations up itself;
callers resolve a descriptor here and hand it to FakturowniaClient.execute().
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional

import logging

logger = logging.getLogger(__name__)


BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

KSEF_STATUS_FIELDS = ",".join([
    "gov_status",
    "gov_id",
    "gov_send_date",
    "gov_sell_date",
    "gov_error_messages",
    "gov_verification_link",
    "gov_link",
    "gov_corrected_invoice_number",
])


class UnknownOperationError(ValueError):
    """Operation name is not in the endpoint table."""
    pass


@dataclass(frozen=True)
class RequestIntent:
    """One logical call, fully resolved and ready for the executor."""
    method: str
    path: str
    body: Optional[Dict[str, Any]] = None
    query: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class EndpointDescriptor:
    """Describes how a logical operation maps onto the REST API.

    Attributes:
        method: HTTP verb
        path_template: Path with named ids, e.g. "/invoices/{id}.json"
        body_key: Key the payload is wrapped under (e.g. "invoice")
        accepts_query: Whether caller-supplied query parameters are sent
        fixed_query: Constant query parameters always sent for this operation
    """
    method: str
    path_template: str
    body_key: Optional[str] = None
    accepts_query: bool = False
    fixed_query: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "fixed_query", MappingProxyType(dict(self.fixed_query)))

    @property
    def carries_body(self) -> bool:
        return self.method in BODY_METHODS

    def resolve_path(self, **path_params: Any) -> str:
        """Substitute ids into the path template."""
        try:
            return self.path_template.format(**path_params)
        except KeyError as e:
            raise ValueError(
                f"Missing path parameter {e} for {self.method} {self.path_template}"
            ) from e

    def wrap_body(self, payload: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
        """Build the request body for this operation.

        Bodyless verbs never get a body. Verbs with a body always get one,
        an empty object for trigger-style actions without fields.
        """
        if not self.carries_body:
            return None
        data = dict(payload) if payload else {}
        if self.body_key:
            return {self.body_key: data}
        return data

    def build_query(self, query: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
        """Merge fixed query params with caller params (caller wins)."""
        merged: Dict[str, str] = dict(self.fixed_query)
        if not query:
            return merged
        if not self.accepts_query:
            logger.warning(
                f"Ignoring query parameters {sorted(query)} for "
                f"{self.method} {self.path_template}"
            )
            return merged
        for key, value in query.items():
            if value is None:
                continue
            merged[key] = str(value)
        return merged

    def bind(
        self,
        payload: Optional[Mapping[str, Any]] = None,
        query: Optional[Mapping[str, Any]] = None,
        **path_params: Any,
    ) -> RequestIntent:
        """Resolve path, body and query into a RequestIntent."""
        return RequestIntent(
            method=self.method,
            path=self.resolve_path(**path_params),
            body=self.wrap_body(payload),
            query=self.build_query(query),
        )


def _resource(
    collection: str,
    body_key: str,
    *,
    list_query: bool = True,
    update_method: str = "PUT",
    with_delete: bool = True,
) -> Dict[str, EndpointDescriptor]:
    """Standard CRUD descriptors for one resource collection."""
    item = f"{collection}/{{id}}.json"
    endpoints = {
        "list": EndpointDescriptor("GET", f"{collection}.json", accepts_query=list_query),
        "get": EndpointDescriptor("GET", item),
        "create": EndpointDescriptor("POST", f"{collection}.json", body_key=body_key),
        "update": EndpointDescriptor(update_method, item, body_key=body_key),
    }
    if with_delete:
        endpoints["delete"] = EndpointDescriptor("DELETE", item)
    return endpoints


def _register(table: Dict[str, EndpointDescriptor], suffix: str, plural: str,
              endpoints: Dict[str, EndpointDescriptor]) -> None:
    for action, descriptor in endpoints.items():
        name = f"{action}_{plural}" if action == "list" else f"{action}_{suffix}"
        table[name] = descriptor


def _build_table() -> Mapping[str, EndpointDescriptor]:
    table: Dict[str, EndpointDescriptor] = {}

    # Invoices
    _register(table, "invoice", "invoices", _resource("/invoices", "invoice"))
    table["get_invoice"] = EndpointDescriptor("GET", "/invoices/{id}.json", accepts_query=True)
    table["create_invoice"] = EndpointDescriptor(
        "POST", "/invoices.json", body_key="invoice", accepts_query=True
    )
    table["send_invoice_email"] = EndpointDescriptor(
        "POST", "/invoices/{id}/send_by_email.json"
    )
    table["change_invoice_status"] = EndpointDescriptor(
        "GET", "/invoices/{id}/change_status.json", accepts_query=True
    )
    table["send_invoice_to_ksef"] = EndpointDescriptor(
        "GET", "/invoices/{id}.json", fixed_query={"send_to_ksef": "yes"}
    )
    table["get_invoice_ksef_status"] = EndpointDescriptor(
        "GET", "/invoices/{id}.json", fixed_query={"fields[invoice]": KSEF_STATUS_FIELDS}
    )

    _register(table, "client", "clients", _resource("/clients", "client"))
    _register(table, "product", "products", _resource("/products", "product", with_delete=False))
    _register(
        table, "payment", "payments",
        _resource("/banking/payments", "banking_payment", update_method="PATCH"),
    )
    _register(
        table, "warehouse_document", "warehouse_documents",
        _resource("/warehouse_documents", "warehouse_document"),
    )
    _register(table, "category", "categories", _resource("/categories", "category", list_query=False))
    _register(table, "warehouse", "warehouses", _resource("/warehouses", "warehouse", list_query=False))
    _register(table, "department", "departments", _resource("/departments", "department", list_query=False))

    # Account
    table["get_account_info"] = EndpointDescriptor(
        "GET", "/account.json", fixed_query={"integration_token": ""}
    )

    return MappingProxyType(table)


ENDPOINTS: Mapping[str, EndpointDescriptor] = _build_table()


def get_endpoint(operation: str) -> EndpointDescriptor:
    """Look up the descriptor for a named operation.

    Raises:
        UnknownOperationError: operation is not in the table
    """
    try:
        return ENDPOINTS[operation]
    except KeyError:
        raise UnknownOperationError(f"Unknown operation: {operation}") from None


def list_operations() -> List[str]:
    """All operation names, sorted."""
    return sorted(ENDPOINTS)


def invoice_pdf_url(base_url: str, invoice_id: int) -> str:
    """URL of an invoice PDF. Does not include the API token."""
    return f"{base_url}/invoices/{invoice_id}.pdf"
