"""Endpoint table tests."""

from dataclasses import FrozenInstanceError

import pytest

from connectors.fakturownia.fa_endpoints import (
    ENDPOINTS,
    EndpointDescriptor,
    KSEF_STATUS_FIELDS,
    UnknownOperationError,
    get_endpoint,
    invoice_pdf_url,
    list_operations,
)


class TestTableContents:
    @pytest.mark.parametrize("operation, method, path, body_key", [
        ("list_invoices", "GET", "/invoices.json", None),
        ("get_invoice", "GET", "/invoices/{id}.json", None),
        ("create_invoice", "POST", "/invoices.json", "invoice"),
        ("update_invoice", "PUT", "/invoices/{id}.json", "invoice"),
        ("delete_invoice", "DELETE", "/invoices/{id}.json", None),
        ("send_invoice_email", "POST", "/invoices/{id}/send_by_email.json", None),
        ("change_invoice_status", "GET", "/invoices/{id}/change_status.json", None),
        ("create_client", "POST", "/clients.json", "client"),
        ("update_product", "PUT", "/products/{id}.json", "product"),
        ("get_payment", "GET", "/banking/payments/{id}.json", None),
        ("create_payment", "POST", "/banking/payments.json", "banking_payment"),
        ("update_payment", "PATCH", "/banking/payments/{id}.json", "banking_payment"),
        ("create_warehouse_document", "POST", "/warehouse_documents.json", "warehouse_document"),
        ("delete_category", "DELETE", "/categories/{id}.json", None),
        ("create_warehouse", "POST", "/warehouses.json", "warehouse"),
        ("update_department", "PUT", "/departments/{id}.json", "department"),
        ("get_account_info", "GET", "/account.json", None),
    ])
    def test_descriptor(self, operation, method, path, body_key):
        descriptor = get_endpoint(operation)
        assert descriptor.method == method
        assert descriptor.path_template == path
        assert descriptor.body_key == body_key

    def test_every_resource_covered(self):
        operations = set(list_operations())
        for plural, singular in [
            ("invoices", "invoice"),
            ("clients", "client"),
            ("payments", "payment"),
            ("warehouse_documents", "warehouse_document"),
            ("categories", "category"),
            ("warehouses", "warehouse"),
            ("departments", "department"),
        ]:
            assert f"list_{plural}" in operations
            for action in ("get", "create", "update", "delete"):
                assert f"{action}_{singular}" in operations
        assert "delete_product" not in operations

    def test_fixed_query_operations(self):
        assert get_endpoint("send_invoice_to_ksef").fixed_query == {"send_to_ksef": "yes"}
        assert get_endpoint("get_invoice_ksef_status").fixed_query == {"fields[invoice]": KSEF_STATUS_FIELDS}
        assert get_endpoint("get_account_info").fixed_query == {"integration_token": ""}
        assert KSEF_STATUS_FIELDS.startswith("gov_status,gov_id,")

    def test_unknown_operation(self):
        with pytest.raises(UnknownOperationError, match="nope"):
            get_endpoint("nope")

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            ENDPOINTS["list_invoices"] = EndpointDescriptor("GET", "/x.json")

    def test_fixed_query_is_read_only(self):
        descriptor = get_endpoint("send_invoice_to_ksef")
        with pytest.raises(TypeError):
            descriptor.fixed_query["send_to_ksef"] = "no"
        assert get_endpoint("send_invoice_to_ksef").bind(id=1).query == {"send_to_ksef": "yes"}

    def test_fixed_query_copied_from_caller(self):
        source = {"a": "1"}
        descriptor = EndpointDescriptor("GET", "/x.json", fixed_query=source)
        source["a"] = "2"
        assert descriptor.fixed_query == {"a": "1"}

    def test_descriptors_are_hashable(self):
        descriptor = get_endpoint("get_invoice_ksef_status")
        assert hash(descriptor) == hash(get_endpoint("get_invoice_ksef_status"))
        assert descriptor in {descriptor}

    def test_descriptor_is_frozen(self):
        with pytest.raises(FrozenInstanceError):
            get_endpoint("list_invoices").method = "POST"


class TestBinding:
    def test_path_resolution(self):
        assert get_endpoint("get_client").resolve_path(id=12) == "/clients/12.json"

    def test_missing_path_param(self):
        with pytest.raises(ValueError, match="id"):
            get_endpoint("get_client").resolve_path()

    def test_body_wrapped_under_key(self):
        intent = get_endpoint("create_client").bind({"name": "ACME"})
        assert intent.body == {"client": {"name": "ACME"}}
        assert intent.method == "POST"
        assert intent.path == "/clients.json"

    def test_trigger_action_gets_empty_body(self):
        intent = get_endpoint("send_invoice_email").bind(id=3)
        assert intent.body == {}
        assert intent.path == "/invoices/3/send_by_email.json"

    def test_bodyless_verb_drops_payload(self):
        intent = get_endpoint("get_invoice").bind({"ignored": 1}, id=3)
        assert intent.body is None

    def test_caller_query_wins_over_fixed(self):
        descriptor = EndpointDescriptor("GET", "/x.json", accepts_query=True, fixed_query={"a": "1", "b": "2"})
        assert descriptor.build_query({"b": "3", "c": 4, "d": None}) == {"a": "1", "b": "3", "c": "4"}

    def test_query_dropped_when_not_accepted(self):
        intent = get_endpoint("send_invoice_to_ksef").bind(query={"page": "2"}, id=1)
        assert intent.query == {"send_to_ksef": "yes"}

    def test_list_query_passed_through(self):
        intent = get_endpoint("list_invoices").bind(query={"period": "this_month"})
        assert intent.query == {"period": "this_month"}


def test_invoice_pdf_url_has_no_token():
    url = invoice_pdf_url("https://acme.fakturownia.pl", 42)
    assert url == "https://acme.fakturownia.pl/invoices/42.pdf"
    assert "api_token" not in url
