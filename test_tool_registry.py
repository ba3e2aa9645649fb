"""Tool registry tests: argument handling, rendering and error results."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.services.tool_registry import (
    ToolInfo,
    ToolResult,
    TextContent,
    get_tool,
    invoke_tool,
    list_tools,
    parse_payload,
    render_error,
    render_result,
    tool,
)
from connectors.fakturownia import (
    FakturowniaHTTPError,
    FakturowniaTimeoutError,
    UnknownOperationError,
)


TOOL_NAMES = [
    "list_invoices", "get_invoice", "create_invoice", "update_invoice", "delete_invoice",
    "send_invoice_email", "change_invoice_status", "get_invoice_pdf_url",
    "send_invoice_to_ksef", "get_invoice_ksef_status",
    "list_clients", "get_client", "create_client", "update_client", "delete_client",
    "list_products", "get_product", "create_product", "update_product",
    "list_payments", "get_payment", "create_payment", "update_payment", "delete_payment",
    "list_warehouse_documents", "get_warehouse_document", "create_warehouse_document",
    "update_warehouse_document", "delete_warehouse_document",
    "list_categories", "create_category",
    "list_warehouses", "create_warehouse",
    "list_departments", "create_department",
    "get_account_info",
]


@pytest.fixture
def connector():
    return MagicMock()


def result_text(result: ToolResult) -> str:
    assert len(result.content) == 1
    return result.content[0].text


class TestRegistry:
    def test_all_tools_registered(self):
        registered = {spec.name for spec in list_tools()}
        assert set(TOOL_NAMES) <= registered

    def test_tool_info_uses_camel_case_schema_key(self):
        info = get_tool("get_invoice").info()
        dumped = info.model_dump(by_alias=True)
        assert dumped["name"] == "get_invoice"
        assert "inputSchema" in dumped
        assert dumped["inputSchema"]["required"] == ["id"]

    def test_unknown_tool(self):
        with pytest.raises(UnknownOperationError):
            get_tool("frobnicate")

    def test_duplicate_registration_rejected(self):
        with pytest.raises(ValueError, match="already registered"):
            @tool("list_invoices", "again")
            async def _again(connector, args):
                return None


class TestRendering:
    def test_string_passed_through(self):
        assert result_text(render_result("OK")) == "OK"

    def test_data_indented_json(self):
        text = result_text(render_result({"name": "Zażółć", "items": [1]}))
        assert text == json.dumps({"name": "Zażółć", "items": [1]}, indent=2, ensure_ascii=False)
        assert "Zażółć" in text

    def test_none_rendered_as_null(self):
        assert result_text(render_result(None)) == "null"

    def test_error_result(self):
        result = render_error(ValueError("boom"))
        assert result.is_error
        assert result_text(result) == "Error: boom"
        assert result.model_dump(by_alias=True)["isError"] is True

    def test_success_result_not_error(self):
        assert render_result([]).model_dump(by_alias=True)["isError"] is False


class TestParsePayload:
    def test_dict_passes_through(self):
        assert parse_payload({"a": 1}, "invoice") == {"a": 1}

    def test_json_string(self):
        assert parse_payload('{"kind": "vat"}', "invoice") == {"kind": "vat"}

    def test_invalid_json(self):
        with pytest.raises(ValueError, match="Invalid JSON in 'invoice'"):
            parse_payload("{not json", "invoice")

    def test_non_object(self):
        with pytest.raises(ValueError, match="'invoice' must be a JSON object"):
            parse_payload("[1, 2]", "invoice")


class TestInvokeTool:
    @pytest.mark.asyncio
    async def test_list_invoices_passes_filters(self, connector):
        connector.list_invoices = AsyncMock(return_value=[{"id": 1}])

        result = await invoke_tool(connector, "list_invoices", {"period": "this_month", "page": "2"})

        connector.list_invoices.assert_awaited_once_with({"page": "2", "period": "this_month"})
        assert not result.is_error
        assert json.loads(result_text(result)) == [{"id": 1}]

    @pytest.mark.asyncio
    async def test_create_invoice_from_json_string(self, connector):
        connector.create_invoice = AsyncMock(return_value={"id": 7})

        result = await invoke_tool(connector, "create_invoice", {
            "invoice": '{"kind": "vat", "buyer_name": "ACME"}',
            "gov_save_and_send": True,
        })

        connector.create_invoice.assert_awaited_once_with({"kind": "vat", "buyer_name": "ACME"}, True)
        assert not result.is_error

    @pytest.mark.asyncio
    async def test_invalid_json_argument(self, connector):
        connector.create_client = AsyncMock()

        result = await invoke_tool(connector, "create_client", {"client_data": "{oops"})

        assert result.is_error
        assert result_text(result).startswith("Error: Invalid JSON in 'client_data'")
        connector.create_client.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_required_argument(self, connector):
        connector.get_invoice = AsyncMock()

        result = await invoke_tool(connector, "get_invoice", {})

        assert result.is_error
        assert result_text(result).startswith("Error: Invalid arguments - id:")
        connector.get_invoice.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_api_error_becomes_error_result(self, connector):
        connector.delete_client = AsyncMock(side_effect=FakturowniaHTTPError(
            "Fakturownia API error 404: Not found", "DELETE", "/clients/9.json", 404, "Not found",
        ))

        result = await invoke_tool(connector, "delete_client", {"id": 9})

        assert result.is_error
        assert result_text(result) == "Error: Fakturownia API error 404: Not found"

    @pytest.mark.asyncio
    async def test_timeout_becomes_error_result(self, connector):
        connector.get_account_info = AsyncMock(side_effect=FakturowniaTimeoutError(
            "Fakturownia API request timed out after 30s: GET /account.json",
            "GET", "/account.json", 30.0, 4,
        ))

        result = await invoke_tool(connector, "get_account_info")

        assert result.is_error
        assert "timed out" in result_text(result)

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_error_result(self, connector):
        connector.list_warehouses = AsyncMock(side_effect=RuntimeError("kaput"))

        result = await invoke_tool(connector, "list_warehouses")

        assert result.is_error
        assert result_text(result) == "Error: kaput"

    @pytest.mark.asyncio
    async def test_plain_text_response(self, connector):
        connector.change_invoice_status = AsyncMock(return_value="OK")

        result = await invoke_tool(connector, "change_invoice_status", {"id": 3, "status": "paid"})

        connector.change_invoice_status.assert_awaited_once_with(3, "paid")
        assert result_text(result) == "OK"

    @pytest.mark.asyncio
    async def test_pdf_url_wrapped(self, connector):
        connector.get_invoice_pdf_url.return_value = {"pdf_url_internal": "https://acme.fakturownia.pl/invoices/5.pdf"}

        result = await invoke_tool(connector, "get_invoice_pdf_url", {"id": 5})

        assert json.loads(result_text(result)) == {
            "pdf_url": {"pdf_url_internal": "https://acme.fakturownia.pl/invoices/5.pdf"}
        }

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self, connector):
        with pytest.raises(UnknownOperationError):
            await invoke_tool(connector, "frobnicate", {})


def test_result_models_shape():
    result = ToolResult(content=[TextContent(text="hi")])
    assert result.model_dump(by_alias=True) == {
        "content": [{"type": "text", "text": "hi"}],
        "isError": False,
    }
    info = ToolInfo(name="x", description="y", input_schema={})
    assert info.model_dump(by_alias=True)["inputSchema"] == {}
