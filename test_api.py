"""HTTP surface tests for the tool API."""

import json

import pytest
from fastapi.testclient import TestClient

from api.server import create_app
from conftest import API_TOKEN, FakeResponse, FakeSession, make_client
from connectors.fakturownia import FakturowniaConnector
from core.observability.metrics import get_metrics


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def api(session):
    app = create_app(connector=FakturowniaConnector(make_client(session, max_retries=0)))
    with TestClient(app) as test_client:
        yield test_client


class TestTools:
    def test_list_tools(self, api):
        response = api.get("/tools")

        assert response.status_code == 200
        tools = {item["name"]: item for item in response.json()}
        assert "create_invoice" in tools
        assert "inputSchema" in tools["create_invoice"]

    def test_describe_tool(self, api):
        response = api.get("/tools/get_client")

        assert response.status_code == 200
        assert response.json()["inputSchema"]["required"] == ["id"]

    def test_describe_unknown_tool(self, api):
        assert api.get("/tools/frobnicate").status_code == 404

    def test_invoke_unknown_tool(self, api):
        assert api.post("/tools/frobnicate", json={}).status_code == 404

    def test_invoke_tool(self, api, session):
        session.responses.append(FakeResponse(200, {"id": 42, "name": "ACME"}))

        response = api.post("/tools/get_client", json={"id": 42})

        body = response.json()
        assert response.status_code == 200
        assert body["isError"] is False
        assert json.loads(body["content"][0]["text"]) == {"id": 42, "name": "ACME"}
        assert session.calls[0].path == "/clients/42.json"
        assert session.calls[0].params == {"api_token": API_TOKEN}

    def test_invoke_without_arguments(self, api, session):
        session.responses.append(FakeResponse(200, []))

        response = api.post("/tools/list_categories")

        assert response.status_code == 200
        assert response.json()["content"][0]["text"] == "[]"

    def test_api_failure_is_error_result(self, api, session):
        session.responses.append(FakeResponse(422, '{"message": "invalid"}', "text/plain"))

        response = api.post("/tools/create_product", json={"product": {"name": "Widget"}})

        body = response.json()
        assert response.status_code == 200
        assert body["isError"] is True
        assert body["content"][0]["text"].startswith("Error: Fakturownia API error 422")

    def test_invalid_arguments_is_error_result(self, api):
        response = api.post("/tools/get_invoice", json={"id": "not-a-number"})

        body = response.json()
        assert response.status_code == 200
        assert body["isError"] is True
        assert "Invalid arguments" in body["content"][0]["text"]


class TestHealth:
    def test_health(self, api):
        body = api.get("/health").json()
        assert body["status"] == "healthy"
        assert body["services"]["fakturownia"] == "up"

    def test_ready(self, api):
        response = api.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    def test_live(self, api):
        assert api.get("/live").json() == {"status": "alive"}

    def test_metrics(self, api, session):
        get_metrics().reset()
        session.responses.append(FakeResponse(200, {}))
        api.post("/tools/get_account_info")

        summary = api.get("/metrics").json()

        assert summary["requests"]["started"] == 1
        assert summary["requests"]["succeeded"] == 1
        assert "GET /account.json" in summary["requests"]["by_endpoint"]

    def test_not_ready_without_lifespan(self):
        app = create_app(connector=FakturowniaConnector(make_client(FakeSession())))
        client = TestClient(app)

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json() == {"status": "not_ready"}
        assert client.get("/health").json()["services"]["fakturownia"] == "not_configured"
