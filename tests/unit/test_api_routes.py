"""Unit tests for the HTTP route handlers, called with in-memory requests."""

import json

import azure.functions as func
import pytest

from icd_explorer import api_routes, cms_tools, drug_tools, snomed_tools
from icd_explorer.errors import ConfigurationError


def make_request(method: str = "GET", url: str = "/api/test", params: dict | None = None, body: bytes = b"", headers: dict | None = None) -> func.HttpRequest:
    return func.HttpRequest(method=method, url=url, headers=headers or {}, params=params or {}, body=body)


def post_json(url: str, payload) -> func.HttpRequest:
    return make_request("POST", url, body=json.dumps(payload).encode(), headers={"Content-Type": "application/json"})


def body_of(response: func.HttpResponse) -> dict:
    return json.loads(response.get_body())


class TestValidateDrugs:
    @pytest.fixture
    def validated(self, monkeypatch):
        calls = []

        async def fake(condition_name, icd_code):
            calls.append((condition_name, icd_code))
            return [{"brandName": "Glucophage", "genericName": "metformin"}]

        monkeypatch.setattr(drug_tools, "get_validated_drugs", fake)
        return calls

    @pytest.mark.asyncio
    async def test_success_sanitizes_input(self, validated):
        response = await api_routes.validate_drugs(
            post_json("/api/validate-drugs", {"conditionName": "  Type 2 diabetes  ", "icdCode": " e11.9 "})
        )
        assert response.status_code == 200
        assert body_of(response) == {
            "drugs": [{"brandName": "Glucophage", "genericName": "metformin"}],
            "icdCode": "E11.9",
            "count": 1,
        }
        assert validated == [("Type 2 diabetes", "E11.9")]

    @pytest.mark.asyncio
    async def test_truncates_long_condition(self, validated):
        await api_routes.validate_drugs(post_json("/api/validate-drugs", {"conditionName": "x" * 900, "icdCode": "E11.9"}))
        assert len(validated[0][0]) == api_routes.MAX_CONDITION_LENGTH

    @pytest.mark.asyncio
    async def test_invalid_json(self, validated):
        response = await api_routes.validate_drugs(make_request("POST", "/api/validate-drugs", body=b"{not json"))
        assert response.status_code == 400
        assert body_of(response)["error"] == "Invalid JSON in request body"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload,field_name",
        [({"icdCode": "E11.9"}, "conditionName"), ({"conditionName": "asthma", "icdCode": 45}, "icdCode")],
    )
    async def test_missing_fields(self, validated, payload, field_name):
        response = await api_routes.validate_drugs(post_json("/api/validate-drugs", payload))
        assert response.status_code == 400
        assert body_of(response)["error"] == f"{field_name} is required and must be a string"
        assert validated == []

    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch):
        async def fake(condition_name, icd_code):
            raise ConfigurationError("Azure OpenAI not configured")

        monkeypatch.setattr(drug_tools, "get_validated_drugs", fake)
        response = await api_routes.validate_drugs(post_json("/api/validate-drugs", {"conditionName": "asthma", "icdCode": "J45.909"}))
        assert response.status_code == 503
        assert body_of(response)["error"] == "AI service not configured. Contact administrator."

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, monkeypatch):
        async def fake(condition_name, icd_code):
            raise RuntimeError("boom")

        monkeypatch.setattr(drug_tools, "get_validated_drugs", fake)
        response = await api_routes.validate_drugs(post_json("/api/validate-drugs", {"conditionName": "asthma", "icdCode": "J45.909"}))
        assert response.status_code == 500
        assert "boom" not in response.get_body().decode()

    @pytest.mark.asyncio
    async def test_preflight(self):
        response = await api_routes.validate_drugs_options(make_request("OPTIONS", "/api/validate-drugs"))
        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"


class TestSnomedProcedures:
    @pytest.mark.asyncio
    async def test_success(self, monkeypatch):
        async def fake(code):
            return [{"code": "1001", "codeSystem": "SNOMED"}]

        monkeypatch.setattr(snomed_tools, "get_snomed_procedures", fake)
        response = await api_routes.snomed_procedures(make_request(params={"icd10": " e11.9 "}))
        body = body_of(response)
        assert response.status_code == 200
        assert body["icd10Code"] == "E11.9"
        assert body["resultCount"] == 1
        assert isinstance(body["processingTimeMs"], int)

    @pytest.mark.asyncio
    async def test_missing_param(self):
        response = await api_routes.snomed_procedures(make_request())
        assert response.status_code == 400
        assert body_of(response)["error"] == "Missing required parameter: icd10"
        assert body_of(response)["procedures"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["E1", "11.9", "E11.99999", "diabetes"])
    async def test_bad_format(self, code):
        response = await api_routes.snomed_procedures(make_request(params={"icd10": code}))
        assert response.status_code == 400
        assert body_of(response)["error"] == f"Invalid ICD-10 code format: {code}"

    @pytest.mark.asyncio
    async def test_not_configured(self, monkeypatch):
        monkeypatch.delenv("UMLS_API_KEY", raising=False)
        response = await api_routes.snomed_procedures(make_request(params={"icd10": "E119"}))
        assert response.status_code == 503
        assert "UMLS" in body_of(response)["error"]

    @pytest.mark.asyncio
    async def test_non_json_upstream_is_not_a_server_error(self, mock_api, monkeypatch):
        monkeypatch.setenv("UMLS_API_KEY", "test-key")
        mock_api.add("tickets/TGT-test", "ST-12345\n")
        mock_api.add("cas/v1/api-key", '<form action="https://utslogin.nlm.nih.gov/cas/v1/tickets/TGT-test"></form>')
        mock_api.add("uts-ws.nlm.nih.gov", "<html>Service Unavailable</html>")
        response = await api_routes.snomed_procedures(make_request(params={"icd10": "E11.9"}))
        body = body_of(response)
        assert response.status_code == 200
        assert body["resultCount"] > 0
        assert all(p["source"] == "curated" for p in body["procedures"])

    @pytest.mark.asyncio
    async def test_unexpected_failure(self, monkeypatch):
        async def fake(code):
            raise KeyError("result")

        monkeypatch.setattr(snomed_tools, "get_snomed_procedures", fake)
        response = await api_routes.snomed_procedures(make_request(params={"icd10": "E11.9"}))
        assert response.status_code == 500
        assert body_of(response)["error"] == "Internal server error during SNOMED procedure lookup"


class TestCmsCoverage:
    @pytest.mark.asyncio
    async def test_search(self, monkeypatch):
        async def fake(condition, coverage_type):
            return {"ncds": [], "lcds": [], "totalResults": 0, "searchTerm": condition, "type": coverage_type}

        monkeypatch.setattr(cms_tools, "search_coverage", fake)
        body = body_of(await api_routes.cms_coverage(make_request(params={"condition": "diabetes"})))
        assert body["searchTerm"] == "diabetes"
        assert body["type"] == "all"

    @pytest.mark.asyncio
    async def test_detail(self, monkeypatch):
        calls = []

        async def fake(ncd_id, version):
            calls.append((ncd_id, version))
            return {"title": "Home Blood Glucose Monitors"}

        monkeypatch.setattr(cms_tools, "get_ncd_details", fake)
        body = body_of(await api_routes.cms_coverage(make_request(params={"ncdId": "40", "version": "3"})))
        assert body == {"detail": {"title": "Home Blood Glucose Monitors"}}
        assert calls == [(40, 3)]

    @pytest.mark.asyncio
    async def test_missing_condition(self):
        response = await api_routes.cms_coverage(make_request())
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_upstream_failure_degrades(self, monkeypatch):
        async def fake(condition, coverage_type):
            raise RuntimeError("timeout")

        monkeypatch.setattr(cms_tools, "search_coverage", fake)
        response = await api_routes.cms_coverage(make_request(params={"condition": "diabetes"}))
        body = body_of(response)
        assert response.status_code == 200
        assert body["totalResults"] == 0
        assert body["error"] == "CMS Coverage API temporarily unavailable"


class TestMcpRoutes:
    @pytest.mark.asyncio
    async def test_discovery(self):
        response = await api_routes.mcp_discovery(make_request(url="/api/.well-known/mcp"))
        body = body_of(response)
        assert body["name"] == "icd-explorer"
        assert any(tool["name"] == "search_icd10" for tool in body["tools"])
        assert response.headers["X-MCP-Protocol-Version"] == body["protocol_version"]

    @pytest.mark.asyncio
    async def test_get_rejects_sse(self):
        response = await api_routes.mcp_get(make_request(url="/api/mcp", headers={"Accept": "text/event-stream"}))
        assert response.status_code == 405
        assert response.headers["Allow"] == "POST"

    @pytest.mark.asyncio
    async def test_get_transport_info(self):
        body = body_of(await api_routes.mcp_get(make_request(url="/api/mcp")))
        assert body["transport"] == "streamable-http"
        assert body["methods_supported"] == ["POST"]

    @pytest.mark.asyncio
    async def test_message(self):
        response = await api_routes.mcp_message(
            make_request("POST", "/api/mcp", body=json.dumps({"jsonrpc": "2.0", "id": 7, "method": "ping"}).encode(), headers={"Mcp-Session-Id": "abc"})
        )
        assert body_of(response) == {"jsonrpc": "2.0", "id": 7, "result": {}}
        assert response.headers["Mcp-Session-Id"] == "abc"

    @pytest.mark.asyncio
    async def test_message_parse_error(self):
        response = await api_routes.mcp_message(make_request("POST", "/api/mcp", body=b"{oops"))
        assert response.status_code == 400
        assert body_of(response)["error"]["code"] == -32700

    @pytest.mark.asyncio
    async def test_health(self):
        body = body_of(await api_routes.health_check(make_request(url="/api/health")))
        assert body["status"] == "healthy"
        assert body["tool_count"] == len(api_routes.server.tools)
        assert "icd10" in body["domains"]
