"""
Shared pytest fixtures.

Unit tests swap the upstream HTTP transport for an httpx.MockTransport via
``mock_api``; integration tests talk to a local ``func start`` host through
``MCPClient``.
"""

import json
import os
from typing import Any, Callable

import httpx
import pytest

from icd_explorer import (
    clinical_trials_tools,
    cms_tools,
    conditions_api,
    drug_ai,
    drug_mappings,
    drug_tools,
    hcpcs_tools,
    http_client,
    icd10pcs_tools,
    rxnorm,
    snomed_tools,
)

MCP_PORT = int(os.getenv("ICD_EXPLORER_PORT", "7071"))
MCP_BASE_HOST = os.getenv("MCP_BASE_HOST", "http://localhost")
MCP_FUNCTION_KEY = os.getenv("MCP_FUNCTION_KEY", "")  # empty for local, set for Docker


def _headers() -> dict:
    headers = {"Content-Type": "application/json"}
    if MCP_FUNCTION_KEY:
        headers["x-functions-key"] = MCP_FUNCTION_KEY
    return headers


# ---------------------------------------------------------------------------
# Upstream API mocking (unit tests)
# ---------------------------------------------------------------------------


class MockAPI:
    """Routes requests by host+path substring to canned responses and records calls."""

    def __init__(self):
        self.routes: list[tuple[str, Callable[[httpx.Request], httpx.Response]]] = []
        self.requests: list[httpx.Request] = []

    def add(self, fragment: str, response: Any = None, status_code: int = 200) -> None:
        """Register a JSON (dict/list), text (str), or callable response for URLs containing fragment."""
        if callable(response):
            handler = response
        elif isinstance(response, str):
            handler = lambda request: httpx.Response(status_code, text=response)  # noqa: E731
        else:
            handler = lambda request: httpx.Response(status_code, json=response)  # noqa: E731
        self.routes.append((fragment, handler))

    def calls(self, fragment: str) -> list[httpx.Request]:
        return [r for r in self.requests if fragment in str(r.url)]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        for fragment, handler in self.routes:
            if fragment in url:
                return handler(request)
        return httpx.Response(404, json={"error": f"unmocked: {url}"})


@pytest.fixture(autouse=True)
def clear_caches():
    """Module-level caches outlive a test; start each one empty."""
    yield
    conditions_api.clear_conditions_cache()
    rxnorm.clear_caches()
    drug_tools.clear_validation_cache()
    drug_mappings.clear_fallback_cache()
    cms_tools.clear_coverage_cache()
    hcpcs_tools.clear_hcpcs_cache()
    icd10pcs_tools.clear_icd10pcs_cache()
    snomed_tools.clear_snomed_cache()
    snomed_tools.reset_umls_auth()
    drug_ai.reset_openai_client()


@pytest.fixture
def mock_api(monkeypatch) -> MockAPI:
    api = MockAPI()
    monkeypatch.setattr(http_client, "_transport", httpx.MockTransport(api))
    monkeypatch.setattr(clinical_trials_tools, "DEMO_MODE", False)
    return api


# ---------------------------------------------------------------------------
# Azure OpenAI fake
# ---------------------------------------------------------------------------


class _Message:
    def __init__(self, content: str):
        self.content = content


class _Choice:
    def __init__(self, content: str):
        self.message = _Message(content)


class _Completion:
    def __init__(self, content: str):
        self.choices = [_Choice(content)]


class FakeCompletions:
    def __init__(self):
        self.replies: list[Any] = []
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else "[]"
        if isinstance(reply, Exception):
            raise reply
        return _Completion(reply)


class FakeOpenAI:
    """Stands in for AsyncAzureOpenAI: queue replies on ``.completions.replies``."""

    def __init__(self):
        self.completions = FakeCompletions()
        self.chat = self

    def reply(self, *contents: Any) -> None:
        self.completions.replies.extend(contents)


@pytest.fixture
def fake_openai(monkeypatch) -> FakeOpenAI:
    client = FakeOpenAI()
    monkeypatch.setattr(drug_ai, "_openai_client", client)
    monkeypatch.setattr(drug_ai, "_deployment", "test-deployment")
    return client


# ---------------------------------------------------------------------------
# MCP client (integration tests)
# ---------------------------------------------------------------------------


class MCPClient:
    """Lightweight wrapper for MCP JSON-RPC calls."""

    def __init__(self, base_url: str, headers: dict | None = None):
        self.base_url = base_url
        self.headers = headers or _headers()
        self._http = httpx.Client(base_url=base_url, headers=self.headers, timeout=30.0)
        self._id = 0

    def _next_id(self) -> int:
        self._id += 1
        return self._id

    # -- Discovery -----------------------------------------------------------
    def discover(self) -> httpx.Response:
        return self._http.get("/.well-known/mcp")

    # -- JSON-RPC helpers ----------------------------------------------------
    def rpc(self, method: str, params: dict | None = None) -> httpx.Response:
        payload = {
            "jsonrpc": "2.0",
            "id": self._next_id(),
            "method": method,
            "params": params or {},
        }
        return self._http.post("/mcp", json=payload)

    def initialize(self) -> httpx.Response:
        return self.rpc(
            "initialize",
            {
                "protocolVersion": "2025-06-18",
                "clientInfo": {"name": "pytest", "version": "1.0.0"},
            },
        )

    def list_tools(self) -> httpx.Response:
        return self.rpc("tools/list")

    def call_tool(self, name: str, arguments: dict | None = None) -> httpx.Response:
        return self.rpc("tools/call", {"name": name, "arguments": arguments or {}})

    def health(self) -> httpx.Response:
        return self._http.get("/health")

    def get(self, path: str, **params) -> httpx.Response:
        return self._http.get(path, params=params)

    def post(self, path: str, body: Any) -> httpx.Response:
        return self._http.post(path, json=body)

    def get_tool_names(self) -> set[str]:
        resp = self.list_tools()
        if resp.status_code != 200:
            return set()
        tools = resp.json().get("result", {}).get("tools", [])
        return {t["name"] for t in tools}

    def call_tool_parsed(self, name: str, arguments: dict | None = None) -> dict[str, Any]:
        """Call a tool and return the parsed JSON content."""
        resp = self.call_tool(name, arguments)
        if resp.status_code != 200:
            return {"_error": f"HTTP {resp.status_code}"}
        result = resp.json().get("result", {})
        content = result.get("content", [])
        if content and content[0].get("type") == "text":
            try:
                return json.loads(content[0]["text"])
            except (json.JSONDecodeError, KeyError):
                return {"_raw": content[0].get("text", "")}
        return resp.json()

    def close(self):
        self._http.close()


@pytest.fixture(scope="session")
def mcp_icd_explorer() -> MCPClient:
    client = MCPClient(f"{MCP_BASE_HOST}:{MCP_PORT}/api")
    yield client
    client.close()
