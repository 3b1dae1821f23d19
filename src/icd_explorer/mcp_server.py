"""
MCP server core: tool registry and JSON-RPC 2.0 message dispatch.

Supports MCP Protocol 2025-06-18 (initialize, tools/list, tools/call, ping).
HTTP transport lives in api_routes; this module only turns a decoded
JSON-RPC message into a response dict.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from . import (
    __version__,
    clinical_trials_tools,
    cms_tools,
    drug_tools,
    hcpcs_tools,
    icd10_tools,
    icd10pcs_tools,
    mind_map,
    snomed_tools,
    storage_tools,
)
from .errors import ValidationError

logger = logging.getLogger(__name__)

MCP_PROTOCOL_VERSION = os.environ.get("MCP_PROTOCOL_VERSION", "2025-06-18")

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

SERVER_NAME = "icd-explorer"
SERVER_DESCRIPTION = (
    "ICD-10-CM lookup with lay-term translation and relevance ranking, plus related drugs, "
    "clinical trials, Medicare coverage, and SNOMED CT / ICD-10-PCS / HCPCS procedures"
)

# Domain name -> tool module; each module exports TOOLS and HANDLERS
DOMAINS = {
    "icd10": icd10_tools,
    "drugs": drug_tools,
    "clinical_trials": clinical_trials_tools,
    "cms": cms_tools,
    "snomed": snomed_tools,
    "hcpcs": hcpcs_tools,
    "icd10pcs": icd10pcs_tools,
    "storage": storage_tools,
    "mind_map": mind_map,
}

Handler = Callable[[dict], Awaitable[Any]]


@dataclass
class Tool:
    """MCP Tool definition."""

    name: str
    description: str
    input_schema: dict
    handler: Handler

    def describe(self) -> dict:
        return {"name": self.name, "description": self.description, "inputSchema": self.input_schema}


@dataclass
class MCPServer:
    name: str
    version: str
    description: str
    tools: list[Tool] = field(default_factory=list)
    domains: list[str] = field(default_factory=list)

    def register_module(self, domain: str, module: Any) -> None:
        """Register every tool a module declares in TOOLS, dispatched via its HANDLERS."""
        for entry in module.TOOLS:
            if self._find_tool(entry["name"]):
                raise ValueError(f"Duplicate tool name: {entry['name']}")
            self.tools.append(
                Tool(
                    name=entry["name"],
                    description=entry["description"],
                    input_schema=entry["inputSchema"],
                    handler=module.HANDLERS[entry["name"]],
                )
            )
        self.domains.append(domain)

    def get_discovery_response(self) -> dict:
        """Generate the /.well-known/mcp discovery response."""
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "protocol_version": MCP_PROTOCOL_VERSION,
            "capabilities": {"tools": True, "resources": False, "prompts": False},
            "tools": [tool.describe() for tool in self.tools],
        }

    def _find_tool(self, name: Optional[str]) -> Optional[Tool]:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    async def handle_message(self, message: Any) -> dict:
        """Handle an incoming MCP JSON-RPC message."""
        if not isinstance(message, dict):
            return self._error(None, INVALID_REQUEST, "Invalid Request")

        method = message.get("method")
        params = message.get("params") or {}
        msg_id = message.get("id")

        try:
            if method == "initialize":
                return self._response(
                    msg_id,
                    {
                        "protocolVersion": MCP_PROTOCOL_VERSION,
                        "serverInfo": {"name": self.name, "version": self.version},
                        "capabilities": {"tools": {"listChanged": False}},
                    },
                )

            elif method == "tools/list":
                return self._response(msg_id, {"tools": [tool.describe() for tool in self.tools]})

            elif method == "tools/call":
                return await self._call_tool(msg_id, params.get("name"), params.get("arguments") or {})

            elif method == "ping":
                return self._response(msg_id, {})

            else:
                return self._error(msg_id, METHOD_NOT_FOUND, f"Method not found: {method}")

        except Exception as e:
            logger.exception("Error handling MCP message")
            return self._error(msg_id, INTERNAL_ERROR, f"Internal error: {e!s}")

    async def _call_tool(self, msg_id: Any, tool_name: Optional[str], tool_args: dict) -> dict:
        tool = self._find_tool(tool_name)
        if not tool:
            return self._error(msg_id, INVALID_PARAMS, f"Unknown tool: {tool_name}")

        try:
            result = await tool.handler(tool_args)
        except ValidationError as e:
            return self._error(msg_id, INVALID_PARAMS, str(e))
        except Exception as e:
            logger.exception("Tool execution error: %s", tool_name)
            return self._error(msg_id, INTERNAL_ERROR, f"Tool execution failed: {e!s}")

        text = json.dumps(result) if isinstance(result, (dict, list)) else str(result)
        return self._response(msg_id, {"content": [{"type": "text", "text": text}]})

    def _response(self, msg_id: Any, result: dict) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "result": result}

    def _error(self, msg_id: Any, code: int, message: str) -> dict:
        return {"jsonrpc": "2.0", "id": msg_id, "error": {"code": code, "message": message}}


def create_server() -> MCPServer:
    server = MCPServer(name=SERVER_NAME, version=__version__, description=SERVER_DESCRIPTION)
    for domain, module in DOMAINS.items():
        server.register_module(domain, module)
    return server
