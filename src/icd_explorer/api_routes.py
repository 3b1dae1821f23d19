"""
HTTP route handlers.

Plain async functions taking a func.HttpRequest and returning a
func.HttpResponse; function_app.py binds them to routes.
"""

import json
import logging
import re
import time
import uuid
from typing import Any, Optional

import azure.functions as func

from . import cms_tools, drug_tools, snomed_tools
from .errors import ConfigurationError
from .mcp_server import MCP_PROTOCOL_VERSION, PARSE_ERROR, create_server

logger = logging.getLogger(__name__)

MAX_CONDITION_LENGTH = 500
MAX_ICD_CODE_LENGTH = 20
ICD10_CODE_PATTERN = re.compile(r"^[A-Za-z]\d{2}\.?\d{0,4}$")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}

server = create_server()


def _json_response(body: Any, status_code: int = 200, headers: Optional[dict] = None) -> func.HttpResponse:
    return func.HttpResponse(json.dumps(body), status_code=status_code, mimetype="application/json", headers=headers)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


# ============================================================================
# /api/validate-drugs
# ============================================================================


async def validate_drugs(req: func.HttpRequest) -> func.HttpResponse:
    """AI-validated drugs for a condition: body {conditionName, icdCode}."""
    try:
        body = req.get_json()
    except ValueError:
        return _json_response({"error": "Invalid JSON in request body"}, 400)
    if not isinstance(body, dict):
        return _json_response({"error": "Invalid JSON in request body"}, 400)

    condition_name = body.get("conditionName")
    icd_code = body.get("icdCode")
    for field_name, value in (("conditionName", condition_name), ("icdCode", icd_code)):
        if not value or not isinstance(value, str):
            return _json_response({"error": f"{field_name} is required and must be a string"}, 400)

    condition_name = condition_name.strip()[:MAX_CONDITION_LENGTH]
    icd_code = icd_code.strip().upper()[:MAX_ICD_CODE_LENGTH]
    logger.info("validate-drugs request for %s: %r", icd_code, condition_name[:50])

    try:
        drugs = await drug_tools.get_validated_drugs(condition_name, icd_code)
    except ConfigurationError:
        logger.error("Azure OpenAI is not configured")
        return _json_response({"error": "AI service not configured. Contact administrator."}, 503)
    except Exception:
        logger.exception("Drug validation failed for %s", icd_code)
        return _json_response({"error": "Drug validation failed. Please try again."}, 500)

    logger.info("Returning %d validated drugs for %s", len(drugs), icd_code)
    return _json_response({"drugs": drugs, "icdCode": icd_code, "count": len(drugs)})


async def validate_drugs_options(req: func.HttpRequest) -> func.HttpResponse:
    return func.HttpResponse(status_code=204, headers=CORS_HEADERS)


# ============================================================================
# /api/snomed-procedures
# ============================================================================


async def snomed_procedures(req: func.HttpRequest) -> func.HttpResponse:
    """SNOMED CT procedures for ?icd10=<code>."""
    start = time.perf_counter()

    def failure(message: str, status_code: int) -> func.HttpResponse:
        return _json_response(
            {"error": message, "procedures": [], "processingTimeMs": _elapsed_ms(start)}, status_code
        )

    icd10_code = (req.params.get("icd10") or "").strip()
    if not icd10_code:
        return failure("Missing required parameter: icd10", 400)
    if not ICD10_CODE_PATTERN.match(icd10_code):
        return failure(f"Invalid ICD-10 code format: {req.params.get('icd10')}", 400)

    try:
        procedures = await snomed_tools.get_snomed_procedures(icd10_code)
    except ConfigurationError as e:
        return failure(str(e), 503)
    except Exception:
        logger.exception("SNOMED procedure lookup failed for %s", icd10_code)
        return failure("Internal server error during SNOMED procedure lookup", 500)

    return _json_response(
        {
            "procedures": procedures,
            "icd10Code": icd10_code.upper(),
            "resultCount": len(procedures),
            "processingTimeMs": _elapsed_ms(start),
        }
    )


# ============================================================================
# /api/cms-coverage
# ============================================================================


async def cms_coverage(req: func.HttpRequest) -> func.HttpResponse:
    """NCD detail (?ncdId=&version=) or NCD/LCD search (?condition=&type=)."""
    condition = req.params.get("condition")
    ncd_id = req.params.get("ncdId")
    version = req.params.get("version")

    try:
        if ncd_id:
            detail = await cms_tools.get_ncd_details(int(ncd_id), int(version) if version else None)
            return _json_response({"detail": detail})

        if not condition:
            return _json_response({"error": "Missing required parameter: condition"}, 400)

        return _json_response(await cms_tools.search_coverage(condition, req.params.get("type") or "all"))
    except Exception:
        logger.exception("CMS coverage route error")
        return _json_response(
            {
                "ncds": [],
                "lcds": [],
                "totalResults": 0,
                "searchTerm": condition or "",
                "error": "CMS Coverage API temporarily unavailable",
            }
        )


# ============================================================================
# MCP endpoints
# ============================================================================


async def mcp_discovery(req: func.HttpRequest) -> func.HttpResponse:
    """MCP Discovery endpoint: server capabilities and every tool."""
    return _json_response(
        server.get_discovery_response(),
        headers={"X-MCP-Protocol-Version": MCP_PROTOCOL_VERSION, "Cache-Control": "no-cache"},
    )


async def mcp_get(req: func.HttpRequest) -> func.HttpResponse:
    """MCP GET: transport negotiation. Directs clients to use POST."""
    session_id = req.headers.get("Mcp-Session-Id", str(uuid.uuid4()))

    if "text/event-stream" in req.headers.get("Accept", ""):
        return _json_response(
            {
                "jsonrpc": "2.0",
                "error": {
                    "code": -32600,
                    "message": "SSE transport not supported. Use POST for Streamable HTTP transport.",
                },
                "id": None,
            },
            405,
            headers={"Allow": "POST", "X-MCP-Protocol-Version": MCP_PROTOCOL_VERSION, "Mcp-Session-Id": session_id},
        )

    return _json_response(
        {
            "name": server.name,
            "version": server.version,
            "protocol_version": MCP_PROTOCOL_VERSION,
            "transport": "streamable-http",
            "endpoint": "/mcp",
            "methods_supported": ["POST"],
        },
        headers={"X-MCP-Protocol-Version": MCP_PROTOCOL_VERSION, "Cache-Control": "no-cache"},
    )


async def mcp_message(req: func.HttpRequest) -> func.HttpResponse:
    """MCP Message endpoint: JSON-RPC messages via Streamable HTTP."""
    session_id = req.headers.get("Mcp-Session-Id", str(uuid.uuid4()))

    try:
        body = req.get_json()
    except ValueError:
        return _json_response({"jsonrpc": "2.0", "id": None, "error": {"code": PARSE_ERROR, "message": "Parse error"}}, 400)

    response = await server.handle_message(body)
    return _json_response(
        response,
        headers={
            "X-MCP-Protocol-Version": MCP_PROTOCOL_VERSION,
            "Mcp-Session-Id": session_id,
            "Cache-Control": "no-cache",
        },
    )


async def health_check(req: func.HttpRequest) -> func.HttpResponse:
    return _json_response(
        {
            "status": "healthy",
            "server": server.name,
            "version": server.version,
            "domains": server.domains,
            "tool_count": len(server.tools),
        }
    )
