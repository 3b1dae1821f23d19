"""
ICD Explorer: Azure Function App

Proxy routes used by the ICD-10 explorer front end plus an MCP server that
publishes every lookup as a tool.

Domains:
  - ICD-10: search with lay-term translation, relevance ranking, chapters
  - Drugs: OpenFDA labels, RxNorm enrichment, AI relevance validation
  - Clinical trials: ClinicalTrials.gov
  - CMS: Medicare NCD / LCD coverage
  - Procedures: SNOMED CT via UMLS, HCPCS Level II
  - Storage: favorites, search history, view mode
"""

import azure.functions as func

from icd_explorer import api_routes

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)


# ============================================================================
# Proxy routes
# ============================================================================


@app.route(route="validate-drugs", methods=["POST"])
async def validate_drugs(req: func.HttpRequest) -> func.HttpResponse:
    return await api_routes.validate_drugs(req)


@app.route(route="validate-drugs", methods=["OPTIONS"], auth_level=func.AuthLevel.ANONYMOUS)
async def validate_drugs_options(req: func.HttpRequest) -> func.HttpResponse:
    return await api_routes.validate_drugs_options(req)


@app.route(route="snomed-procedures", methods=["GET"])
async def snomed_procedures(req: func.HttpRequest) -> func.HttpResponse:
    return await api_routes.snomed_procedures(req)


@app.route(route="cms-coverage", methods=["GET"])
async def cms_coverage(req: func.HttpRequest) -> func.HttpResponse:
    return await api_routes.cms_coverage(req)


# ============================================================================
# MCP endpoints
# ============================================================================


@app.route(route=".well-known/mcp", methods=["GET"])
async def mcp_discovery(req: func.HttpRequest) -> func.HttpResponse:
    """MCP Discovery endpoint: server capabilities and all tools."""
    return await api_routes.mcp_discovery(req)


@app.route(route="mcp", methods=["GET"])
async def mcp_get(req: func.HttpRequest) -> func.HttpResponse:
    return await api_routes.mcp_get(req)


@app.route(route="mcp", methods=["POST"])
async def mcp_message(req: func.HttpRequest) -> func.HttpResponse:
    return await api_routes.mcp_message(req)


@app.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
async def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint."""
    return await api_routes.health_check(req)
