"""
Calendar tool server endpoints.

Exposes get-events-range and create-event as named tools with a
manifest, a JSON-RPC ``initialize`` handshake and a generic
``{name, input}`` execution endpoint.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from calendar_copilot.deps import ToolService
from calendar_copilot.schemas.tools import JsonRpcRequest, ToolExecuteRequest, ToolInfo
from calendar_copilot.services.calendar.errors import CalendarCopilotError
from calendar_copilot.services.calendar.tools import (
    SCHEMA_VERSION,
    TOOL_DESCRIPTIONS,
    build_manifest,
    status_code_for,
    tool_definitions,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tools"])

METHOD_NOT_FOUND = -32601


@router.get("/manifest")
async def get_manifest() -> dict:
    """Full tool manifest with input schemas and examples."""
    return build_manifest()


@router.get("")
async def list_tools() -> dict[str, list[ToolInfo]]:
    return {
        "tools": [
            ToolInfo(name=name, description=description)
            for name, description in TOOL_DESCRIPTIONS.items()
        ]
    }


@router.post("/initialize")
async def initialize(request: JsonRpcRequest):
    """JSON-RPC 2.0 ``initialize``; any other method is rejected."""
    if request.method != "initialize":
        return JSONResponse(
            status_code=400,
            content={
                "jsonrpc": request.jsonrpc,
                "id": request.id,
                "error": {"code": METHOD_NOT_FOUND, "message": "Method not found"},
            },
        )

    return {
        "jsonrpc": request.jsonrpc,
        "id": request.id,
        "result": {
            "protocolVersion": SCHEMA_VERSION,
            "capabilities": {
                "tools": [
                    {
                        "name": tool["name"],
                        "description": tool["description"],
                        "inputSchema": tool["inputSchema"],
                    }
                    for tool in tool_definitions()
                ]
            },
        },
    }


@router.post("/execute")
async def execute_tool(request: ToolExecuteRequest, tools: ToolService):
    """Run one tool against the real calendar."""
    try:
        return await tools.execute(request.name, request.input)
    except CalendarCopilotError as e:
        status_code = status_code_for(e)
        logger.error(f"Tool {request.name or '<none>'} failed ({status_code}): {e}")
        return JSONResponse(status_code=status_code, content={"error": str(e)})


@router.api_route("/test", methods=["GET", "POST"])
async def test_connection() -> dict:
    """Connectivity check."""
    return {
        "success": True,
        "message": "Calendar Copilot tool server is running",
        "tools": list(TOOL_DESCRIPTIONS),
    }
