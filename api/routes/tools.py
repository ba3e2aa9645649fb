"""Tool endpoints.

Lists the registered tools and invokes them against the Fakturownia connector.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, HTTPException, Request

from api.services.tool_registry import (
    ToolInfo,
    ToolResult,
    get_tool,
    invoke_tool,
    list_tools,
)
from connectors.fakturownia import FakturowniaConnector, UnknownOperationError


router = APIRouter()


def _get_connector(request: Request) -> FakturowniaConnector:
    connector = getattr(request.app.state, "connector", None)
    if connector is None:
        raise HTTPException(status_code=503, detail="Fakturownia connector is not configured")
    return connector


@router.get("", response_model=List[ToolInfo], response_model_by_alias=True)
async def list_registered_tools() -> List[ToolInfo]:
    """List all tools with their argument schemas."""
    return [spec.info() for spec in list_tools()]


@router.get("/{tool_name}", response_model=ToolInfo, response_model_by_alias=True)
async def get_tool_info(tool_name: str) -> ToolInfo:
    """Describe a single tool."""
    try:
        return get_tool(tool_name).info()
    except UnknownOperationError:
        raise HTTPException(status_code=404, detail=f"Tool '{tool_name}' not found")


@router.post("/{tool_name}", response_model=ToolResult, response_model_by_alias=True)
async def call_tool(
    tool_name: str,
    request: Request,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
) -> ToolResult:
    """Invoke a tool.

    API failures come back as a 200 with isError=true so the agent can read
    the message; only unknown tools are HTTP errors.
    """
    try:
        get_tool(tool_name)
    except UnknownOperationError:
        raise HTTPException(status_code=404, detail=f"Tool '{tool_name}' not found")

    connector = _get_connector(request)
    return await invoke_tool(connector, tool_name, arguments)
