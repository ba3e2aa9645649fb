"""API Services Package."""

from api.services.tool_registry import (
    ToolInfo,
    ToolResult,
    ToolSpec,
    TextContent,
    get_tool,
    invoke_tool,
    list_tools,
    parse_payload,
    render_error,
    render_result,
    tool,
)

__all__ = [
    "ToolInfo",
    "ToolResult",
    "ToolSpec",
    "TextContent",
    "get_tool",
    "invoke_tool",
    "list_tools",
    "parse_payload",
    "render_error",
    "render_result",
    "tool",
]
