from core.mcp.server import (
    mcp,
    mcp_stream_app,
    tool_inventory_status,
    registered_tool_names,
    get_current_context,
    MCPRouteNormalizerASGI,
)

__all__ = [
    "mcp",
    "mcp_stream_app",
    "tool_inventory_status",
    "registered_tool_names",
    "get_current_context",
    "MCPRouteNormalizerASGI",
]
