"""
MCP server wiring and tool registration.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from fastmcp import FastMCP

import core.config as config
from core.context import AuthContext, RequestContext, get_current_request_context
from core.services import part_associations, parts

READ_ONLY_TOOL_ANNOTATIONS = {"readOnlyHint": True}
DESTRUCTIVE_TOOL_ANNOTATIONS = {"destructiveHint": True}

mcp = FastMCP("PartLink")

_REGISTERED_TOOLS: list[tuple[Callable[..., dict], tuple[Any, ...], dict[str, Any]]] = []
_TOOL_REGISTRY_LOCK = threading.Lock()
_LAST_TOOL_COUNT: Optional[int] = None


def mcp_tool(*args, **kwargs):
    """Register a tool with FastMCP and keep a local registry for rebinding."""
    def decorator(fn: Callable[..., dict]):
        _REGISTERED_TOOLS.append((fn, args, kwargs))
        mcp.tool(*args, **kwargs)(fn)
        return fn
    return decorator


def get_current_context() -> RequestContext:
    """Request context bound by the HTTP layer, or an anonymous MCP caller."""
    ctx = get_current_request_context()
    if ctx is not None:
        return ctx
    return RequestContext(auth=AuthContext(actor="anonymous"), source="mcp")


def _record_tool_inventory_count(tool_count: int) -> None:
    global _LAST_TOOL_COUNT
    with _TOOL_REGISTRY_LOCK:
        if tool_count == 0 and (_LAST_TOOL_COUNT is None or _LAST_TOOL_COUNT > 0):
            config.logger.warning(
                "tool_inventory_empty",
                extra={"tool_count": tool_count},
            )
        elif tool_count > 0 and _LAST_TOOL_COUNT == 0:
            config.logger.info(
                "tool_inventory_restored",
                extra={"tool_count": tool_count},
            )
        _LAST_TOOL_COUNT = tool_count


def registered_tool_names() -> list[str]:
    return sorted(fn.__name__ for fn, _, _ in _REGISTERED_TOOLS)


async def tool_inventory_status() -> dict:
    """Return the tool inventory as FastMCP reports it."""
    tools = await mcp.get_tools()
    tool_names = sorted(tools.keys())
    _record_tool_inventory_count(len(tool_names))
    return {
        "tool_count": len(tool_names),
        "tools": tool_names,
    }


# =============================================================================
# Parts
# =============================================================================

@mcp_tool()
def part_create(name: str, description: Optional[str] = None) -> dict:
    return parts.part_create(
        name=name,
        description=description,
        context=get_current_context(),
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def part_get(part_id: int) -> dict:
    return parts.part_get(part_id=part_id)


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def part_list(limit: int = 100) -> dict:
    return parts.part_list(limit=limit)


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
def part_delete(part_id: int) -> dict:
    return parts.part_delete(part_id=part_id, context=get_current_context())


# =============================================================================
# Part Associations
# =============================================================================

@mcp_tool()
def part_association_add(
    owner_id: int,
    other_id: int,
    type: str = "other",
    other_type: Optional[str] = None,
    comment: Optional[str] = None,
) -> dict:
    return part_associations.part_association_add(
        owner_id=owner_id,
        other_id=other_id,
        type=type,
        other_type=other_type,
        comment=comment,
        context=get_current_context(),
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def part_association_get(association_id: int) -> dict:
    return part_associations.part_association_get(association_id=association_id)


@mcp_tool()
def part_association_update(
    association_id: int,
    type: Optional[str] = None,
    other_type: Optional[str] = None,
    comment: Optional[str] = None,
    owner_id: Optional[int] = None,
    other_id: Optional[int] = None,
    clear_other_type: bool = False,
    clear_comment: bool = False,
) -> dict:
    return part_associations.part_association_update(
        association_id=association_id,
        type=type,
        other_type=other_type,
        comment=comment,
        owner_id=owner_id,
        other_id=other_id,
        clear_other_type=clear_other_type,
        clear_comment=clear_comment,
        context=get_current_context(),
    )


@mcp_tool(annotations=DESTRUCTIVE_TOOL_ANNOTATIONS)
def part_association_delete(association_id: int) -> dict:
    return part_associations.part_association_delete(
        association_id=association_id,
        context=get_current_context(),
    )


@mcp_tool(annotations=READ_ONLY_TOOL_ANNOTATIONS)
def part_association_list(
    part_id: int,
    direction: str = "both",
    type: Optional[str] = None,
    limit: int = 100,
) -> dict:
    return part_associations.part_association_list(
        part_id=part_id,
        direction=direction,
        type=type,
        limit=limit,
    )


mcp_stream_app = mcp.http_app(
    path="/",
    transport="streamable-http",
    stateless_http=True,
    json_response=True,
)


class MCPRouteNormalizerASGI:
    """Pure ASGI middleware - no response buffering, SSE-safe."""
    def __init__(self, wrapped_app):
        self.wrapped_app = wrapped_app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope.get("path") == "/mcp":
            scope = dict(scope)
            scope["path"] = "/mcp/"
        await self.wrapped_app(scope, receive, send)
