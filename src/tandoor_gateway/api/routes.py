"""Tool endpoints with optional token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from fastapi import APIRouter, Body, Depends, Header, HTTPException, Request, status

from tandoor_gateway.api.tools import invoke_tool, tool_catalog

if TYPE_CHECKING:
    from tandoor_gateway.containers import AppContainer

router = APIRouter(prefix="/tools", tags=["tools"])


def _get_tool_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.tool_api_token


async def require_tool_token(
    x_tool_token: str | None = Header(default=None),
    tool_token: str | None = Depends(_get_tool_token),
) -> None:
    """Ensure requests carry the tool token when one is configured."""
    if tool_token and x_tool_token != tool_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("", dependencies=[Depends(require_tool_token)])
async def list_tools() -> dict[str, object]:
    """Return every tool with its input schema."""
    return {"tools": tool_catalog()}


@router.post("/{name}", dependencies=[Depends(require_tool_token)])
async def call_tool(
    name: str,
    request: Request,
    arguments: dict[str, Any] | None = Body(default=None),
) -> dict[str, object]:
    """Run a tool and return its result envelope."""
    container: AppContainer = request.app.state.container
    return await invoke_tool(container.gateway, name, arguments)
