"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from recycling_assistant.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str | None = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not admin_token or not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/stats", dependencies=[Depends(require_admin)])
async def stats(request: Request) -> dict[str, object]:
    """Return cache and usage limiter state."""
    container: AppContainer = request.app.state.container
    return {
        "cache": container.cache.stats(),
        **container.usage_limiter.stats(),
    }


@router.post("/cache/clear", dependencies=[Depends(require_admin)])
async def clear_cache(request: Request) -> dict[str, str]:
    """Drop every cached identification result."""
    container: AppContainer = request.app.state.container
    container.cache.clear()
    return {"status": "ok"}


@router.delete("/rate-limits/{client_id}", dependencies=[Depends(require_admin)])
async def reset_client_limits(client_id: str, request: Request) -> dict[str, str]:
    """Forget rate window and daily usage for one client."""
    container: AppContainer = request.app.state.container
    container.usage_limiter.reset(client_id)
    return {"status": "ok", "client_id": client_id}
