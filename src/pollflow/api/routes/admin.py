"""Admin endpoints for inspecting the delay store."""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["admin"])


@router.get("/delay-store")
async def delay_store(request: Request) -> dict:
    """Return backend, durability and pending entry count of the delay store."""
    store = request.app.state.pipeline.store
    return {
        "backend": type(store).__name__,
        "durable": store.durable,
        "pending": store.pending(),
        "next_release_at": store.next_release_at(),
    }
