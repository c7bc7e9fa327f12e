"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from pollflow.core.exceptions import DelayStoreError

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(request: Request):
    store = request.app.state.pipeline.store
    try:
        pending = store.pending()
    except DelayStoreError as exc:
        return JSONResponse(status_code=503, content={"status": "unavailable", "error": str(exc)})
    return {"status": "ready", "durable": store.durable, "pending": pending}
