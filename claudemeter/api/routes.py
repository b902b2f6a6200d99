"""API routes for the usage meter.

Endpoints:
  GET  /api/usage           current snapshot, error and scheduler state
  POST /api/usage/refresh   force a refresh past the cache
  GET  /api/settings        stored preferences
  PUT  /api/settings        validate and save preference changes
  GET  /api/health          liveness
  POST /api/notifications/test  send a sample warning
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from claudemeter import __version__

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/usage")
def get_usage(request: Request) -> dict[str, Any]:
    return request.app.state.meter.status()


@router.post("/usage/refresh")
async def refresh_usage(request: Request) -> dict[str, Any]:
    meter = request.app.state.meter
    if not meter.is_setup_complete:
        raise HTTPException(status_code=409, detail="No session key stored")
    await meter.refresh(force=True)
    return meter.status()


@router.get("/settings")
def get_settings(request: Request) -> dict[str, Any]:
    return request.app.state.meter.settings.model_dump(mode="json")


@router.put("/settings")
async def put_settings(request: Request, changes: dict[str, Any]) -> dict[str, Any]:
    meter = request.app.state.meter
    try:
        updated = await meter.update_settings(**changes)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.errors(include_url=False, include_context=False))
    logger.info("Settings updated: %s", sorted(changes))
    return updated.model_dump(mode="json")


@router.get("/health")
def health(request: Request) -> dict[str, Any]:
    meter = request.app.state.meter
    return {
        "status": "ok",
        "version": __version__,
        "setup_complete": meter.is_setup_complete,
        "scheduler_running": meter.scheduler.is_running,
    }


@router.post("/notifications/test")
async def test_notification(request: Request) -> dict[str, Any]:
    intent = await request.app.state.meter.send_test_notification()
    return {"kind": intent.kind.value, "title": intent.title, "body": intent.body}
