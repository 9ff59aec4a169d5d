# intake/routers/events.py
"""
Live-update streams (Server-Sent Events).

Each event says only that something changed (table, row id, operation);
clients re-fetch through the normal endpoints.
"""

import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from intake.dependencies import get_session
from intake.services.auth_service import SessionContext
from intake.services.change_feed import Subscription, change_feed
from intake.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15


async def event_stream(request: Request, sub: Subscription):
    try:
        yield "event: ready\ndata: {}\n\n"
        while not await request.is_disconnected():
            signal = await sub.get(timeout=KEEPALIVE_SECONDS)
            if signal is None:
                yield ": keepalive\n\n"
                continue
            yield f"event: change\ndata: {json.dumps(signal.as_dict())}\n\n"
    finally:
        sub.close()
        logger.debug(f"[FEED] stream closed for {sub.table} {sub.filters}")


def _response(request: Request, sub: Subscription) -> StreamingResponse:
    return StreamingResponse(
        event_stream(request, sub),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/events/vehicles", summary="Vehicle list changes")
async def vehicle_events(request: Request, ctx: SessionContext = Depends(get_session)):
    return _response(request, change_feed.subscribe("vehicles"))


@router.get("/events/vehicles/{vehicle_id}/photos", summary="Photo changes for one vehicle")
async def vehicle_photo_events(vehicle_id: str, request: Request, ctx: SessionContext = Depends(get_session)):
    return _response(request, change_feed.subscribe("vehicle_photos", vehicle_id=vehicle_id))
