"""
Tracker router: the renderer boundary.

GET  /tracker/state
POST /tracker/intents/save-mood
POST /tracker/intents/load-entries
GET  /tracker/notices
WS   /tracker/ws

Handlers are `async def` on purpose: the controller's queue and channels
belong to the event loop and must not be touched from the threadpool.
"""
from __future__ import annotations

import asyncio
import contextlib

from fastapi import APIRouter, Depends, Query, Request, WebSocket, WebSocketDisconnect, status

from moodtracker.core.errors import ControllerNotRunningError
from moodtracker.schemas.common import ErrorResponse
from moodtracker.schemas.tracker import (
    IntentAccepted,
    NoticesResponse,
    SaveMoodRequest,
    SnapshotResponse,
    notices_out,
    snapshot_out,
)
from moodtracker.services.intents import Intent, LoadEntries, SaveMood
from moodtracker.services.observable import Subscription
from moodtracker.services.tracker import TrackerController

router = APIRouter(prefix="/tracker", tags=["tracker"])

WAIT_HELP = "Respond only after the intent and its refresh have been processed."


def get_controller(request: Request) -> TrackerController:
    return request.app.state.controller


async def _dispatch(controller: TrackerController, intent: Intent, wait: bool) -> IntentAccepted:
    if not controller.running:
        raise ControllerNotRunningError()
    controller.handle_intent(intent)
    if wait:
        await controller.join()
    return IntentAccepted(intent=type(intent).__name__)


@router.get(
    "/state",
    response_model=SnapshotResponse,
    summary="Current snapshot",
)
async def tracker_state(controller: TrackerController = Depends(get_controller)):
    """Return the latest snapshot: entries (most recent first) and the loading flag."""
    return snapshot_out(controller.snapshot)


@router.post(
    "/intents/save-mood",
    response_model=IntentAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Record a mood",
    responses={
        422: {"model": ErrorResponse, "description": "Mood outside 1-5."},
        503: {"model": ErrorResponse, "description": "Controller is not running."},
    },
)
async def save_mood(
    payload: SaveMoodRequest,
    wait: bool = Query(default=False, description=WAIT_HELP),
    controller: TrackerController = Depends(get_controller),
):
    """
    Queue a `SaveMood` intent. The entry is inserted and the history refreshed
    asynchronously; observe `/tracker/state` or `/tracker/ws` for the result.
    """
    return await _dispatch(controller, SaveMood(mood=payload.mood), wait)


@router.post(
    "/intents/load-entries",
    response_model=IntentAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Reload the history",
    responses={503: {"model": ErrorResponse, "description": "Controller is not running."}},
)
async def load_entries(
    wait: bool = Query(default=False, description=WAIT_HELP),
    controller: TrackerController = Depends(get_controller),
):
    """Queue a `LoadEntries` intent."""
    return await _dispatch(controller, LoadEntries(), wait)


@router.get(
    "/notices",
    response_model=NoticesResponse,
    summary="Recently surfaced errors",
)
async def tracker_notices(controller: TrackerController = Depends(get_controller)):
    """Errors the controller recovered from (storage failures, rejected moods)."""
    return notices_out(controller.errors.recent)


# ---------------------------------------------------------------------------
# WS /tracker/ws : snapshot stream
# ---------------------------------------------------------------------------

async def _forward(websocket: WebSocket, sub: Subscription) -> None:
    async for snapshot in sub:
        body = snapshot_out(snapshot)
        await websocket.send_json(body.model_dump(mode="json"))


async def _until_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return


@router.websocket("/ws")
async def tracker_stream(websocket: WebSocket):
    """Send the current snapshot, then every transition in emission order."""
    controller: TrackerController = websocket.app.state.controller
    await websocket.accept()
    async with controller.state.subscribe() as sub:
        tasks = [
            asyncio.create_task(_forward(websocket, sub)),
            asyncio.create_task(_until_disconnect(websocket)),
        ]
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
