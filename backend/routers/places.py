# routers/places.py
"""
Add-flow Router - live place search over a WebSocket

Client -> server messages (JSON):
    {"type": "text", "text": "..."}            address input changed
    {"type": "focus"} / {"type": "dismiss"}    suggestion panel
    {"type": "select", "place_id": "..."}      candidate chosen
    {"type": "map_click", "lat": .., "lng": ..}
    {"type": "marker_drag", "lat": .., "lng": ..}
    {"type": "rating", "value": 4}
    {"type": "tag", "tag": "Coffee"}           toggle
    {"type": "field", "field": "name", "value": "..."}
    {"type": "submit"}

Server -> client: {"type": "state", form, panel, candidates} after every
change, plus "saved" / "invalid" / "notice" / "error" replies.
"""

import asyncio
import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from models.auth_schema import User
from models.location_schema import LocationInput, Notice
from services.location_service import (
    LocationRepository,
    LocationValidationError,
    StorageError,
    get_location_repository,
)
from services.map_service import MapBinding, default_center
from services.place_search import AsyncioScheduler, PlaceSearchController, PlacesProvider
from services.places_service import get_places_client
from utils.auth_gate import WS_POLICY_VIOLATION
from utils.config import get_settings
from utils.logger import logger
from utils.session_manager import SessionStore, get_session_store

router = APIRouter(tags=["Add"])


class AddFlow:
    """Per-connection add-flow state: search controller + marker binding"""

    def __init__(
        self,
        user: User,
        places: PlacesProvider,
        repo: LocationRepository,
        outbox: "asyncio.Queue[Dict[str, Any]]",
    ):
        settings = get_settings()
        center = default_center()
        self.user = user
        self.repo = repo
        self.outbox = outbox
        self.scheduler = AsyncioScheduler()
        self.controller = PlaceSearchController(
            places,
            self.scheduler,
            LocationInput.blank(center.lat, center.lng),
            debounce_seconds=settings.SEARCH_DEBOUNCE_MS / 1000,
            radius_m=settings.SEARCH_RADIUS_M,
            on_change=lambda snapshot: outbox.put_nowait(
                {"type": "state", **snapshot.model_dump(mode="json")}
            ),
        )
        self.binding = MapBinding(self.controller.form)

    def reply(self, message_type: str, **payload: Any) -> None:
        self.outbox.put_nowait({"type": message_type, **payload})

    async def handle(self, message: Dict[str, Any]) -> None:
        kind = message.get("type")
        controller = self.controller

        if kind == "text":
            controller.on_address_text_changed(str(message.get("text", "")))
        elif kind == "focus":
            controller.focus()
        elif kind == "dismiss":
            controller.dismiss()
        elif kind == "select":
            # resolve in the background so typing is never blocked
            self.scheduler.spawn(controller.on_candidate_selected(str(message["place_id"])))
        elif kind == "map_click":
            self.binding.on_map_click(float(message["lat"]), float(message["lng"]))
            controller.publish()
        elif kind == "marker_drag":
            self.binding.on_marker_drag_end(float(message["lat"]), float(message["lng"]))
            controller.publish()
        elif kind == "rating":
            controller.set_rating(int(message["value"]))
        elif kind == "tag":
            controller.toggle_tag(str(message["tag"]))
        elif kind == "field":
            controller.set_field(str(message["field"]), str(message.get("value", "")))
        elif kind == "submit":
            await self.submit()
        else:
            self.reply("error", message=f"Unknown message type: {kind}")

    async def submit(self) -> None:
        form = self.controller.form.model_copy(deep=True)
        try:
            location = await asyncio.to_thread(self.repo.create, form, self.user.id)
        except LocationValidationError as e:
            self.reply("invalid", errors=e.errors)
            return
        except StorageError as e:
            logger.error(f"❌ Error adding location: {e}", exc_info=True)
            notice = Notice(
                title="Failed to add location",
                description="There was an error saving your location. Please try again.",
                variant="destructive",
            )
            self.reply("notice", notice=notice.model_dump())
            return

        self.reply("saved", location=location.model_dump(mode="json"), redirect="/list")

    async def close(self) -> None:
        self.controller.cancel_search()
        await self.scheduler.aclose()


async def _drain(websocket: WebSocket, outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


@router.websocket("/add/search")
async def add_flow_socket(
    websocket: WebSocket,
    store: SessionStore = Depends(get_session_store),
    places: PlacesProvider = Depends(get_places_client),
    repo: LocationRepository = Depends(get_location_repository),
):
    user = store.user
    if user is None:
        await websocket.close(code=WS_POLICY_VIOLATION)
        return

    await websocket.accept()
    outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    flow = AddFlow(user, places, repo, outbox)
    sender = asyncio.create_task(_drain(websocket, outbox))
    flow.controller.publish()
    logger.info(f"🔌 Add flow opened for {user.email or user.id}")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                if not isinstance(message, dict):
                    raise ValueError("message must be a JSON object")
                await flow.handle(message)
            except (KeyError, TypeError, ValueError) as e:
                flow.reply("error", message=f"Bad message: {e}")
    except WebSocketDisconnect:
        logger.info(f"🔌 Add flow closed for {user.email or user.id}")
    finally:
        await flow.close()
        sender.cancel()
        await asyncio.gather(sender, return_exceptions=True)
