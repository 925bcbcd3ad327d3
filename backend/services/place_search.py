# services/place_search.py

"""
Place Search Controller

Drives the add-flow address box:
1. every keystroke writes the address immediately
2. a debounce timer coalesces a burst of keystrokes into one search
3. each issued search carries a sequence number; only the latest may land
4. choosing a candidate resolves its details and merges them into the form

Timers and task spawning go through a Scheduler, so the state machine runs the
same under asyncio or under a manual clock in tests.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Set

from models.location_schema import LocationInput, MAX_RATING, MIN_RATING
from models.map_schema import LatLng
from models.place_schema import PanelState, PlaceDetails, PredictionCandidate, SearchSnapshot
from services.places_service import PlacesError
from utils.logger import logger

DEBOUNCE_SECONDS = 0.3
SEARCH_RADIUS_M = 50_000
SEARCH_TYPES = ["establishment"]

# Provider place types -> tags; anything else is dropped
TYPE_TO_TAG: Dict[str, str] = {
    "restaurant": "Restaurant",
    "cafe": "Cafe",
    "bar": "Bar",
    "bakery": "Bakery",
    "food": "Restaurant",
}


class Cancellable(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> Cancellable: ...

    def spawn(self, coro: Awaitable[Any]) -> Any: ...


class PlacesProvider(Protocol):
    async def autocomplete(
        self, text: str, center: LatLng, radius_m: int, types: List[str]
    ) -> List[PredictionCandidate]: ...

    async def details(self, place_id: str) -> PlaceDetails: ...


class AsyncioScheduler:
    """Scheduler backed by the running event loop"""

    def __init__(self) -> None:
        self._tasks: Set[asyncio.Task] = set()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return asyncio.get_running_loop().call_later(delay, callback)

    def spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()


class Debouncer:
    """Holds at most one pending timer; arming again replaces it"""

    def __init__(self, scheduler: Scheduler, delay: float):
        self._scheduler = scheduler
        self._delay = delay
        self._handle: Optional[Cancellable] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def arm(self, callback: Callable[[], None]) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            callback()

        self._handle = self._scheduler.call_later(self._delay, fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def tags_for_types(place_types: List[str]) -> List[str]:
    tags: List[str] = []
    for place_type in place_types:
        tag = TYPE_TO_TAG.get(place_type)
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def merge_place_details(
    form: LocationInput, details: PlaceDetails, keep_rating: bool = False
) -> LocationInput:
    """
    Merge resolved place details into `form` in place

    Provider values only overwrite when present. Tags are unioned and contact
    details are appended to the notes.

    Args:
        form: add-form values to update
        details: resolved place
        keep_rating: leave the rating alone (the user already set it)

    Returns:
        The same `form` object
    """
    if details.name:
        form.name = details.name
    if details.formatted_address:
        form.address = details.formatted_address
    if details.latitude is not None and details.longitude is not None:
        form.latitude = details.latitude
        form.longitude = details.longitude
    if details.rating is not None and not keep_rating:
        form.rating = max(MIN_RATING, min(MAX_RATING, int(round(details.rating))))

    for tag in tags_for_types(details.types):
        if tag not in form.tags:
            form.tags.append(tag)

    if details.phone:
        form.notes += f"\nPhone: {details.phone}"
    if details.website:
        form.notes += f"\nWebsite: {details.website}"
    return form


class PlaceSearchController:
    """One instance per add-flow interaction"""

    def __init__(
        self,
        provider: PlacesProvider,
        scheduler: Scheduler,
        form: LocationInput,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        radius_m: int = SEARCH_RADIUS_M,
        on_change: Optional[Callable[[SearchSnapshot], None]] = None,
    ):
        self.form = form
        self._provider = provider
        self._scheduler = scheduler
        self._debouncer = Debouncer(scheduler, debounce_seconds)
        self._radius_m = radius_m
        self._on_change = on_change

        self._candidates: List[PredictionCandidate] = []
        self._visible = False
        self._loading = False
        self._latest_request = 0
        self._latest_selection = 0
        self._rating_set_by_user = False

    # ------------------------------------------------------------
    # state
    # ------------------------------------------------------------

    @property
    def candidates(self) -> List[PredictionCandidate]:
        return list(self._candidates)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def panel(self) -> PanelState:
        if not self._visible:
            return PanelState.HIDDEN
        if self._loading:
            return PanelState.LOADING
        return PanelState.RESULTS if self._candidates else PanelState.EMPTY

    @property
    def search_pending(self) -> bool:
        return self._debouncer.pending

    def snapshot(self) -> SearchSnapshot:
        return SearchSnapshot(
            form=self.form.model_copy(deep=True),
            panel=self.panel,
            candidates=self.candidates,
        )

    def publish(self) -> None:
        """Push the current snapshot to the change listener"""
        if self._on_change is not None:
            self._on_change(self.snapshot())

    # ------------------------------------------------------------
    # address input
    # ------------------------------------------------------------

    def on_address_text_changed(self, text: str) -> None:
        self.form.address = text
        self._debouncer.arm(lambda: self._scheduler.spawn(self.search(text)))
        self.publish()

    async def search(self, text: str) -> None:
        self._latest_request += 1
        request_id = self._latest_request

        if not text.strip():
            self._candidates = []
            self._loading = False
            self.publish()
            return

        self._visible = True
        self._loading = True
        self.publish()

        center = LatLng(lat=self.form.latitude, lng=self.form.longitude)
        try:
            results = await self._provider.autocomplete(text, center, self._radius_m, SEARCH_TYPES)
        except PlacesError as e:
            logger.warning(f"⚠️ Place predictions failed for '{text}': {e}")
            results = []
        except Exception as e:
            logger.error(f"❌ Unexpected place prediction error for '{text}': {e}", exc_info=True)
            results = []

        if request_id != self._latest_request:
            logger.debug(f"🔍 Discarding stale predictions #{request_id} (latest #{self._latest_request})")
            return

        self._candidates = list(results or [])
        self._loading = False
        self.publish()

    # ------------------------------------------------------------
    # candidate selection
    # ------------------------------------------------------------

    async def on_candidate_selected(self, place_id: str) -> bool:
        """
        Resolve a chosen candidate and merge it into the form

        Selections are sequenced like searches: when a newer selection starts
        before this lookup returns, this one is dropped unmerged.

        Args:
            place_id: provider id of the chosen candidate

        Returns:
            True when the details were merged into the form
        """
        self._latest_selection += 1
        selection_id = self._latest_selection
        self.cancel_search()
        self._visible = False
        self._candidates = []
        self.publish()

        try:
            details = await self._provider.details(place_id)
        except PlacesError as e:
            logger.warning(f"⚠️ Place details failed for {place_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"❌ Unexpected place details error for {place_id}: {e}", exc_info=True)
            return False

        if selection_id != self._latest_selection:
            logger.debug(f"📍 Discarding superseded selection {place_id}")
            return False

        merge_place_details(self.form, details, keep_rating=self._rating_set_by_user)
        logger.info(f"📍 Place selected: {details.name or place_id}")
        self.publish()
        return True

    # ------------------------------------------------------------
    # panel + other form fields
    # ------------------------------------------------------------

    def focus(self) -> None:
        self._visible = True
        self.publish()

    def dismiss(self) -> None:
        self._visible = False
        self.publish()

    def set_rating(self, rating: int) -> None:
        self.form.rating = rating
        self._rating_set_by_user = True
        self.publish()

    def toggle_tag(self, tag: str) -> None:
        if tag in self.form.tags:
            self.form.tags.remove(tag)
        else:
            self.form.tags.append(tag)
        self.publish()

    def set_field(self, field: str, value: str) -> None:
        if field not in ("name", "notes"):
            raise ValueError(f"Unsupported field: {field}")
        setattr(self.form, field, value)
        self.publish()

    def cancel_search(self) -> None:
        """Drop the pending timer and invalidate any in-flight request"""
        self._debouncer.cancel()
        self._latest_request += 1
        self._loading = False
