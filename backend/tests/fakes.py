"""Test doubles shared across the suite"""

import asyncio
import time
from typing import Dict, List, NamedTuple
from urllib.parse import parse_qs, urlparse

import requests
from fastapi.testclient import TestClient

from models.auth_schema import Session, User
from models.location_schema import LocationInput
from models.map_schema import LatLng
from models.place_schema import PlaceDetails, PredictionCandidate
from services.places_service import PlacesError

TEST_USER = User(id="user-1", email="ana@example.com", name="Ana")


class ManualTimer:
    def __init__(self, when: float, callback):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by `advance()` instead of a real clock"""

    def __init__(self):
        self.now = 0.0
        self.timers: List[ManualTimer] = []
        self.spawned = []

    def call_later(self, delay, callback) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def spawn(self, coro):
        self.spawned.append(coro)
        return coro

    def advance(self, seconds: float) -> None:
        self.now += seconds
        self.timers = [t for t in self.timers if not t.cancelled]
        due = sorted((t for t in self.timers if t.when <= self.now), key=lambda t: t.when)
        for timer in due:
            self.timers.remove(timer)
            timer.callback()

    async def run_spawned(self) -> None:
        while self.spawned:
            batch, self.spawned = self.spawned, []
            await asyncio.gather(*batch)


class AutocompleteCall(NamedTuple):
    text: str
    center: LatLng
    radius_m: int
    types: List[str]


class FakePlaces:
    """In-memory places provider; `gate(key)` holds the response for a search text or place id until released"""

    def __init__(self):
        self.predictions: Dict[str, List[PredictionCandidate]] = {}
        self.details_by_id: Dict[str, PlaceDetails] = {}
        self.calls: List[AutocompleteCall] = []
        self.detail_calls: List[str] = []
        self.gates: Dict[str, asyncio.Event] = {}
        self.error = None

    def gate(self, key: str) -> asyncio.Event:
        self.gates[key] = asyncio.Event()
        return self.gates[key]

    async def autocomplete(self, text, center, radius_m, types):
        self.calls.append(AutocompleteCall(text, center, radius_m, list(types)))
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.predictions.get(text, []))

    async def details(self, place_id):
        self.detail_calls.append(place_id)
        gate = self.gates.get(place_id)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error
        if place_id not in self.details_by_id:
            raise PlacesError("NOT_FOUND")
        return self.details_by_id[place_id]


class FakeOAuth:
    client_id = "test-client-id"

    def __init__(self):
        self.exchange_error = None
        self.refresh_error = None
        self.issue_expired = False
        self.exchanged: List[str] = []
        self.refreshed = 0

    def authorization_url(self, redirect_uri, state):
        return f"https://accounts.example.com/auth?redirect_uri={redirect_uri}&state={state}"

    def exchange_code_for_session(self, code, redirect_uri):
        self.exchanged.append(code)
        if self.exchange_error is not None:
            raise self.exchange_error
        expires_at = time.time() - 60 if self.issue_expired else time.time() + 3600
        return Session(user=TEST_USER, access_token=f"at-{code}", refresh_token="rt-1", expires_at=expires_at)

    def refresh_session(self, session):
        self.refreshed += 1
        if self.refresh_error is not None:
            raise self.refresh_error
        return Session(
            user=session.user,
            access_token="at-refreshed",
            refresh_token=session.refresh_token,
            expires_at=time.time() + 3600,
        )


def candidate(place_id: str, primary: str = "", secondary: str = "Hanoi, Vietnam") -> PredictionCandidate:
    return PredictionCandidate(place_id=place_id, primary_text=primary or place_id, secondary_text=secondary)


def location_input(**overrides) -> LocationInput:
    fields = dict(
        name="Cafe X",
        address="12 Trang Tien, Hoan Kiem, Hanoi",
        latitude=21.0,
        longitude=105.8,
        rating=4,
        notes="",
        tags=[],
    )
    fields.update(overrides)
    return LocationInput(**fields)


def sign_in(client: TestClient, code: str = "good-code"):
    start = client.get("/auth/signin", follow_redirects=False)
    state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]
    return client.get(f"/auth/callback?code={code}&state={state}", follow_redirects=False)



class FakeResponse:
    """Stands in for `requests.Response` in adapter tests"""

    def __init__(self, payload=None, status_code: int = 200, text: str = ""):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload

    def raise_for_status(self) -> None:
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")
