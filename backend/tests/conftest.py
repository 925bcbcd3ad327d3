import os

# Settings are read once and cached; pin them before any app module is imported
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "test-maps-key")
os.environ.setdefault("OAUTH_CLIENT_ID", "test-client-id")
os.environ.setdefault("OAUTH_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("SESSION_SECRET_KEY", "test-session-secret")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("SEARCH_DEBOUNCE_MS", "10")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import duckdb
import pytest
from fastapi.testclient import TestClient

from fakes import FakeOAuth, FakePlaces, ManualScheduler, sign_in
from main import create_app
from models.location_schema import LocationInput
from services.location_service import LocationRepository, get_location_repository
from services.place_search import PlaceSearchController
from services.places_service import get_places_client
from utils.database import init_db


@pytest.fixture
def duckdb_conn():
    conn = duckdb.connect(":memory:")
    init_db(conn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def repo(duckdb_conn):
    return LocationRepository(duckdb_conn)


@pytest.fixture
def places():
    return FakePlaces()


@pytest.fixture
def oauth():
    return FakeOAuth()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def controller(places, scheduler):
    return PlaceSearchController(places, scheduler, LocationInput.blank(21.0278, 105.8342))


@pytest.fixture
def app(repo, places, oauth):
    application = create_app(oauth_factory=lambda: oauth)
    application.dependency_overrides[get_location_repository] = lambda: repo
    application.dependency_overrides[get_places_client] = lambda: places
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def signed_in_client(client):
    response = sign_in(client)
    assert response.status_code == 303
    assert response.headers["location"] == "/"
    return client
