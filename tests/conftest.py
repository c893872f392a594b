"""Shared test fixtures: in-memory database, mocked upstream APIs, app client."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from random import Random

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from country_cache import config
from country_cache.database import Base, get_db
from country_cache.main import app, get_http_client, get_image_path, get_rng
from country_cache.store import CountryStore


COUNTRIES_URL = config.COUNTRIES_API_URL
RATES_URL = config.EXCHANGE_API_URL


# --- Upstream payloads ---

@pytest.fixture
def countries_payload():
    """Mixed v2/v3 style metadata entries, one per shape variant."""
    return [
        {
            "name": "Nigeria",
            "capital": "Abuja",
            "region": "Africa",
            "population": 206139587,
            "flag": "https://flagcdn.com/ng.svg",
            "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}],
        },
        {
            "name": {"common": "Ghana", "official": "Republic of Ghana"},
            "capital": ["Accra"],
            "region": "Africa",
            "population": 31072945,
            "flags": {"png": "https://flagcdn.com/w320/gh.png", "svg": "https://flagcdn.com/gh.svg"},
            "currencies": {"GHS": {"name": "Ghanaian cedi", "symbol": "₵"}},
        },
        {
            "name": "Antarctica",
            "region": "Polar",
            "population": 1000,
        },
        {
            "name": "Atlantis",
            "region": "Ocean",
            "population": 500,
            "currencies": [{"code": "ATL"}],
        },
        {
            "name": "   ",
            "population": 10,
        },
    ]


@pytest.fixture
def rates_payload():
    return {
        "result": "success",
        "base_code": "USD",
        "rates": {"USD": 1, "NGN": 1600.23, "GHS": 15.34},
    }


def make_transport(countries=None, rates=None, countries_status=200, rates_status=200, fail=None):
    """Build an httpx.MockTransport serving both upstream endpoints.

    ``fail`` may be ``"countries"`` or ``"rates"`` to raise a connection
    error for that endpoint instead of answering.
    """
    calls = []

    def handler(request: httpx.Request):
        url = str(request.url)
        calls.append(url)
        source = "countries" if request.url.host == httpx.URL(COUNTRIES_URL).host else "rates"
        if fail == source:
            raise httpx.ConnectError("connection refused", request=request)
        if source == "countries":
            return httpx.Response(countries_status, json=countries if countries is not None else [])
        return httpx.Response(rates_status, json=rates if rates is not None else {"result": "success", "rates": {}})

    transport = httpx.MockTransport(handler)
    transport.calls = calls
    return transport


# --- Database fixtures ---

@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def store(db):
    return CountryStore(db)


@pytest.fixture
def rng():
    return Random(1234)


@pytest.fixture
def image_path(tmp_path):
    return str(tmp_path / "cache" / "summary.png")


# --- Application client ---

@pytest.fixture
def upstream(countries_payload, rates_payload):
    """Mutable holder so a test can swap the transport between calls."""
    return {"transport": make_transport(countries_payload, rates_payload)}


@pytest.fixture
def client(session_factory, upstream, image_path):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def override_http_client():
        async with httpx.AsyncClient(transport=upstream["transport"]) as http_client:
            yield http_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_http_client] = override_http_client
    app.dependency_overrides[get_rng] = lambda: Random(42)
    app.dependency_overrides[get_image_path] = lambda: image_path
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def transport_factory():
    return make_transport
