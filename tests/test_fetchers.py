"""Tests for the concurrent upstream fetch."""

import asyncio

import httpx
import pytest

from country_cache import config
from country_cache.errors import ExternalSourceError
from country_cache.fetchers import fetch_sources

COUNTRIES_URL = config.COUNTRIES_API_URL
RATES_URL = config.EXCHANGE_API_URL


def run_fetch(transport):
    async def go():
        async with httpx.AsyncClient(transport=transport) as client:
            return await fetch_sources(client, COUNTRIES_URL, RATES_URL)
    return asyncio.run(go())


def test_returns_entries_and_rates(transport_factory, countries_payload, rates_payload):
    countries, rates = run_fetch(transport_factory(countries_payload, rates_payload))
    assert len(countries) == len(countries_payload)
    assert rates["NGN"] == 1600.23


def test_requests_run_concurrently():
    """Each handler waits for the other request to start; sequential calls would time out."""

    async def go():
        started = set()
        both_started = asyncio.Event()

        async def handler(request):
            started.add(request.url.host)
            if len(started) == 2:
                both_started.set()
            await asyncio.wait_for(both_started.wait(), timeout=2)
            if request.url.host == httpx.URL(COUNTRIES_URL).host:
                return httpx.Response(200, json=[{"name": "Alpha"}])
            return httpx.Response(200, json={"result": "success", "rates": {"ALX": 2.0}})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_sources(client, COUNTRIES_URL, RATES_URL)

    countries, rates = asyncio.run(go())
    assert countries == [{"name": "Alpha"}]
    assert rates == {"ALX": 2.0}


@pytest.mark.parametrize("source", ["countries", "rates"])
def test_transport_failure_names_source(transport_factory, source):
    with pytest.raises(ExternalSourceError) as exc_info:
        run_fetch(transport_factory([], {"rates": {}}, fail=source))
    err = exc_info.value
    assert err.source == source
    assert err.url == (COUNTRIES_URL if source == "countries" else RATES_URL)
    assert "Could not fetch data from" in str(err)


def test_non_success_status_fails(transport_factory):
    with pytest.raises(ExternalSourceError) as exc_info:
        run_fetch(transport_factory([], {"rates": {}}, rates_status=503))
    assert exc_info.value.source == "rates"
    assert "503" in str(exc_info.value)


def test_countries_reported_first_when_both_fail(transport_factory):
    with pytest.raises(ExternalSourceError) as exc_info:
        run_fetch(transport_factory(countries_status=500, rates_status=500))
    assert exc_info.value.source == "countries"


def test_rates_error_result_fails(transport_factory):
    with pytest.raises(ExternalSourceError) as exc_info:
        run_fetch(transport_factory([], {"result": "error", "error-type": "unsupported-code"}))
    assert exc_info.value.source == "rates"
    assert "unsupported-code" in str(exc_info.value)


def test_countries_must_be_a_list(transport_factory):
    with pytest.raises(ExternalSourceError) as exc_info:
        run_fetch(transport_factory({"message": "not found"}, {"rates": {}}))
    assert exc_info.value.source == "countries"
