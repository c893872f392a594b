"""Outbound calls to the country-metadata and exchange-rate sources."""

import asyncio
import logging

import httpx

from .errors import ExternalSourceError

logger = logging.getLogger(__name__)


async def fetch_json(client: httpx.AsyncClient, source: str, url: str):
    """GET ``url`` and return the decoded JSON body.

    Transport errors, non-2xx responses and undecodable bodies are all
    reported as ``ExternalSourceError`` tagged with ``source``.
    """
    try:
        resp = await client.get(url)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPStatusError as e:
        raise ExternalSourceError(source, url, f"HTTP {e.response.status_code}") from e
    except httpx.HTTPError as e:
        raise ExternalSourceError(source, url, repr(e)) from e
    except ValueError as e:
        raise ExternalSourceError(source, url, "invalid JSON body") from e
    return data


async def fetch_sources(client: httpx.AsyncClient, countries_url: str, rates_url: str):
    """Fetch country metadata and exchange rates concurrently.

    Returns ``(countries, rates)`` where ``countries`` is the raw list of
    entries and ``rates`` maps currency code to rate. If either call fails
    the first failure (countries before rates) is raised.
    """
    results = await asyncio.gather(
        fetch_json(client, "countries", countries_url),
        fetch_json(client, "rates", rates_url),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, ExternalSourceError):
            logger.error("External source %s failed: %s", result.source, result)
            raise result
        if isinstance(result, BaseException):
            raise result

    countries, exchange = results
    if not isinstance(countries, list):
        raise ExternalSourceError("countries", countries_url, "expected a JSON array")
    if not isinstance(exchange, dict) or exchange.get("result") == "error":
        cause = exchange.get("error-type", "error result") if isinstance(exchange, dict) else "expected a JSON object"
        raise ExternalSourceError("rates", rates_url, cause)

    rates = exchange.get("rates") or {}
    logger.info("Fetched %d country entries and %d rates", len(countries), len(rates))
    return countries, rates
