"""Turn raw country-metadata entries into canonical country records.

Upstream entries come in a few shapes (v2 vs v3 of the countries API, hand
written fixtures, ...). ``normalize_entry`` is the only place that knows
about those shapes; everything after it works on the canonical dict.
"""

import logging
from datetime import datetime
from random import Random

logger = logging.getLogger(__name__)

GDP_FACTOR_MIN = 1000
GDP_FACTOR_MAX = 2000


def _extract_name(raw) -> str | None:
    value = raw.get("name")
    if isinstance(value, dict):
        value = value.get("common") or value.get("official")
    if not isinstance(value, str):
        return None
    return value.strip() or None


def _extract_capital(raw) -> str | None:
    value = raw.get("capital")
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _extract_population(raw) -> int:
    try:
        population = int(raw.get("population") or 0)
    except (TypeError, ValueError):
        return 0
    return max(population, 0)


def _extract_currency(raw) -> str | None:
    currencies = raw.get("currencies")
    if isinstance(currencies, dict):
        # v3: {"NGN": {"name": ..., "symbol": ...}}
        for code in currencies:
            if code:
                return code
        return None
    if isinstance(currencies, list):
        # v2: [{"code": "NGN", "name": ..., "symbol": ...}]
        for currency in currencies:
            if isinstance(currency, dict) and currency.get("code"):
                return currency["code"]
            if isinstance(currency, str) and currency:
                return currency
    return None


def _extract_flag(raw) -> str | None:
    flags = raw.get("flags")
    if isinstance(flags, dict):
        return flags.get("svg") or flags.get("png") or None
    if isinstance(flags, list) and flags:
        for url in flags:
            if isinstance(url, str) and url.lower().endswith(".svg"):
                return url
        return flags[0] or None
    flag = raw.get("flag")
    if isinstance(flag, str) and flag:
        return flag
    return None


def normalize_entry(raw) -> dict | None:
    """Return the canonical shape of one metadata entry, or None to skip it."""
    if not isinstance(raw, dict):
        return None
    name = _extract_name(raw)
    if name is None:
        return None
    region = raw.get("region")
    return {
        "name": name,
        "capital": _extract_capital(raw),
        "region": region if isinstance(region, str) and region else None,
        "population": _extract_population(raw),
        "currency_code": _extract_currency(raw),
        "flag_url": _extract_flag(raw),
    }


def resolve_rate(currency_code: str | None, rates: dict) -> float | None:
    if not currency_code:
        return None
    rate = rates.get(currency_code)
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        return None
    return rate if rate > 0 else None


def estimate_gdp(population: int, currency_code: str | None, exchange_rate: float | None, rng: Random) -> float | None:
    """Synthetic GDP figure: population * U{1000..2000} / exchange_rate.

    This is a placeholder signal, not an economic estimate, and differs on
    every call unless ``rng`` is seeded. No currency gives 0; a currency
    without a known rate gives None.
    """
    if not currency_code:
        return 0
    if exchange_rate is None:
        return None
    return population * rng.randint(GDP_FACTOR_MIN, GDP_FACTOR_MAX) / exchange_rate


def build_record(raw, rates: dict, rng: Random, refreshed_at: datetime) -> dict | None:
    entry = normalize_entry(raw)
    if entry is None:
        logger.debug("Skipping entry without a usable name: %r", raw)
        return None
    exchange_rate = resolve_rate(entry["currency_code"], rates)
    entry["exchange_rate"] = exchange_rate
    entry["estimated_gdp"] = estimate_gdp(entry["population"], entry["currency_code"], exchange_rate, rng)
    entry["last_refreshed_at"] = refreshed_at
    return entry
