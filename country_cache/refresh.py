"""Refresh pipeline: fetch, reconcile, upsert, render."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from random import Random

import httpx
from starlette.concurrency import run_in_threadpool

from . import config
from .fetchers import fetch_sources
from .reconcile import build_record
from .store import CountryStore
from .summary import SummaryOutcome, render_summary

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    total: int
    last_refreshed_at: datetime
    summary: SummaryOutcome

    def to_dict(self):
        return {
            "message": "Countries refreshed successfully",
            "total": self.total,
            "last_refreshed_at": self.last_refreshed_at,
        }


def apply_records(store: CountryStore, countries, rates: dict, rng: Random, refreshed_at: datetime) -> int:
    """Reconcile and upsert every entry; return how many were written.

    Blocking: runs database round-trips, so callers on the event loop
    must hand it to a worker thread.
    """
    total = 0
    try:
        for raw in countries:
            record = build_record(raw, rates, rng, refreshed_at)
            if record is None:
                continue
            store.upsert(record)
            total += 1
    except Exception:
        store.db.rollback()
        logger.exception("Refresh aborted after %d records", total)
        raise
    return total


async def refresh_countries(
    store: CountryStore,
    client: httpx.AsyncClient,
    rng: Random,
    image_path: str,
    countries_url: str = config.COUNTRIES_API_URL,
    rates_url: str = config.EXCHANGE_API_URL,
    now: datetime | None = None,
) -> RefreshResult:
    """Run one refresh pass and return its result.

    ``ExternalSourceError`` from either fetch propagates before anything is
    written. Entries without a usable name are skipped and not counted.
    The summary image is rendered last and its failure is only recorded on
    the result. Database writes and rendering run in the threadpool so the
    event loop keeps serving other requests.
    """
    refreshed_at = now or datetime.now(timezone.utc)
    logger.info("Starting refresh at %s", refreshed_at.isoformat())

    countries, rates = await fetch_sources(client, countries_url, rates_url)

    total = await run_in_threadpool(apply_records, store, countries, rates, rng, refreshed_at)

    logger.info("Refreshed %d countries", total)
    summary = await run_in_threadpool(render_summary, store, refreshed_at, image_path)
    return RefreshResult(total=total, last_refreshed_at=refreshed_at, summary=summary)
