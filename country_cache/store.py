"""Persistence for country records, keyed by case-insensitive name."""

import logging
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import CountryExistsError
from .models import Country, normalize_name

logger = logging.getLogger(__name__)

VALID_SORTS = {"gdp_desc", "gdp_asc", "population_desc", "population_asc", "name_asc", "name_desc"}

FIELDS = (
    "name",
    "capital",
    "region",
    "population",
    "currency_code",
    "exchange_rate",
    "estimated_gdp",
    "flag_url",
    "last_refreshed_at",
)


def _gdp_desc():
    # NULL GDP sorts after every known value on both MySQL and SQLite
    return (Country.estimated_gdp.is_(None), Country.estimated_gdp.desc())


def _gdp_asc():
    return (Country.estimated_gdp.is_(None), Country.estimated_gdp.asc())


ORDERINGS = {
    "gdp_desc": _gdp_desc,
    "gdp_asc": _gdp_asc,
    "population_desc": lambda: (Country.population.desc(),),
    "population_asc": lambda: (Country.population.asc(),),
    "name_asc": lambda: (Country.name.asc(),),
    "name_desc": lambda: (Country.name.desc(),),
}


class CountryStore:
    """Country table access through an explicit session.

    Every write commits on its own, so a failure part-way through a refresh
    leaves the records written before it in place.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return self.db.query(Country)

    def get(self, name: str) -> Country | None:
        return self._query().filter(Country.name_key == normalize_name(name)).first()

    def count(self) -> int:
        return self._query().count()

    def _apply(self, country: Country, record: dict):
        for field in FIELDS:
            if field in record:
                setattr(country, field, record[field])
        country.name_key = normalize_name(country.name)

    def upsert(self, record: dict) -> str:
        """Insert ``record`` or update the row with the same normalized name.

        Returns ``"created"`` or ``"updated"``. A concurrent insert of the
        same name trips the unique index; the loser re-reads and updates.
        """
        existing = self.get(record["name"])
        if existing is not None:
            self._apply(existing, record)
            self.db.commit()
            return "updated"

        country = Country()
        self._apply(country, record)
        self.db.add(country)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.get(record["name"])
            if existing is None:
                raise
            logger.info("Concurrent insert of %r, updating instead", record["name"])
            self._apply(existing, record)
            self.db.commit()
            return "updated"
        return "created"

    def create(self, data: dict, now: datetime) -> Country:
        if self.get(data["name"]) is not None:
            raise CountryExistsError(data["name"])
        country = Country()
        self._apply(country, {**data, "last_refreshed_at": now})
        self.db.add(country)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise CountryExistsError(data["name"]) from e
        self.db.refresh(country)
        return country

    def update(self, name: str, changes: dict, now: datetime) -> Country | None:
        country = self.get(name)
        if country is None:
            return None
        new_name = changes.get("name")
        if new_name and normalize_name(new_name) != country.name_key:
            if self.get(new_name) is not None:
                raise CountryExistsError(new_name)
        self._apply(country, {**changes, "last_refreshed_at": now})
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise CountryExistsError(new_name or name) from e
        self.db.refresh(country)
        return country

    def delete(self, name: str) -> bool:
        country = self.get(name)
        if country is None:
            return False
        self.db.delete(country)
        self.db.commit()
        return True

    def list(self, region: str | None = None, currency: str | None = None, sort: str | None = None):
        query = self._query()
        if region:
            query = query.filter(func.lower(Country.region) == region.lower())
        if currency:
            query = query.filter(func.lower(Country.currency_code) == currency.lower())
        if sort:
            query = query.order_by(*ORDERINGS[sort](), Country.id)
        else:
            query = query.order_by(Country.id)
        return query.all()

    def top_by_gdp(self, limit: int = 5):
        return self._query().order_by(*_gdp_desc(), Country.id).limit(limit).all()

    def status(self):
        total, last = self.db.query(func.count(Country.id), func.max(Country.last_refreshed_at)).one()
        return total, last
