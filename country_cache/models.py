from .database import Base
from sqlalchemy import BigInteger, Column, String, DateTime, Float, Integer
from sqlalchemy.types import TypeDecorator
from datetime import timezone


def normalize_name(name: str) -> str:
    return name.strip().lower()


class UTCDateTime(TypeDecorator):
    """Stored as naive UTC, always read back as an aware UTC datetime."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class Country(Base):
    __tablename__ = "countries"
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    # lowercased name; the unique index is what keeps one row per country
    name_key = Column(String(100), nullable=False, unique=True, index=True)
    capital = Column(String(100))
    region = Column(String(100))
    population = Column(BigInteger, nullable=False, default=0)
    currency_code = Column(String(10))
    exchange_rate = Column(Float)
    estimated_gdp = Column(Float)
    flag_url = Column(String(255))
    last_refreshed_at = Column(UTCDateTime, nullable=True)

    def __repr__(self):
        return f"<Country {self.name!r}>"
