from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CountryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    capital: str | None = None
    region: str | None = None
    population: int
    currency_code: str | None = None
    exchange_rate: float | None = None
    estimated_gdp: float | None = None
    flag_url: str | None = None
    last_refreshed_at: datetime | None = None


class CountryCreate(BaseModel):
    name: str = Field(..., max_length=100)
    capital: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    population: int = Field(..., ge=0)
    currency_code: str = Field(..., max_length=10)
    exchange_rate: float | None = Field(None, gt=0)
    estimated_gdp: float | None = Field(None, ge=0)
    flag_url: str | None = Field(None, max_length=255)

    @field_validator("name", "currency_code")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("is required")
        return value


class CountryUpdate(BaseModel):
    name: str | None = Field(None, max_length=100)
    capital: str | None = Field(None, max_length=100)
    region: str | None = Field(None, max_length=100)
    population: int | None = Field(None, ge=0)
    currency_code: str | None = Field(None, max_length=10)
    exchange_rate: float | None = Field(None, gt=0)
    estimated_gdp: float | None = Field(None, ge=0)
    flag_url: str | None = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str | None) -> str | None:
        if value is not None:
            value = value.strip()
            if not value:
                raise ValueError("must not be blank")
        return value


class StatusOut(BaseModel):
    total_countries: int
    last_refreshed_at: datetime | None = None


class RefreshOut(BaseModel):
    message: str
    total: int
    last_refreshed_at: datetime
